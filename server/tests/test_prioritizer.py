"""Tests for the search prioritization LLM client."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from retroriff.schemas.harvest import SearchCriteria
from retroriff.services.prioritizer import (
    SEARCH_PLAN_TOOL,
    SYSTEM_PROMPT,
    PrioritizationValidationError,
    PrioritizerUnavailableError,
    build_user_prompt,
    is_llm_available,
    parse_search_plan,
    prioritize_sources,
)


def _tool_block(plan_input):
    block = MagicMock()
    block.type = "tool_use"
    block.name = "search_plan"
    block.input = plan_input
    return block


def _text_block(text):
    block = MagicMock()
    block.type = "text"
    block.text = text
    return block


def _response(*blocks):
    response = MagicMock()
    response.content = list(blocks)
    return response


def _settings(api_key="sk-ant-test-key"):
    settings = MagicMock()
    settings.anthropic_api_key = api_key
    settings.anthropic_model = "claude-haiku-4-5-20251001"
    settings.anthropic_max_tokens = 512
    settings.anthropic_timeout_seconds = 30
    return settings


class TestBuildUserPrompt:
    def test_all_fields(self):
        criteria = SearchCriteria(artists="Queen", genre="Rock", year="1975")
        result = build_user_prompt(criteria)
        assert "- Artist(s): Queen" in result
        assert "- Genre: Rock" in result
        assert "- Year(s): 1975" in result

    def test_missing_fields_are_empty(self):
        result = build_user_prompt(SearchCriteria(genre="Hip Hop"))
        assert "- Artist(s): \n" in result
        assert result.endswith("- Year(s): ")


class TestParseSearchPlan:
    def test_valid_tool_use(self):
        response = _response(
            _tool_block({"search_query": "queen greatest hits", "source": "YouTube"})
        )
        result = parse_search_plan(response)
        assert result.search_query == "queen greatest hits"
        assert result.source == "YouTube"

    def test_text_before_tool_use(self):
        response = _response(
            _text_block("Here is my plan: "),
            _tool_block({"search_query": "grunge 1991", "source": "Bandcamp"}),
        )
        assert parse_search_plan(response).source == "Bandcamp"

    def test_text_only_raises(self):
        response = _response(_text_block("I cannot help with that."))
        with pytest.raises(PrioritizationValidationError) as exc_info:
            parse_search_plan(response)
        assert "I cannot help" in exc_info.value.raw_response

    def test_missing_field_raises(self):
        response = _response(_tool_block({"search_query": "queen"}))
        with pytest.raises(PrioritizationValidationError):
            parse_search_plan(response)

    def test_empty_value_raises(self):
        response = _response(_tool_block({"search_query": "", "source": "YouTube"}))
        with pytest.raises(PrioritizationValidationError):
            parse_search_plan(response)

    def test_is_a_value_error(self):
        assert issubclass(PrioritizationValidationError, ValueError)


class TestPrioritizeSources:
    @pytest.mark.asyncio
    @patch("retroriff.services.prioritizer.AsyncAnthropic")
    @patch("retroriff.services.prioritizer.get_settings")
    async def test_calls_api_correctly(self, mock_settings, mock_anthropic_cls):
        mock_settings.return_value = _settings()
        mock_client = MagicMock()
        mock_client.messages.create = AsyncMock(
            return_value=_response(
                _tool_block({"search_query": "queen discography", "source": "YouTube"})
            )
        )
        mock_anthropic_cls.return_value = mock_client

        result = await prioritize_sources(SearchCriteria(artists="Queen"))

        assert result.search_query == "queen discography"
        mock_client.messages.create.assert_called_once()
        call_kwargs = mock_client.messages.create.call_args[1]
        assert call_kwargs["model"] == "claude-haiku-4-5-20251001"
        assert call_kwargs["max_tokens"] == 512
        assert call_kwargs["system"] == SYSTEM_PROMPT
        assert call_kwargs["tool_choice"] == {"type": "tool", "name": "search_plan"}
        assert "Queen" in call_kwargs["messages"][0]["content"]

    @pytest.mark.asyncio
    @patch("retroriff.services.prioritizer.AsyncAnthropic")
    @patch("retroriff.services.prioritizer.get_settings")
    async def test_malformed_output_raises(self, mock_settings, mock_anthropic_cls):
        mock_settings.return_value = _settings()
        mock_client = MagicMock()
        mock_client.messages.create = AsyncMock(return_value=_response(_text_block("nope")))
        mock_anthropic_cls.return_value = mock_client

        with pytest.raises(PrioritizationValidationError):
            await prioritize_sources(SearchCriteria(genre="Jazz"))

    @pytest.mark.asyncio
    @patch("retroriff.services.prioritizer.AsyncAnthropic")
    @patch("retroriff.services.prioritizer.get_settings")
    async def test_no_retry_on_api_error(self, mock_settings, mock_anthropic_cls):
        mock_settings.return_value = _settings()
        mock_client = MagicMock()
        mock_client.messages.create = AsyncMock(side_effect=RuntimeError("boom"))
        mock_anthropic_cls.return_value = mock_client

        with pytest.raises(RuntimeError):
            await prioritize_sources(SearchCriteria(year="1980"))
        assert mock_client.messages.create.call_count == 1

    @pytest.mark.asyncio
    @patch("retroriff.services.prioritizer.AsyncAnthropic")
    @patch("retroriff.services.prioritizer.get_settings")
    async def test_missing_key_skips_api(self, mock_settings, mock_anthropic_cls):
        mock_settings.return_value = _settings(api_key="")

        with pytest.raises(PrioritizerUnavailableError):
            await prioritize_sources(SearchCriteria(artists="Queen"))
        mock_anthropic_cls.assert_not_called()


class TestIsLLMAvailable:
    @patch("retroriff.services.prioritizer.get_settings")
    def test_with_key(self, mock_settings):
        mock_settings.return_value = _settings()
        assert is_llm_available() is True

    @patch("retroriff.services.prioritizer.get_settings")
    def test_without_key(self, mock_settings):
        mock_settings.return_value = _settings(api_key="")
        assert is_llm_available() is False


class TestToolDefinition:
    def test_has_required_fields(self):
        assert SEARCH_PLAN_TOOL["name"] == "search_plan"
        schema = SEARCH_PLAN_TOOL["input_schema"]
        assert schema["type"] == "object"
        assert set(schema["required"]) == {"search_query", "source"}

    def test_system_prompt_mentions_platforms(self):
        assert "YouTube" in SYSTEM_PROMPT
        assert "SoundCloud" in SYSTEM_PROMPT
