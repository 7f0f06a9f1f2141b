"""LLM client that picks a search strategy for a harvest via Claude.

Sends the user's artist/genre/year criteria to Claude, which returns a
single search plan (query + platform) through a forced tool call.
"""

import json
import logging

from anthropic import AsyncAnthropic
from pydantic import ValidationError

from retroriff.core.config import get_settings
from retroriff.schemas.harvest import PrioritizationResult, SearchCriteria

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are an AI expert in finding music online. Your goal is to construct
the best possible search query for a search engine to find downloadable,
high-quality songs based on user input.

Based on the input, determine the most effective search query and the
best platform (like YouTube, SoundCloud, Bandcamp, etc.) to find the
music. The search query should be optimized for finding lists of popular
songs or full albums."""

SEARCH_PLAN_TOOL = {
    "name": "search_plan",
    "description": "Return the search query and platform that will best find the requested music.",
    "input_schema": {
        "type": "object",
        "properties": {
            "search_query": {
                "type": "string",
                "description": (
                    "The best search query to use for finding music files"
                    " on a search engine like Google"
                ),
            },
            "source": {
                "type": "string",
                "description": (
                    "The best online platform or type of site to search within"
                    " (e.g., YouTube, SoundCloud, Bandcamp)"
                ),
            },
        },
        "required": ["search_query", "source"],
    },
}


class PrioritizationValidationError(ValueError):
    """The model's output could not be parsed into a search plan."""

    def __init__(self, message: str, raw_response: str = "") -> None:
        super().__init__(message)
        self.raw_response = raw_response


class PrioritizerUnavailableError(RuntimeError):
    """No Anthropic API key is configured."""


def build_user_prompt(criteria: SearchCriteria) -> str:
    """Render the criteria block; absent fields are sent as empty strings."""
    values = criteria.as_prompt_input()
    return "\n".join(
        [
            "User Input:",
            f"- Artist(s): {values['artists']}",
            f"- Genre: {values['genre']}",
            f"- Year(s): {values['year']}",
        ]
    )


def parse_search_plan(response) -> PrioritizationResult:
    """Validate the ``search_plan`` tool call in a Claude response.

    Raises PrioritizationValidationError when the tool was not called or its
    input does not match the PrioritizationResult schema.
    """
    raw_text = ""
    plan_input = None

    for block in response.content:
        if block.type == "text":
            raw_text += block.text
        elif block.type == "tool_use" and block.name == "search_plan":
            raw_text += json.dumps(block.input)
            plan_input = block.input

    if plan_input is None:
        raise PrioritizationValidationError("Model did not return a search plan", raw_text)

    try:
        return PrioritizationResult.model_validate(plan_input)
    except ValidationError as e:
        raise PrioritizationValidationError(
            f"Malformed search plan: {e.error_count()} validation error(s)", raw_text
        ) from e


async def prioritize_sources(criteria: SearchCriteria) -> PrioritizationResult:
    """Ask Claude for the best search query and source platform.

    One request, no retries. API errors propagate to the caller.
    Raises PrioritizerUnavailableError without calling the API when no key is set.
    """
    if not is_llm_available():
        raise PrioritizerUnavailableError("ANTHROPIC_API_KEY is not configured")

    settings = get_settings()

    client = AsyncAnthropic(
        api_key=settings.anthropic_api_key,
        timeout=settings.anthropic_timeout_seconds,
    )

    response = await client.messages.create(
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
        system=SYSTEM_PROMPT,
        tools=[SEARCH_PLAN_TOOL],
        tool_choice={"type": "tool", "name": "search_plan"},
        messages=[{"role": "user", "content": build_user_prompt(criteria)}],
    )

    result = parse_search_plan(response)
    logger.info("Search plan: source=%s query=%s", result.source, result.search_query[:80])
    return result


def is_llm_available() -> bool:
    """Check if search prioritization is configured."""
    return bool(get_settings().anthropic_api_key)
