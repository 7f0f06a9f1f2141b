"""Pytest configuration and fixtures for RetroRiff Harvester tests."""

from collections.abc import Generator
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from retroriff.api.deps import get_harvester
from retroriff.main import app
from retroriff.schemas.harvest import PrioritizationResult, SearchCriteria
from retroriff.services.converter import PlaceholderConverter
from retroriff.services.harvester import Harvester
from retroriff.services.resolver import MockResolver


@pytest.fixture
def search_plan() -> PrioritizationResult:
    return PrioritizationResult(search_query="Queen greatest hits full album", source="YouTube")


@pytest.fixture
def mock_prioritizer(search_plan: PrioritizationResult) -> Generator[AsyncMock, None, None]:
    """Replace the Claude call with a fixed search plan."""
    with patch(
        "retroriff.services.harvester.prioritize_sources",
        new=AsyncMock(return_value=search_plan),
    ) as mock:
        yield mock


@pytest.fixture
def harvester() -> Harvester:
    """Offline harvester: deterministic ids and placeholder audio, no delays."""
    return Harvester(MockResolver(), PlaceholderConverter())


@pytest.fixture
def criteria() -> SearchCriteria:
    return SearchCriteria(artists="Queen")


@pytest.fixture
def client(harvester: Harvester) -> Generator[TestClient, None, None]:
    """Create a test client wired to the offline harvester."""
    app.dependency_overrides[get_harvester] = lambda: harvester
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
