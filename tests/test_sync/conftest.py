"""Shared fixtures for orchestrator and health checker tests."""

from unittest.mock import AsyncMock

import pytest

from src.ingestion.fetch_client import FetchClient, RetryPolicy
from src.ingestion.mock_adapter import MockAdapter
from src.ingestion.registry import AdapterRegistry
from src.sources.schemas import DataSource
from src.sync.config import SyncConfig
from src.sync.health import HealthChecker
from src.sync.orchestrator import SyncOrchestrator


@pytest.fixture
def mock_source() -> DataSource:
    """Enabled source served by the mock adapter."""
    return DataSource(
        id="src-mock",
        name="mock",
        display_name="Mock",
        api_base_url="mock://local",
        config={"query": "VLA", "maxResults": 10},
    )


@pytest.fixture
def source_repo(mock_source: DataSource) -> AsyncMock:
    """Mock DataSourceRepository returning mock_source."""
    repo = AsyncMock()
    repo.get = AsyncMock(return_value=mock_source)
    repo.get_by_name = AsyncMock(return_value=mock_source)
    repo.list_sources = AsyncMock(return_value=[mock_source])
    repo.claim_sync = AsyncMock(return_value=True)
    repo.finish_sync = AsyncMock()
    repo.reject_sync = AsyncMock()
    repo.update_health = AsyncMock()
    return repo


@pytest.fixture
def log_repo() -> AsyncMock:
    repo = AsyncMock()
    repo.append = AsyncMock(side_effect=lambda entry, conn=None: entry)
    return repo


@pytest.fixture
def content_repo() -> AsyncMock:
    repo = AsyncMock()
    repo.upsert = AsyncMock(return_value=True)
    return repo


@pytest.fixture
def keyword_repo() -> AsyncMock:
    repo = AsyncMock()
    repo.get_active = AsyncMock(return_value=[])
    repo.mark_synced = AsyncMock()
    return repo


@pytest.fixture
def fetch_client() -> FetchClient:
    """Fetch client with the default retry budget and no real backoff."""
    return FetchClient(RetryPolicy(max_retries=2, base_delay=3.0), sleep=AsyncMock())


@pytest.fixture
def make_orchestrator(
    mock_database, fetch_client, source_repo, log_repo, content_repo, keyword_repo
):
    """Build a SyncOrchestrator around the given adapters with mocked repositories."""

    def _make(*adapters, config: SyncConfig | None = None) -> SyncOrchestrator:
        registry = AdapterRegistry(list(adapters) or [MockAdapter()])
        orchestrator = SyncOrchestrator(mock_database, registry, fetch_client, config)
        orchestrator._sources = source_repo
        orchestrator._logs = log_repo
        orchestrator._content = content_repo
        orchestrator._keywords = keyword_repo
        return orchestrator

    return _make


@pytest.fixture
def make_checker(mock_database, fetch_client, source_repo, log_repo):
    """Build a HealthChecker around the given adapters with mocked repositories."""

    def _make(*adapters) -> HealthChecker:
        registry = AdapterRegistry(list(adapters) or [MockAdapter()])
        checker = HealthChecker(mock_database, registry, fetch_client)
        checker._sources = source_repo
        checker._logs = log_repo
        return checker

    return _make
