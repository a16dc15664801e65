"""Shared fixtures for API tests."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.auth import verify_api_key
from src.api.dependencies import (
    get_credential_pool,
    get_data_source_service,
    get_database,
    get_fetch_client,
    get_health_checker,
    get_keyword_repository,
    get_registry,
    get_sync_log_repository,
    get_sync_orchestrator,
)
from src.credentials.schemas import Credential
from src.sources.schemas import DataSource, HealthStatus, SyncStatus


def _make_source(source_id: str = "src-arxiv", name: str = "arxiv", **kwargs) -> DataSource:
    """Helper to create a DataSource with sensible defaults."""
    return DataSource(
        id=source_id,
        name=name,
        display_name=kwargs.pop("display_name", "arXiv"),
        enabled=kwargs.pop("enabled", True),
        api_base_url=kwargs.pop("api_base_url", "http://export.arxiv.org/api/query"),
        api_key=kwargs.pop("api_key", None),
        tags=kwargs.pop("tags", ["paper"]),
        config=kwargs.pop("config", {"query": "embodied ai", "maxResults": 100}),
        health_status=kwargs.pop("health_status", HealthStatus.HEALTHY),
        last_sync_status=kwargs.pop("last_sync_status", SyncStatus.SUCCESS),
        created_at=kwargs.pop("created_at", datetime(2026, 1, 15, tzinfo=timezone.utc)),
        **kwargs,
    )


@pytest.fixture
def api_source() -> DataSource:
    return _make_source()


@pytest.fixture
def mock_service(api_source):
    """Mock DataSourceService."""
    service = AsyncMock()
    service.repository = AsyncMock()
    service.repository.list_sources = AsyncMock(return_value=[api_source])
    service.get = AsyncMock(return_value=api_source)
    service.update_config = AsyncMock(return_value=api_source)
    service.toggle = AsyncMock(return_value=api_source)
    return service


@pytest.fixture
def mock_orchestrator():
    """Mock SyncOrchestrator."""
    orchestrator = AsyncMock()
    orchestrator.is_running = MagicMock(return_value=False)
    return orchestrator


@pytest.fixture
def mock_checker():
    """Mock HealthChecker."""
    return AsyncMock()


@pytest.fixture
def mock_log_repo():
    """Mock SyncLogRepository."""
    repo = AsyncMock()
    repo.list_for_source = AsyncMock(return_value=([], 0))
    return repo


@pytest.fixture
def mock_keyword_repo():
    """Mock KeywordRepository."""
    repo = AsyncMock()
    repo.list_keywords = AsyncMock(return_value=([], 0))
    repo.get = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def mock_pool():
    """Mock CredentialPool."""
    pool = AsyncMock()
    pool.max_error_count = 3
    pool.list_credentials = AsyncMock(
        return_value=[
            Credential(
                id="cred-1",
                provider="bilibili",
                name="main",
                secret_value="SESSDATA=abcdef123456",
                error_count=1,
            )
        ]
    )
    return pool


@pytest.fixture
def mock_db():
    db = AsyncMock()
    db.health_check = AsyncMock(return_value=True)
    return db


@pytest.fixture
def mock_registry():
    registry = MagicMock()
    registry.names = MagicMock(return_value=["arxiv", "bilibili", "mock"])
    return registry


@pytest.fixture
def mock_fetch_client():
    """Mock FetchClient."""
    return AsyncMock()


@pytest.fixture
def client(
    monkeypatch,
    mock_service,
    mock_orchestrator,
    mock_checker,
    mock_log_repo,
    mock_keyword_repo,
    mock_pool,
    mock_db,
    mock_registry,
    mock_fetch_client,
):
    """FastAPI TestClient with dependency overrides."""
    monkeypatch.setenv("SOURCES_SEED_ON_INIT", "false")
    app = create_app()

    app.dependency_overrides[verify_api_key] = lambda: "test-key"
    app.dependency_overrides[get_data_source_service] = lambda: mock_service
    app.dependency_overrides[get_sync_orchestrator] = lambda: mock_orchestrator
    app.dependency_overrides[get_health_checker] = lambda: mock_checker
    app.dependency_overrides[get_sync_log_repository] = lambda: mock_log_repo
    app.dependency_overrides[get_keyword_repository] = lambda: mock_keyword_repo
    app.dependency_overrides[get_credential_pool] = lambda: mock_pool
    app.dependency_overrides[get_database] = lambda: mock_db
    app.dependency_overrides[get_registry] = lambda: mock_registry
    app.dependency_overrides[get_fetch_client] = lambda: mock_fetch_client

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
