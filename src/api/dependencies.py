"""
Dependency injection for FastAPI endpoints.

Every collaborator is a lazily created process-wide singleton; tests
replace them through app.dependency_overrides.
"""

from src.config.settings import get_settings
from src.credentials.config import CredentialsConfig
from src.credentials.pool import CredentialPool
from src.credentials.repository import CredentialRepository
from src.ingestion.fetch_client import FetchClient
from src.ingestion.registry import AdapterRegistry, build_registry
from src.keywords.repository import KeywordRepository
from src.sources.config import SourcesConfig
from src.sources.service import DataSourceService
from src.storage.database import Database
from src.sync.config import SyncConfig
from src.sync.health import HealthChecker
from src.sync.orchestrator import SyncOrchestrator
from src.sync_log.repository import SyncLogRepository

# Global instances (initialized on first request)
_database: Database | None = None
_registry: AdapterRegistry | None = None
_credential_pool: CredentialPool | None = None
_fetch_client: FetchClient | None = None
_orchestrator: SyncOrchestrator | None = None
_health_checker: HealthChecker | None = None


async def get_database() -> Database:
    """Get the shared database, connecting on first use."""
    global _database

    if _database is None:
        _database = Database()
        await _database.connect()

    return _database


def get_registry() -> AdapterRegistry:
    """Adapter registry, built once from settings."""
    global _registry

    if _registry is None:
        _registry = build_registry(get_settings(), SyncConfig())

    return _registry


async def get_credential_pool() -> CredentialPool:
    global _credential_pool

    if _credential_pool is None:
        db = await get_database()
        _credential_pool = CredentialPool(CredentialRepository(db), CredentialsConfig())

    return _credential_pool


async def get_fetch_client() -> FetchClient:
    global _fetch_client

    if _fetch_client is None:
        pool = await get_credential_pool()
        _fetch_client = FetchClient(credential_pool=pool, config=SyncConfig())

    return _fetch_client


async def get_sync_orchestrator() -> SyncOrchestrator:
    """
    Get the sync orchestrator.

    A single instance per process so its in-process run guard sees
    every request.
    """
    global _orchestrator

    if _orchestrator is None:
        db = await get_database()
        _orchestrator = SyncOrchestrator(
            db, get_registry(), await get_fetch_client(), SyncConfig()
        )

    return _orchestrator


async def get_health_checker() -> HealthChecker:
    global _health_checker

    if _health_checker is None:
        db = await get_database()
        _health_checker = HealthChecker(db, get_registry(), await get_fetch_client())

    return _health_checker


async def get_data_source_service() -> DataSourceService:
    db = await get_database()
    return DataSourceService(db, SourcesConfig())


async def get_sync_log_repository() -> SyncLogRepository:
    db = await get_database()
    return SyncLogRepository(db)


async def get_keyword_repository() -> KeywordRepository:
    db = await get_database()
    return KeywordRepository(db)


async def cleanup_dependencies() -> None:
    """Clean up global dependencies on shutdown."""
    global _database, _registry, _credential_pool, _fetch_client, _orchestrator, _health_checker

    _orchestrator = None
    _health_checker = None
    _fetch_client = None
    _credential_pool = None
    _registry = None

    if _database is not None:
        await _database.close()
        _database = None
