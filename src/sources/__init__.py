"""Sources: database-backed data source management."""

from src.sources.config import SourcesConfig
from src.sources.repository import DataSourceRepository
from src.sources.schemas import DataSource, HealthStatus, SyncStatus
from src.sources.service import DataSourceService

__all__ = [
    "DataSource",
    "DataSourceRepository",
    "DataSourceService",
    "HealthStatus",
    "SourcesConfig",
    "SyncStatus",
]
