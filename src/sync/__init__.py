"""
Sync engine: errors, configuration, orchestration and health checks.

The orchestrator and health checker depend on the ingestion layer, which
itself imports the error taxonomy from here, so they are imported from
their modules directly:

    from src.sync.orchestrator import SyncOrchestrator
    from src.sync.health import HealthChecker
"""

from src.sync.config import SyncConfig
from src.sync.errors import (
    CredentialError,
    DuplicateError,
    NotFoundError,
    RunInProgressError,
    SourceDisabledError,
    SyncCancelledError,
    SyncError,
    UpstreamError,
    ValidationError,
)

__all__ = [
    "CredentialError",
    "DuplicateError",
    "NotFoundError",
    "RunInProgressError",
    "SourceDisabledError",
    "SyncCancelledError",
    "SyncConfig",
    "SyncError",
    "UpstreamError",
    "ValidationError",
]
