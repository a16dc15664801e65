"""Data models for the sources module."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


class SyncStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    RUNNING = "running"
    NONE = "none"


@dataclass
class DataSource:
    """A configured external content provider (arXiv, GitHub, Bilibili, ...).

    `name` is unique and doubles as the adapter registry key. Disabled
    sources are skipped by scheduled flows but can still be probed or
    synced manually.
    """

    id: str
    name: str
    display_name: str = ""
    enabled: bool = True
    api_base_url: str | None = None
    api_key: str | None = None
    tags: list[str] = field(default_factory=list)
    config: dict[str, Any] = field(default_factory=dict)
    health_status: HealthStatus = HealthStatus.UNKNOWN
    health_error: str | None = None
    last_health_check: datetime | None = None
    last_sync_at: datetime | None = None
    last_sync_status: SyncStatus = SyncStatus.NONE
    last_sync_result: dict[str, int] = field(
        default_factory=lambda: {"synced": 0, "errors": 0}
    )
    created_at: datetime | None = None
    updated_at: datetime | None = None
