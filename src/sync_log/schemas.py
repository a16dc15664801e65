"""Data models for the sync log."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class LogType(str, Enum):
    SYNC = "sync"
    HEALTH_CHECK = "health_check"
    CONFIG_UPDATE = "config_update"


class LogStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"


@dataclass
class SyncLogEntry:
    """One append-only audit record for a sync, health check or config change.

    source_name is denormalised so entries stay readable after the
    source row is deleted.
    """

    source_id: str
    type: LogType
    status: LogStatus
    source_name: str | None = None
    request_url: str | None = None
    request_method: str | None = None
    response_code: int | None = None
    duration_ms: int = 0
    synced_count: int | None = None
    error_count: int | None = None
    error_message: str | None = None
    id: int | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source_id": self.source_id,
            "source_name": self.source_name,
            "type": self.type.value,
            "status": self.status.value,
            "request_url": self.request_url,
            "request_method": self.request_method,
            "response_code": self.response_code,
            "duration_ms": self.duration_ms,
            "synced_count": self.synced_count,
            "error_count": self.error_count,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
