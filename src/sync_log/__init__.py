"""Sync log: append-only audit trail of syncs, health checks and config updates."""

from src.sync_log.repository import SyncLogRepository
from src.sync_log.schemas import LogStatus, LogType, SyncLogEntry

__all__ = ["LogStatus", "LogType", "SyncLogEntry", "SyncLogRepository"]
