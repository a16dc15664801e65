"""Database repository for the append-only sync_logs table."""

import logging

import asyncpg

from src.storage.database import Database
from src.sync_log.schemas import LogStatus, LogType, SyncLogEntry

logger = logging.getLogger(__name__)

# No foreign key: entries outlive the data source they describe
_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS sync_logs (
    id              BIGSERIAL PRIMARY KEY,
    source_id       TEXT NOT NULL,
    source_name     TEXT,
    type            TEXT NOT NULL,
    status          TEXT NOT NULL,
    request_url     TEXT,
    request_method  TEXT,
    response_code   INTEGER,
    duration_ms     INTEGER NOT NULL DEFAULT 0,
    synced_count    INTEGER,
    error_count     INTEGER,
    error_message   TEXT,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_sync_logs_source_created
    ON sync_logs(source_id, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_sync_logs_type
    ON sync_logs(type);
"""

_INSERT_SQL = """
INSERT INTO sync_logs (
    source_id, source_name, type, status, request_url, request_method,
    response_code, duration_ms, synced_count, error_count, error_message
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
RETURNING id, created_at
"""


def _record_to_entry(record: asyncpg.Record) -> SyncLogEntry:
    """Convert an asyncpg Record to a SyncLogEntry."""
    return SyncLogEntry(
        id=record["id"],
        source_id=record["source_id"],
        source_name=record["source_name"],
        type=LogType(record["type"]),
        status=LogStatus(record["status"]),
        request_url=record["request_url"],
        request_method=record["request_method"],
        response_code=record["response_code"],
        duration_ms=record["duration_ms"],
        synced_count=record["synced_count"],
        error_count=record["error_count"],
        error_message=record["error_message"],
        created_at=record["created_at"],
    )


class SyncLogRepository:
    """Append and read operations for sync_logs. Entries are never updated."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the sync_logs table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Sync logs table ensured")

    async def append(
        self,
        entry: SyncLogEntry,
        conn: asyncpg.Connection | None = None,
    ) -> SyncLogEntry:
        """
        Insert one entry.

        Args:
            entry: Entry to write; id and created_at are filled in
            conn: Connection of an open transaction, so the entry commits
                together with the source summary update
        """
        args = (
            entry.source_id,
            entry.source_name,
            entry.type.value,
            entry.status.value,
            entry.request_url,
            entry.request_method,
            entry.response_code,
            entry.duration_ms,
            entry.synced_count,
            entry.error_count,
            entry.error_message,
        )
        executor = conn if conn is not None else self._db
        row = await executor.fetchrow(_INSERT_SQL, *args)
        if row:
            entry.id = row["id"]
            entry.created_at = row["created_at"]
        return entry

    async def list_for_source(
        self,
        source_id: str,
        limit: int = 20,
        offset: int = 0,
        log_type: LogType | None = None,
    ) -> tuple[list[SyncLogEntry], int]:
        """Newest-first page of entries for a source. Returns (entries, total)."""
        conditions = ["source_id = $1"]
        params: list = [source_id]
        idx = 2

        if log_type is not None:
            conditions.append(f"type = ${idx}")
            params.append(log_type.value)
            idx += 1

        where_clause = " WHERE " + " AND ".join(conditions)
        total = await self._db.fetchval(f"SELECT COUNT(*) FROM sync_logs{where_clause}", *params)

        data_sql = f"""
            SELECT * FROM sync_logs{where_clause}
            ORDER BY created_at DESC, id DESC
            LIMIT ${idx} OFFSET ${idx + 1}
        """
        params.extend([limit, offset])
        rows = await self._db.fetch(data_sql, *params)

        return [_record_to_entry(r) for r in rows], total or 0

    async def latest_for_source(
        self, source_id: str, log_type: LogType | None = None
    ) -> SyncLogEntry | None:
        entries, _ = await self.list_for_source(source_id, limit=1, log_type=log_type)
        return entries[0] if entries else None
