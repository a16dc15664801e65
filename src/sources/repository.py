"""Database repository for the data_sources table."""

import logging
import uuid
from datetime import datetime
from typing import Any

import asyncpg

from src.sources.schemas import DataSource, HealthStatus, SyncStatus
from src.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS data_sources (
    id                 TEXT PRIMARY KEY,
    name               TEXT NOT NULL UNIQUE,
    display_name       TEXT NOT NULL DEFAULT '',
    enabled            BOOLEAN NOT NULL DEFAULT TRUE,
    api_base_url       TEXT,
    api_key            TEXT,
    tags               TEXT[] NOT NULL DEFAULT '{}',
    config             JSONB NOT NULL DEFAULT '{}',
    health_status      TEXT NOT NULL DEFAULT 'unknown',
    health_error       TEXT,
    last_health_check  TIMESTAMPTZ,
    last_sync_at       TIMESTAMPTZ,
    last_sync_status   TEXT NOT NULL DEFAULT 'none',
    last_sync_result   JSONB NOT NULL DEFAULT '{"synced": 0, "errors": 0}',
    sync_started_at    TIMESTAMPTZ,
    created_at         TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at         TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_data_sources_enabled
    ON data_sources(enabled) WHERE enabled = TRUE;
"""

# Seeding never overwrites operator edits to an existing row
_SEED_SQL = """
INSERT INTO data_sources (id, name, display_name, enabled, api_base_url, tags, config)
VALUES ($1, $2, $3, $4, $5, $6, $7)
ON CONFLICT (name) DO NOTHING
RETURNING id
"""

# A stale 'running' claim is one whose run died without finishing
_CLAIM_SYNC_SQL = """
UPDATE data_sources
SET last_sync_status = 'running',
    sync_started_at = NOW(),
    updated_at = NOW()
WHERE id = $1
  AND (
    last_sync_status <> 'running'
    OR sync_started_at IS NULL
    OR sync_started_at < NOW() - make_interval(mins => $2)
  )
RETURNING id
"""

_FINISH_SYNC_SQL = """
UPDATE data_sources
SET last_sync_at = NOW(),
    last_sync_status = $2,
    last_sync_result = $3,
    sync_started_at = NULL,
    updated_at = NOW()
WHERE id = $1
"""

_REJECT_SYNC_SQL = """
UPDATE data_sources
SET last_sync_status = $2,
    updated_at = NOW()
WHERE id = $1
  AND last_sync_status <> 'running'
"""

_UPDATE_HEALTH_SQL = """
UPDATE data_sources
SET health_status = $2,
    health_error = $3,
    last_health_check = $4,
    updated_at = NOW()
WHERE id = $1
"""


def _record_to_source(record: asyncpg.Record) -> DataSource:
    """Convert an asyncpg Record to a DataSource dataclass."""
    return DataSource(
        id=record["id"],
        name=record["name"],
        display_name=record["display_name"],
        enabled=record["enabled"],
        api_base_url=record["api_base_url"],
        api_key=record["api_key"],
        tags=list(record["tags"] or []),
        config=dict(record["config"]) if record["config"] else {},
        health_status=HealthStatus(record["health_status"]),
        health_error=record["health_error"],
        last_health_check=record["last_health_check"],
        last_sync_at=record["last_sync_at"],
        last_sync_status=SyncStatus(record["last_sync_status"]),
        last_sync_result=dict(record["last_sync_result"] or {"synced": 0, "errors": 0}),
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class DataSourceRepository:
    """CRUD and run-bookkeeping operations for the data_sources table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the data_sources table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Data sources table ensured")

    async def seed(self, source: DataSource) -> bool:
        """Insert a default source unless one with the same name exists."""
        row = await self._db.fetchrow(
            _SEED_SQL,
            source.id or uuid.uuid4().hex,
            source.name,
            source.display_name,
            source.enabled,
            source.api_base_url,
            source.tags,
            source.config,
        )
        return row is not None

    async def get(self, source_id: str) -> DataSource | None:
        row = await self._db.fetchrow("SELECT * FROM data_sources WHERE id = $1", source_id)
        return _record_to_source(row) if row else None

    async def get_by_name(self, name: str) -> DataSource | None:
        row = await self._db.fetchrow("SELECT * FROM data_sources WHERE name = $1", name)
        return _record_to_source(row) if row else None

    async def list_sources(self, enabled_only: bool = False) -> list[DataSource]:
        """All sources ordered by name, optionally only enabled ones."""
        if enabled_only:
            rows = await self._db.fetch(
                "SELECT * FROM data_sources WHERE enabled = TRUE ORDER BY name"
            )
        else:
            rows = await self._db.fetch("SELECT * FROM data_sources ORDER BY name")
        return [_record_to_source(r) for r in rows]

    async def count(self) -> int:
        return await self._db.fetchval("SELECT COUNT(*) FROM data_sources") or 0

    async def update_settings(
        self,
        source_id: str,
        display_name: str | None = None,
        api_base_url: str | None = None,
        api_key: str | None = None,
        tags: list[str] | None = None,
        config: dict[str, Any] | None = None,
        conn: asyncpg.Connection | None = None,
    ) -> DataSource | None:
        """Patch operator-editable fields; None leaves a field unchanged."""
        sets: list[str] = []
        params: list = [source_id]
        idx = 2

        for column, value in (
            ("display_name", display_name),
            ("api_base_url", api_base_url),
            ("api_key", api_key),
            ("tags", tags),
            ("config", config),
        ):
            if value is not None:
                sets.append(f"{column} = ${idx}")
                params.append(value)
                idx += 1

        if not sets:
            return await self.get(source_id)

        sql = f"""
            UPDATE data_sources SET {", ".join(sets)}, updated_at = NOW()
            WHERE id = $1
            RETURNING *
        """
        executor = conn if conn is not None else self._db
        row = await executor.fetchrow(sql, *params)
        return _record_to_source(row) if row else None

    async def set_enabled(self, source_id: str, enabled: bool) -> DataSource | None:
        row = await self._db.fetchrow(
            """
            UPDATE data_sources SET enabled = $2, updated_at = NOW()
            WHERE id = $1
            RETURNING *
            """,
            source_id,
            enabled,
        )
        return _record_to_source(row) if row else None

    async def update_health(
        self,
        source_id: str,
        status: HealthStatus,
        error: str | None,
        checked_at: datetime,
        conn: asyncpg.Connection | None = None,
    ) -> None:
        executor = conn if conn is not None else self._db
        await executor.execute(_UPDATE_HEALTH_SQL, source_id, status.value, error, checked_at)

    async def claim_sync(self, source_id: str, stale_minutes: int) -> bool:
        """
        Mark the source as running.

        Returns False when another live run already holds the claim.
        """
        claimed = await self._db.fetchval(_CLAIM_SYNC_SQL, source_id, stale_minutes)
        return claimed is not None

    async def finish_sync(
        self,
        source_id: str,
        status: SyncStatus,
        synced: int,
        errors: int,
        conn: asyncpg.Connection | None = None,
    ) -> None:
        """Write the run summary and release the running claim."""
        executor = conn if conn is not None else self._db
        await executor.execute(
            _FINISH_SYNC_SQL,
            source_id,
            status.value,
            {"synced": synced, "errors": errors},
        )

    async def reject_sync(
        self,
        source_id: str,
        status: SyncStatus = SyncStatus.ERROR,
        conn: asyncpg.Connection | None = None,
    ) -> None:
        """
        Record a refused sync request.

        Only last_sync_status changes. last_sync_at and last_sync_result
        still describe the last run that actually happened, and a live
        run's status is left alone.
        """
        executor = conn if conn is not None else self._db
        await executor.execute(_REJECT_SYNC_SQL, source_id, status.value)
