"""Data source service: seeding and operator updates."""

import json
import logging
import time
from pathlib import Path
from typing import Any

from src.sources.config import SourcesConfig
from src.sources.repository import DataSourceRepository
from src.sources.schemas import DataSource
from src.storage.database import Database
from src.sync.errors import NotFoundError, ValidationError
from src.sync_log.repository import SyncLogRepository
from src.sync_log.schemas import LogStatus, LogType, SyncLogEntry

logger = logging.getLogger(__name__)

_SEED_FILE = Path(__file__).parent / "data" / "default_sources.json"


def _parse_seed_entry(entry: dict) -> DataSource:
    """Convert a JSON seed entry to a DataSource dataclass."""
    return DataSource(
        id="",
        name=entry["name"],
        display_name=entry.get("display_name", entry["name"]),
        enabled=entry.get("enabled", True),
        api_base_url=entry.get("api_base_url"),
        tags=entry.get("tags", []),
        config=entry.get("config", {}),
    )


class DataSourceService:
    """Seed support and audited updates on top of DataSourceRepository."""

    def __init__(
        self,
        database: Database,
        config: SourcesConfig | None = None,
    ) -> None:
        self._db = database
        self._config = config or SourcesConfig()
        self._repo = DataSourceRepository(database)
        self._logs = SyncLogRepository(database)

    @property
    def repository(self) -> DataSourceRepository:
        """Access the underlying repository for direct DB operations."""
        return self._repo

    # ── Seed ────────────────────────────────────────────────────

    async def seed_from_json(self, path: Path | None = None) -> int:
        """Insert the sources listed in a JSON file that do not exist yet.

        Returns the number of sources created.
        """
        seed_path = path or Path(self._config.seed_file or _SEED_FILE)
        with open(seed_path, encoding="utf-8") as f:
            entries = json.load(f)

        created = 0
        for entry in entries:
            if await self._repo.seed(_parse_seed_entry(entry)):
                created += 1
        logger.info("Seeded %d of %d data sources from %s", created, len(entries), seed_path)
        return created

    async def ensure_seeded(self) -> None:
        """Seed from the default JSON if the table is empty and seed_on_init is True."""
        if not self._config.seed_on_init:
            return

        existing = await self._repo.count()
        if existing > 0:
            logger.debug("Data sources table has %d rows, skipping seed", existing)
            return

        logger.info("Data sources table empty, seeding defaults")
        await self.seed_from_json()

    # ── Operator updates ────────────────────────────────────────

    async def get(self, source_id: str) -> DataSource:
        source = await self._repo.get(source_id)
        if source is None:
            raise NotFoundError(f"Data source not found: {source_id}")
        return source

    async def update_config(
        self,
        source_id: str,
        display_name: str | None = None,
        api_base_url: str | None = None,
        api_key: str | None = None,
        tags: list[str] | None = None,
        config: dict[str, Any] | None = None,
    ) -> DataSource:
        """Update editable fields and append a config_update log entry atomically."""
        source = await self.get(source_id)
        if config is not None and not isinstance(config, dict):
            raise ValidationError("config must be an object")

        changed = [
            name
            for name, value in (
                ("display_name", display_name),
                ("api_base_url", api_base_url),
                ("api_key", api_key),
                ("tags", tags),
                ("config", config),
            )
            if value is not None
        ]

        started = time.monotonic()
        async with self._db.transaction() as conn:
            updated = await self._repo.update_settings(
                source_id,
                display_name=display_name,
                api_base_url=api_base_url,
                api_key=api_key,
                tags=tags,
                config=config,
                conn=conn,
            )
            await self._logs.append(
                SyncLogEntry(
                    source_id=source.id,
                    source_name=source.name,
                    type=LogType.CONFIG_UPDATE,
                    status=LogStatus.SUCCESS,
                    request_method="PUT",
                    duration_ms=int((time.monotonic() - started) * 1000),
                    error_message=f"updated: {', '.join(changed)}" if changed else None,
                ),
                conn=conn,
            )

        logger.info("Data source %s updated (%s)", source.name, ", ".join(changed) or "no changes")
        return updated or source

    async def toggle(self, source_id: str, enabled: bool | None = None) -> DataSource:
        """Flip (or set) the enabled flag."""
        source = await self.get(source_id)
        target = (not source.enabled) if enabled is None else enabled
        updated = await self._repo.set_enabled(source_id, target)
        logger.info("Data source %s %s", source.name, "enabled" if target else "disabled")
        return updated or source
