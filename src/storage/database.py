"""
PostgreSQL connection pool for the sync engine.

Repositories share one pool. Writes that must commit together (a source
summary update plus its sync-log entry) go through `transaction()`, which
hands the connection to each repository call.
"""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from types import TracebackType
from typing import Any

import asyncpg

from src.config.settings import get_settings

logger = logging.getLogger(__name__)

APPLICATION_NAME = "embodied-sync"


async def _init_connection(conn: asyncpg.Connection) -> None:
    """Round-trip JSONB columns (config, metadata, last_sync_result) as dicts."""
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


class Database:
    """
    asyncpg pool wrapper.

    Usage:
        async with Database() as db:
            sources = await db.fetch("SELECT * FROM data_sources")

            async with db.transaction() as conn:
                await conn.execute("UPDATE data_sources ...")
                await conn.execute("INSERT INTO sync_logs ...")
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
        command_timeout: float | None = None,
    ):
        settings = get_settings()

        self._database_url = database_url or str(settings.database_url)
        self._min_size = min_size or settings.db_pool_min_size
        self._max_size = max_size or settings.db_pool_max_size
        self._command_timeout = command_timeout or settings.db_command_timeout
        self._pool: asyncpg.Pool | None = None

    @property
    def connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        """Create the pool. Calling it on a connected instance is a no-op."""
        if self._pool is not None:
            return
        try:
            self._pool = await asyncpg.create_pool(
                self._database_url,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=self._command_timeout,
                init=_init_connection,
                server_settings={"application_name": APPLICATION_NAME},
            )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("Failed to connect to database: %s", e)
            raise
        logger.info("Database connected (pool: %d-%d)", self._min_size, self._max_size)

    async def close(self) -> None:
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database connection closed")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Yield a connection inside a transaction; repositories accept it as `conn`."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement and return its status tag (e.g. "UPDATE 1")."""
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self.pool.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        async with self.pool.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def health_check(self) -> bool:
        """True if the pool answers SELECT 1."""
        try:
            return await self.fetchval("SELECT 1") == 1
        except (OSError, RuntimeError, asyncpg.PostgresError) as e:
            logger.warning("Database health check failed: %s", e)
            return False
