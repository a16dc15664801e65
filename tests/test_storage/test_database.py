"""Tests for the asyncpg pool wrapper."""

from unittest.mock import AsyncMock, patch

import pytest

from src.storage.database import APPLICATION_NAME, Database, _init_connection


class TestDatabase:
    @pytest.mark.asyncio
    async def test_connect_configures_pool(self):
        pool = AsyncMock()
        db = Database("postgresql://u:p@localhost/test", min_size=1, max_size=3, command_timeout=5)

        with patch("asyncpg.create_pool", AsyncMock(return_value=pool)) as create_pool:
            await db.connect()
            await db.connect()

        create_pool.assert_awaited_once()
        kwargs = create_pool.await_args.kwargs
        assert kwargs["min_size"] == 1
        assert kwargs["max_size"] == 3
        assert kwargs["command_timeout"] == 5
        assert kwargs["init"] is _init_connection
        assert kwargs["server_settings"] == {"application_name": APPLICATION_NAME}
        assert db.connected

        await db.close()
        pool.close.assert_awaited_once()
        assert not db.connected

    def test_pool_requires_connect(self):
        with pytest.raises(RuntimeError):
            Database("postgresql://u:p@localhost/test").pool

    @pytest.mark.asyncio
    async def test_health_check_false_when_not_connected(self):
        assert await Database("postgresql://u:p@localhost/test").health_check() is False

    @pytest.mark.asyncio
    async def test_jsonb_codec_registered(self):
        conn = AsyncMock()

        await _init_connection(conn)

        args, kwargs = conn.set_type_codec.await_args
        assert args == ("jsonb",)
        assert kwargs["schema"] == "pg_catalog"
