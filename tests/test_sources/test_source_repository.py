"""Tests for DataSourceRepository."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from src.sources.repository import DataSourceRepository
from src.sources.schemas import DataSource, HealthStatus, SyncStatus


class TestSeed:
    @pytest.mark.asyncio
    async def test_seed_never_overwrites(self, mock_database: AsyncMock):
        mock_database.fetchrow.return_value = {"id": "new"}
        repo = DataSourceRepository(mock_database)

        created = await repo.seed(DataSource(id="", name="arxiv", tags=["paper"]))

        args = mock_database.fetchrow.call_args[0]
        assert "ON CONFLICT (name) DO NOTHING" in args[0]
        assert args[1]  # generated id
        assert args[2] == "arxiv"
        assert args[6] == ["paper"]
        assert created is True

    @pytest.mark.asyncio
    async def test_seed_existing_returns_false(self, mock_database: AsyncMock):
        repo = DataSourceRepository(mock_database)
        assert await repo.seed(DataSource(id="", name="arxiv")) is False


class TestReads:
    @pytest.mark.asyncio
    async def test_get_maps_row(self, mock_database: AsyncMock, sample_source_row: dict):
        mock_database.fetchrow.return_value = sample_source_row
        repo = DataSourceRepository(mock_database)

        source = await repo.get("src-github")

        assert source.name == "github"
        assert source.health_status == HealthStatus.HEALTHY
        assert source.last_sync_status == SyncStatus.SUCCESS
        assert source.last_sync_result == {"synced": 12, "errors": 0}
        assert source.config["maxResults"] == 30

    @pytest.mark.asyncio
    async def test_get_missing(self, mock_database: AsyncMock):
        repo = DataSourceRepository(mock_database)
        assert await repo.get("nope") is None

    @pytest.mark.asyncio
    async def test_list_enabled_only(self, mock_database: AsyncMock, sample_source_row: dict):
        mock_database.fetch.return_value = [sample_source_row]
        repo = DataSourceRepository(mock_database)

        sources = await repo.list_sources(enabled_only=True)

        assert "WHERE enabled = TRUE" in mock_database.fetch.call_args[0][0]
        assert len(sources) == 1


class TestWrites:
    @pytest.mark.asyncio
    async def test_update_settings_only_given_columns(
        self, mock_database: AsyncMock, sample_source_row: dict
    ):
        mock_database.fetchrow.return_value = sample_source_row
        repo = DataSourceRepository(mock_database)

        await repo.update_settings("src-github", display_name="GH", config={"maxResults": 5})

        sql, *params = mock_database.fetchrow.call_args[0]
        assert "display_name = $2" in sql
        assert "config = $3" in sql
        assert "api_key" not in sql
        assert params == ["src-github", "GH", {"maxResults": 5}]

    @pytest.mark.asyncio
    async def test_update_settings_nothing_to_change(
        self, mock_database: AsyncMock, sample_source_row: dict
    ):
        mock_database.fetchrow.return_value = sample_source_row
        repo = DataSourceRepository(mock_database)

        source = await repo.update_settings("src-github")

        assert "SELECT * FROM data_sources" in mock_database.fetchrow.call_args[0][0]
        assert source.id == "src-github"

    @pytest.mark.asyncio
    async def test_update_health_uses_transaction_conn(self, mock_database: AsyncMock):
        conn = AsyncMock()
        repo = DataSourceRepository(mock_database)
        checked = datetime(2026, 1, 20, tzinfo=timezone.utc)

        await repo.update_health("s1", HealthStatus.UNHEALTHY, "[timeout] slow", checked, conn=conn)

        args = conn.execute.call_args[0]
        assert args[1:] == ("s1", "unhealthy", "[timeout] slow", checked)
        mock_database.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_claim_sync(self, mock_database: AsyncMock):
        repo = DataSourceRepository(mock_database)

        mock_database.fetchval.return_value = "s1"
        assert await repo.claim_sync("s1", 30) is True
        sql, source_id, minutes = mock_database.fetchval.call_args[0]
        assert "last_sync_status <> 'running'" in sql
        assert (source_id, minutes) == ("s1", 30)

        mock_database.fetchval.return_value = None
        assert await repo.claim_sync("s1", 30) is False

    @pytest.mark.asyncio
    async def test_finish_sync_writes_summary(self, mock_database: AsyncMock):
        repo = DataSourceRepository(mock_database)

        await repo.finish_sync("s1", SyncStatus.SUCCESS, 7, 1)

        sql, *params = mock_database.execute.call_args[0]
        assert "sync_started_at = NULL" in sql
        assert params == ["s1", "success", {"synced": 7, "errors": 1}]

    @pytest.mark.asyncio
    async def test_reject_sync_keeps_last_run(self, mock_database: AsyncMock, mock_conn: AsyncMock):
        repo = DataSourceRepository(mock_database)

        await repo.reject_sync("s1", SyncStatus.ERROR, conn=mock_conn)

        sql, *params = mock_conn.execute.call_args[0]
        assert "last_sync_at" not in sql
        assert "last_sync_result" not in sql
        assert "last_sync_status <> 'running'" in sql
        assert params == ["s1", "error"]
        mock_database.execute.assert_not_called()
