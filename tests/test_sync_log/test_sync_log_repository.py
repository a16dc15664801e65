"""Tests for SyncLogRepository."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from src.sync_log.repository import SyncLogRepository
from src.sync_log.schemas import LogStatus, LogType, SyncLogEntry


@pytest.fixture
def log_row() -> dict:
    return {
        "id": 41,
        "source_id": "src-arxiv",
        "source_name": "arxiv",
        "type": "sync",
        "status": "warning",
        "request_url": "http://export.arxiv.org/api/query",
        "request_method": "GET",
        "response_code": None,
        "duration_ms": 1520,
        "synced_count": 18,
        "error_count": 2,
        "error_message": "2 item(s) failed",
        "created_at": datetime(2026, 1, 20, 8, 0, tzinfo=timezone.utc),
    }


class TestAppend:
    @pytest.mark.asyncio
    async def test_fills_id_and_created_at(self, mock_database: AsyncMock):
        created = datetime(2026, 1, 20, tzinfo=timezone.utc)
        mock_database.fetchrow.return_value = {"id": 7, "created_at": created}
        repo = SyncLogRepository(mock_database)
        entry = SyncLogEntry(
            source_id="src-arxiv",
            source_name="arxiv",
            type=LogType.HEALTH_CHECK,
            status=LogStatus.ERROR,
            error_message="[timeout] slow",
        )

        saved = await repo.append(entry)

        args = mock_database.fetchrow.call_args[0]
        assert "INSERT INTO sync_logs" in args[0]
        assert args[3] == "health_check"
        assert args[4] == "error"
        assert saved.id == 7
        assert saved.created_at == created

    @pytest.mark.asyncio
    async def test_uses_transaction_conn(self, mock_database: AsyncMock, mock_conn: AsyncMock):
        repo = SyncLogRepository(mock_database)

        await repo.append(
            SyncLogEntry(source_id="s1", type=LogType.SYNC, status=LogStatus.SUCCESS),
            conn=mock_conn,
        )

        mock_conn.fetchrow.assert_awaited_once()
        mock_database.fetchrow.assert_not_called()


class TestListForSource:
    @pytest.mark.asyncio
    async def test_newest_first_with_type_filter(self, mock_database: AsyncMock, log_row: dict):
        mock_database.fetchval.return_value = 3
        mock_database.fetch.return_value = [log_row]
        repo = SyncLogRepository(mock_database)

        entries, total = await repo.list_for_source(
            "src-arxiv", limit=1, offset=2, log_type=LogType.SYNC
        )

        assert total == 3
        assert entries[0].status == LogStatus.WARNING
        assert entries[0].to_dict()["created_at"] == "2026-01-20T08:00:00+00:00"
        sql, *params = mock_database.fetch.call_args[0]
        assert "type = $2" in sql
        assert "ORDER BY created_at DESC" in sql
        assert params == ["src-arxiv", "sync", 1, 2]

    @pytest.mark.asyncio
    async def test_latest_for_source_empty(self, mock_database: AsyncMock):
        mock_database.fetchval.return_value = 0
        repo = SyncLogRepository(mock_database)

        assert await repo.latest_for_source("src-arxiv") is None
