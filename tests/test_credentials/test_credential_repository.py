"""Tests for CredentialRepository."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from src.credentials.repository import CredentialRepository


@pytest.fixture
def credential_row() -> dict:
    return {
        "id": "cred-1",
        "provider": "bilibili",
        "name": "main",
        "secret_value": "SESSDATA=abc",
        "error_count": 1,
        "last_error": "HTTP 412",
        "last_used": None,
        "is_active": True,
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }


class TestCredentialRepository:
    @pytest.mark.asyncio
    async def test_create_uses_on_conflict(self, mock_database: AsyncMock, credential_row):
        mock_database.fetchrow.return_value = credential_row
        repo = CredentialRepository(mock_database)

        created = await repo.create("bilibili", "main", "SESSDATA=abc")

        sql = mock_database.fetchrow.call_args[0][0]
        assert "ON CONFLICT (provider, name) DO NOTHING" in sql
        assert created.id == "cred-1"
        assert created.error_count == 1

    @pytest.mark.asyncio
    async def test_create_duplicate_returns_none(self, mock_database: AsyncMock):
        repo = CredentialRepository(mock_database)
        assert await repo.create("bilibili", "main", "x") is None

    @pytest.mark.asyncio
    async def test_increment_error_is_single_statement(self, mock_database: AsyncMock):
        mock_database.fetchval.return_value = 2
        repo = CredentialRepository(mock_database)

        count = await repo.increment_error("cred-1", "boom")

        sql, cid, message = mock_database.fetchval.call_args[0]
        assert "error_count = error_count + 1" in sql
        assert (cid, message) == ("cred-1", "boom")
        assert count == 2

    @pytest.mark.asyncio
    async def test_list_filters_by_provider(self, mock_database: AsyncMock, credential_row):
        mock_database.fetch.return_value = [credential_row]
        repo = CredentialRepository(mock_database)

        creds = await repo.list_for_provider("bilibili")

        args = mock_database.fetch.call_args[0]
        assert "WHERE provider = $1" in args[0]
        assert args[1] == "bilibili"
        assert creds[0].provider == "bilibili"

    @pytest.mark.asyncio
    async def test_delete_reports_row_count(self, mock_database: AsyncMock):
        repo = CredentialRepository(mock_database)

        mock_database.execute.return_value = "DELETE 1"
        assert await repo.delete("cred-1") is True

        mock_database.execute.return_value = "DELETE 0"
        assert await repo.delete("cred-1") is False

    @pytest.mark.asyncio
    async def test_record_check_leaves_error_count(self, mock_database: AsyncMock, credential_row):
        checked_at = datetime(2026, 2, 1, tzinfo=timezone.utc)
        mock_database.fetchrow.return_value = {
            **credential_row,
            "last_check_at": checked_at,
            "check_result": "valid",
        }
        repo = CredentialRepository(mock_database)

        credential = await repo.record_check("cred-1", "valid")

        sql, cid, result = mock_database.fetchrow.call_args[0]
        assert "last_check_at = NOW()" in sql
        assert "error_count" not in sql
        assert (cid, result) == ("cred-1", "valid")
        assert credential.check_result == "valid"
        assert credential.last_check_at == checked_at
        assert credential.error_count == 1

    @pytest.mark.asyncio
    async def test_rows_without_check_columns(self, mock_database: AsyncMock, credential_row):
        mock_database.fetchrow.return_value = credential_row
        repo = CredentialRepository(mock_database)

        credential = await repo.get("cred-1")

        assert credential.last_check_at is None
        assert credential.check_result is None
