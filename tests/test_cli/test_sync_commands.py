"""Tests for the sync and health CLI commands."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from src.cli import main
from src.credentials.pool import PoolStatus
from src.credentials.schemas import PoolHealth
from src.keywords.schemas import KeywordScope
from src.sources.schemas import DataSource, HealthStatus, SyncStatus
from src.sync.errors import RunInProgressError
from src.sync.health import HealthCheckResult, HealthSummary
from src.sync.orchestrator import SyncResult


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def mock_db():
    """Create a mock Database that works as async context."""
    db = AsyncMock()
    db.__aenter__ = AsyncMock(return_value=db)
    db.__aexit__ = AsyncMock(return_value=False)
    db.health_check = AsyncMock(return_value=True)
    return db


@pytest.fixture
def arxiv_source():
    return DataSource(id="src-arxiv", name="arxiv", api_base_url="http://export.arxiv.org/api/query")


def _engine():
    return MagicMock(), MagicMock(), MagicMock(), MagicMock()


class TestSyncSource:
    def test_success(self, runner, mock_db, arxiv_source):
        orchestrator = AsyncMock()
        orchestrator.sync_source.return_value = SyncResult(
            source_name="arxiv", status="success", synced=12, duration_ms=840
        )

        with patch("src.cli.Database", return_value=mock_db), \
             patch("src.cli._resolve_source", AsyncMock(return_value=arxiv_source)), \
             patch("src.cli._build_engine", return_value=_engine()), \
             patch("src.sync.orchestrator.SyncOrchestrator", return_value=orchestrator):
            result = runner.invoke(
                main, ["sync-source", "arxiv", "--query", "humanoid", "--max-results", "5"]
            )

        assert result.exit_code == 0
        assert "synced=12 errors=0" in result.output
        orchestrator.sync_source.assert_awaited_once_with(
            "src-arxiv", override_config={"query": "humanoid", "maxResults": 5}, force=False
        )

    def test_error_result_exits_nonzero(self, runner, mock_db, arxiv_source):
        orchestrator = AsyncMock()
        orchestrator.sync_source.return_value = SyncResult(
            source_name="arxiv", status="error", errors=3, error_message="3 item(s) failed"
        )

        with patch("src.cli.Database", return_value=mock_db), \
             patch("src.cli._resolve_source", AsyncMock(return_value=arxiv_source)), \
             patch("src.cli._build_engine", return_value=_engine()), \
             patch("src.sync.orchestrator.SyncOrchestrator", return_value=orchestrator):
            result = runner.invoke(main, ["sync-source", "arxiv"])

        assert result.exit_code == 1
        assert "3 item(s) failed" in result.output

    def test_sync_error_reported(self, runner, mock_db, arxiv_source):
        orchestrator = AsyncMock()
        orchestrator.sync_source.side_effect = RunInProgressError("Sync already running for arxiv")

        with patch("src.cli.Database", return_value=mock_db), \
             patch("src.cli._resolve_source", AsyncMock(return_value=arxiv_source)), \
             patch("src.cli._build_engine", return_value=_engine()), \
             patch("src.sync.orchestrator.SyncOrchestrator", return_value=orchestrator):
            result = runner.invoke(main, ["sync-source", "arxiv", "--force"])

        assert result.exit_code == 1
        assert "Sync already running for arxiv" in result.output
        assert orchestrator.sync_source.await_args.kwargs["force"] is True


class TestSyncKeywords:
    def test_passes_options(self, runner, mock_db):
        orchestrator = AsyncMock()
        orchestrator.sync_by_keywords.return_value = SyncResult(
            source_name="bilibili", status="warning", synced=6, errors=1, keywords=3,
            error_message="1 keyword search(es) failed: LLM",
        )

        with patch("src.cli.Database", return_value=mock_db), \
             patch("src.cli._build_engine", return_value=_engine()), \
             patch("src.sync.orchestrator.SyncOrchestrator", return_value=orchestrator):
            result = runner.invoke(
                main,
                ["sync-keywords", "--source", "bilibili", "--scope", "video", "--days", "3"],
            )

        assert result.exit_code == 0
        assert "keywords=3" in result.output
        args = orchestrator.sync_by_keywords.await_args
        assert args.args == ("bilibili", KeywordScope.VIDEO)
        assert args.kwargs["days"] == 3
        assert args.kwargs["source_type"] == "all"

    def test_rejects_unknown_scope(self, runner):
        result = runner.invoke(main, ["sync-keywords", "--scope", "podcast"])
        assert result.exit_code == 2


class TestHealthCheck:
    def test_unhealthy_source_exits_nonzero(self, runner, mock_db):
        checker = AsyncMock()
        checker.check_all_health.return_value = HealthSummary(
            results=[
                HealthCheckResult("a", "arxiv", HealthStatus.HEALTHY, latency_ms=120),
                HealthCheckResult(
                    "g", "github", HealthStatus.UNHEALTHY, latency_ms=10000,
                    error="[timeout] github probe timed out",
                ),
            ]
        )

        with patch("src.cli.Database", return_value=mock_db), \
             patch("src.cli._build_engine", return_value=_engine()), \
             patch("src.sync.health.HealthChecker", return_value=checker):
            result = runner.invoke(main, ["health-check"])

        assert result.exit_code == 1
        assert "github probe timed out" in result.output
        assert "1 source(s) unhealthy" in result.output

    def test_single_source(self, runner, mock_db, arxiv_source):
        checker = AsyncMock()
        checker.check_health.return_value = HealthCheckResult(
            "src-arxiv", "arxiv", HealthStatus.HEALTHY
        )

        with patch("src.cli.Database", return_value=mock_db), \
             patch("src.cli._build_engine", return_value=_engine()), \
             patch("src.cli._resolve_source", AsyncMock(return_value=arxiv_source)), \
             patch("src.sync.health.HealthChecker", return_value=checker):
            result = runner.invoke(main, ["health-check", "--source", "arxiv"])

        assert result.exit_code == 0
        checker.check_health.assert_awaited_once_with("src-arxiv")
        checker.check_all_health.assert_not_awaited()


class TestListSources:
    def test_lists_sources_and_pools(self, runner, mock_db, arxiv_source):
        arxiv_source.last_sync_status = SyncStatus.SUCCESS
        arxiv_source.last_sync_result = {"synced": 12, "errors": 0}
        repo = AsyncMock()
        repo.list_sources.return_value = [arxiv_source]
        pool = AsyncMock()
        pool.status.return_value = [
            PoolStatus("bilibili", PoolHealth.ALL_FAILED, total=1, active=1, usable=0)
        ]

        with patch("src.cli.Database", return_value=mock_db), \
             patch("src.sources.repository.DataSourceRepository", return_value=repo), \
             patch("src.credentials.pool.CredentialPool", return_value=pool):
            result = runner.invoke(main, ["list-sources"])

        assert result.exit_code == 0
        assert "synced=12 errors=0" in result.output
        assert "全部失效 (0/1 usable)" in result.output

    def test_empty_table_hint(self, runner, mock_db):
        repo = AsyncMock()
        repo.list_sources.return_value = []

        with patch("src.cli.Database", return_value=mock_db), \
             patch("src.sources.repository.DataSourceRepository", return_value=repo), \
             patch("src.credentials.pool.CredentialPool", return_value=AsyncMock()):
            result = runner.invoke(main, ["list-sources"])

        assert "seed-sources" in result.output
