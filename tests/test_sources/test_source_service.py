"""Tests for DataSourceService."""

import json
from unittest.mock import AsyncMock

import pytest

from src.sources.config import SourcesConfig
from src.sources.schemas import DataSource
from src.sources.service import DataSourceService
from src.sync.errors import NotFoundError, ValidationError
from src.sync_log.schemas import LogStatus, LogType


@pytest.fixture
def service(mock_database: AsyncMock) -> DataSourceService:
    svc = DataSourceService(mock_database, SourcesConfig(seed_on_init=True))
    svc._repo = AsyncMock()
    svc._logs = AsyncMock()
    return svc


class TestSeeding:
    @pytest.mark.asyncio
    async def test_seed_from_bundled_file(self, service: DataSourceService):
        service._repo.seed = AsyncMock(return_value=True)

        created = await service.seed_from_json()

        seeded = [c.args[0] for c in service._repo.seed.await_args_list]
        names = {s.name for s in seeded}
        assert created == len(seeded)
        assert {"arxiv", "github", "bilibili", "hot_news"} <= names
        arxiv = next(s for s in seeded if s.name == "arxiv")
        assert arxiv.api_base_url == "http://export.arxiv.org/api/query"
        assert arxiv.config["maxResults"] == 100

    @pytest.mark.asyncio
    async def test_seed_counts_only_new_rows(self, service: DataSourceService, tmp_path):
        seed_file = tmp_path / "sources.json"
        seed_file.write_text(
            json.dumps([{"name": "arxiv"}, {"name": "github", "enabled": False}]),
            encoding="utf-8",
        )
        service._repo.seed = AsyncMock(side_effect=[False, True])

        created = await service.seed_from_json(seed_file)

        assert created == 1
        github = service._repo.seed.await_args.args[0]
        assert github.enabled is False
        assert github.display_name == "github"

    @pytest.mark.asyncio
    async def test_ensure_seeded_skips_populated_table(self, service: DataSourceService):
        service._repo.count = AsyncMock(return_value=4)

        await service.ensure_seeded()

        service._repo.seed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ensure_seeded_disabled(self, mock_database: AsyncMock):
        svc = DataSourceService(mock_database, SourcesConfig(seed_on_init=False))
        svc._repo = AsyncMock()

        await svc.ensure_seeded()

        svc._repo.count.assert_not_awaited()


class TestUpdates:
    @pytest.mark.asyncio
    async def test_update_config_logs_in_same_transaction(
        self, service: DataSourceService, sample_source: DataSource, mock_conn
    ):
        service._repo.get = AsyncMock(return_value=sample_source)
        service._repo.update_settings = AsyncMock(return_value=sample_source)

        await service.update_config(sample_source.id, display_name="arXiv papers", tags=["p"])

        assert service._repo.update_settings.await_args.kwargs["conn"] is mock_conn
        entry = service._logs.append.await_args.args[0]
        assert entry.type == LogType.CONFIG_UPDATE
        assert entry.status == LogStatus.SUCCESS
        assert entry.error_message == "updated: display_name, tags"
        assert service._logs.append.await_args.kwargs["conn"] is mock_conn

    @pytest.mark.asyncio
    async def test_update_unknown_source(self, service: DataSourceService):
        service._repo.get = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError):
            await service.update_config("missing", display_name="x")

    @pytest.mark.asyncio
    async def test_update_rejects_non_object_config(
        self, service: DataSourceService, sample_source: DataSource
    ):
        service._repo.get = AsyncMock(return_value=sample_source)

        with pytest.raises(ValidationError):
            await service.update_config(sample_source.id, config=["not", "a", "dict"])

    @pytest.mark.asyncio
    async def test_toggle_flips_enabled(
        self, service: DataSourceService, sample_source: DataSource
    ):
        service._repo.get = AsyncMock(return_value=sample_source)
        service._repo.set_enabled = AsyncMock(return_value=sample_source)

        await service.toggle(sample_source.id)
        service._repo.set_enabled.assert_awaited_with(sample_source.id, False)

        await service.toggle(sample_source.id, enabled=True)
        service._repo.set_enabled.assert_awaited_with(sample_source.id, True)
