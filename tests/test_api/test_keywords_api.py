"""Tests for the keyword subscription endpoints."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

from src.ingestion.schemas import ContentItem, ContentKind
from src.keywords.schemas import Keyword, KeywordScope, KeywordSourceType
from src.sync.errors import DuplicateError


def _keyword(**kwargs) -> Keyword:
    return Keyword(
        id=kwargs.pop("id", "kw-vla"),
        keyword=kwargs.pop("keyword", "VLA"),
        scope=kwargs.pop("scope", KeywordScope.PAPER),
        priority=kwargs.pop("priority", 80),
        created_at=datetime(2026, 1, 10, tzinfo=timezone.utc),
        **kwargs,
    )


class TestKeywordCrud:
    def test_list_with_filters(self, client, mock_keyword_repo):
        mock_keyword_repo.list_keywords.return_value = ([_keyword()], 1)

        resp = client.get(
            "/admin/keywords",
            params={"scope": "paper", "isActive": "true", "sourceType": "admin", "search": "vl"},
        )

        data = resp.json()["data"]
        assert data["total"] == 1
        assert data["items"][0]["keyword"] == "VLA"
        kwargs = mock_keyword_repo.list_keywords.await_args.kwargs
        assert kwargs["scope"] == KeywordScope.PAPER
        assert kwargs["is_active"] is True
        assert kwargs["source_type"] == KeywordSourceType.ADMIN
        assert kwargs["search"] == "vl"

    def test_create_strips_keyword(self, client, mock_keyword_repo):
        mock_keyword_repo.create = AsyncMock(side_effect=lambda k: k)

        resp = client.post(
            "/admin/keywords",
            json={"keyword": "  humanoid  ", "scope": "video", "priority": 90},
        )

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["keyword"] == "humanoid"
        assert data["scope"] == "video"
        assert data["source_type"] == "admin"

    def test_create_duplicate_is_409(self, client, mock_keyword_repo):
        mock_keyword_repo.create = AsyncMock(
            side_effect=DuplicateError("Keyword already exists in paper: VLA")
        )

        resp = client.post("/admin/keywords", json={"keyword": "VLA"})

        assert resp.status_code == 409
        assert resp.json()["message"] == "Keyword already exists in paper: VLA"

    def test_priority_out_of_range(self, client):
        resp = client.post("/admin/keywords", json={"keyword": "VLA", "priority": 101})
        assert resp.status_code == 422

    def test_batch_reports_skipped(self, client, mock_keyword_repo):
        mock_keyword_repo.batch_create = AsyncMock(return_value=([_keyword()], ["LLM"]))

        resp = client.post(
            "/admin/keywords/batch",
            json={"keywords": [{"keyword": "VLA"}, {"keyword": "LLM"}]},
        )

        data = resp.json()["data"]
        assert (data["created"], data["skipped"]) == (1, 1)
        assert data["skipped_keywords"] == ["LLM"]

    def test_get_unknown_is_404(self, client):
        resp = client.get("/admin/keywords/missing")
        assert resp.status_code == 404

    def test_update(self, client, mock_keyword_repo):
        mock_keyword_repo.update = AsyncMock(return_value=_keyword(priority=10))

        resp = client.put("/admin/keywords/kw-vla", json={"priority": 10, "isActive": False})

        assert resp.json()["data"]["priority"] == 10
        mock_keyword_repo.update.assert_awaited_once_with("kw-vla", is_active=False, priority=10)

    def test_delete_unknown_is_404(self, client, mock_keyword_repo):
        mock_keyword_repo.delete = AsyncMock(return_value=False)

        resp = client.delete("/admin/keywords/kw-x")

        assert resp.status_code == 404


class TestKeywordContent:
    def test_matching_content(self, client, mock_keyword_repo):
        keyword = _keyword()
        mock_keyword_repo.get.return_value = keyword
        item = ContentItem(
            external_id="2601.01234",
            source_name="arxiv",
            kind=ContentKind.PAPER,
            title="Scaling VLA models",
        )
        mock_keyword_repo.content_for_keyword = AsyncMock(return_value=([item], 1))

        resp = client.get("/admin/keywords/kw-vla/content", params={"limit": 5})

        data = resp.json()["data"]
        assert data["keyword"] == "VLA"
        assert data["items"][0]["external_id"] == "2601.01234"
        assert data["has_more"] is False
        mock_keyword_repo.content_for_keyword.assert_awaited_once_with(keyword, limit=5, offset=0)
