"""
GitHub adapter using the repository search API.

Repositories are ranked by stars. A token (GITHUB_TOKEN or the source's
api_key) raises the search rate limit from 10 to 30 requests/minute.
"""

import logging
from typing import Any

from src.credentials.schemas import Credential
from src.ingestion.base_adapter import BaseAdapter, parse_iso_datetime, since_datetime
from src.ingestion.schemas import ContentItem, ContentKind, ProbeResult

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100


class GitHubAdapter(BaseAdapter):
    """Adapter for GitHub repository search."""

    name = "github"
    kind = ContentKind.REPOSITORY
    default_base_url = "https://api.github.com"
    default_query = "embodied ai robot"

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def search(
        self,
        query: str,
        limit: int,
        since_days: int | None = None,
        credential: Credential | None = None,
    ) -> list[ContentItem]:
        q = query.strip()
        if since_days:
            q = f"{q} pushed:>={since_datetime(since_days):%Y-%m-%d}"

        params = {
            "q": q,
            "sort": "stars",
            "order": "desc",
            "per_page": min(limit, MAX_PER_PAGE),
        }
        data = await self._get_json(
            self._url("/search/repositories"), params=params, headers=self._headers()
        )
        if not isinstance(data, dict):
            raise self._parse_error("unexpected search response shape")

        return [self._transform(repo) for repo in data.get("items", [])][:limit]

    async def probe(self, credential: Credential | None = None) -> ProbeResult:
        url = self._url("/zen")
        await self._get_text(url, headers=self._headers())
        return ProbeResult(items=0, request_url=url)

    def _transform(self, repo: dict[str, Any]) -> ContentItem:
        owner = repo.get("owner") or {}
        return ContentItem(
            external_id=repo["full_name"],
            source_name=self.name,
            kind=self.kind,
            title=repo["full_name"],
            body=repo.get("description") or "",
            url=repo.get("html_url"),
            published_at=parse_iso_datetime(repo.get("created_at")),
            authors=[owner["login"]] if owner.get("login") else [],
            metadata={
                "stars": repo.get("stargazers_count", 0),
                "forks": repo.get("forks_count", 0),
                "language": repo.get("language"),
                "topics": repo.get("topics", []),
                "pushed_at": repo.get("pushed_at"),
                "license": (repo.get("license") or {}).get("spdx_id"),
            },
        )
