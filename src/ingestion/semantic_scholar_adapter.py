"""
Semantic Scholar adapter using the Graph API paper search.

Config options:
    year: Year or range ("2024", "2022-2024")
    fieldsOfStudy: Comma-separated list ("Computer Science,Engineering")
"""

import logging
from datetime import datetime, timezone
from typing import Any

from src.credentials.schemas import Credential
from src.ingestion.base_adapter import BaseAdapter, since_datetime
from src.ingestion.schemas import ContentItem, ContentKind

logger = logging.getLogger(__name__)

PAPER_FIELDS = (
    "paperId,title,abstract,year,authors,url,venue,publicationDate,"
    "citationCount,externalIds,fieldsOfStudy"
)

MAX_LIMIT = 100


class SemanticScholarAdapter(BaseAdapter):
    """Adapter for Semantic Scholar paper search."""

    name = "semantic_scholar"
    kind = ContentKind.PAPER
    default_base_url = "https://api.semanticscholar.org/graph/v1"
    default_query = "embodied intelligence"

    def _headers(self) -> dict[str, str]:
        if self.api_key:
            return {"x-api-key": self.api_key}
        return {}

    def build_params(self, query: str, limit: int, since_days: int | None) -> dict[str, Any]:
        params: dict[str, Any] = {
            "query": query.strip(),
            "limit": min(limit, MAX_LIMIT),
            "fields": PAPER_FIELDS,
        }
        year = self.config.get("year")
        if year:
            params["year"] = str(year)
        elif since_days:
            params["publicationDateOrYear"] = f"{since_datetime(since_days):%Y-%m-%d}:"

        fields_of_study = self.config.get("fieldsOfStudy")
        if fields_of_study:
            if isinstance(fields_of_study, (list, tuple)):
                fields_of_study = ",".join(fields_of_study)
            params["fieldsOfStudy"] = fields_of_study
        return params

    async def search(
        self,
        query: str,
        limit: int,
        since_days: int | None = None,
        credential: Credential | None = None,
    ) -> list[ContentItem]:
        data = await self._get_json(
            self._url("/paper/search"),
            params=self.build_params(query, limit, since_days),
            headers=self._headers(),
        )
        if not isinstance(data, dict):
            raise self._parse_error("unexpected search response shape")

        papers = data.get("data") or []
        return [self._transform(p) for p in papers if p.get("paperId")][:limit]

    def _transform(self, paper: dict[str, Any]) -> ContentItem:
        external_ids = paper.get("externalIds") or {}
        return ContentItem(
            external_id=paper["paperId"],
            source_name=self.name,
            kind=self.kind,
            title=paper.get("title") or "",
            body=paper.get("abstract") or "",
            url=paper.get("url"),
            published_at=_publication_date(paper),
            authors=[a["name"] for a in paper.get("authors") or [] if a.get("name")],
            metadata={
                "year": paper.get("year"),
                "venue": paper.get("venue"),
                "citation_count": paper.get("citationCount", 0),
                "arxiv_id": external_ids.get("ArXiv"),
                "doi": external_ids.get("DOI"),
                "fields_of_study": paper.get("fieldsOfStudy") or [],
            },
        )


def _publication_date(paper: dict[str, Any]) -> datetime | None:
    value = paper.get("publicationDate")
    if value:
        try:
            return datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=timezone.utc)
        except ValueError:
            pass
    year = paper.get("year")
    if year:
        return datetime(int(year), 1, 1, tzinfo=timezone.utc)
    return None
