"""
arXiv adapter using the public Atom export API.

Queries export.arxiv.org/api/query and parses the Atom feed with
feedparser. Keywords are searched across all fields unless the query
already names a field (e.g. "cat:cs.RO" or "ti:humanoid").
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any

import feedparser

from src.credentials.schemas import Credential
from src.ingestion.base_adapter import BaseAdapter, since_datetime
from src.ingestion.schemas import ContentItem, ContentKind, ProbeResult

logger = logging.getLogger(__name__)

# Field prefixes understood by the arXiv query syntax
_FIELD_PREFIXES = ("all:", "ti:", "au:", "abs:", "co:", "jr:", "cat:", "rn:", "id:")

_VERSION_SUFFIX = re.compile(r"v\d+$")

_BOOLEAN_SPLIT = re.compile(r"\s+(AND NOT|ANDNOT|AND|OR)\s+")

# arXiv asks clients to keep result pages modest
MAX_RESULTS = 100


class ArxivAdapter(BaseAdapter):
    """Adapter for arXiv paper search."""

    name = "arxiv"
    kind = ContentKind.PAPER
    default_base_url = "http://export.arxiv.org/api/query"
    default_query = "cat:cs.RO"

    def build_query(self, query: str, since_days: int | None = None) -> str:
        """Build an arXiv search_query expression."""
        parts = _BOOLEAN_SPLIT.split(query.strip())
        # split() keeps the operators at odd indexes
        terms = [
            part if i % 2 else _field_term(part)
            for i, part in enumerate(parts)
        ]
        q = " ".join(terms).replace("AND NOT", "ANDNOT")

        if since_days:
            start = since_datetime(since_days)
            end = datetime.now(timezone.utc)
            q = (
                f"({q}) AND submittedDate:"
                f"[{start:%Y%m%d%H%M%S} TO {end:%Y%m%d%H%M%S}]"
            )
        return q

    async def search(
        self,
        query: str,
        limit: int,
        since_days: int | None = None,
        credential: Credential | None = None,
    ) -> list[ContentItem]:
        params = {
            "search_query": self.build_query(query, since_days),
            "start": 0,
            "max_results": min(limit, MAX_RESULTS),
            "sortBy": "submittedDate",
            "sortOrder": "descending",
        }
        text = await self._get_text(self.base_url, params=params)
        feed = feedparser.parse(text)

        if feed.bozo and not feed.entries:
            raise self._parse_error(
                f"malformed Atom feed ({feed.get('bozo_exception')})",
                request_url=self.base_url,
            )

        items: list[ContentItem] = []
        for entry in feed.entries:
            item = self._transform(entry)
            if item is not None:
                items.append(item)
        return items[:limit]

    async def probe(self, credential: Credential | None = None) -> ProbeResult:
        params = {"search_query": "all:test", "max_results": 1}
        text = await self._get_text(self.base_url, params=params)
        feed = feedparser.parse(text)
        if feed.bozo and not feed.entries and not feed.feed:
            raise self._parse_error("probe returned a malformed feed", self.base_url)
        return ProbeResult(items=len(feed.entries), request_url=self.base_url)

    def _transform(self, entry: dict[str, Any]) -> ContentItem | None:
        """Convert a feedparser entry to a ContentItem; None for unusable entries."""
        raw_id = entry.get("id", "")
        if not raw_id:
            return None

        arxiv_id = _VERSION_SUFFIX.sub("", raw_id.rsplit("/abs/", 1)[-1])

        pdf_url = None
        for link in entry.get("links", []):
            if link.get("type") == "application/pdf" or link.get("title") == "pdf":
                pdf_url = link.get("href")

        categories = [t.get("term") for t in entry.get("tags", []) if t.get("term")]

        return ContentItem(
            external_id=arxiv_id,
            source_name=self.name,
            kind=self.kind,
            title=entry.get("title", ""),
            body=entry.get("summary", ""),
            url=entry.get("link") or f"https://arxiv.org/abs/{arxiv_id}",
            published_at=_struct_to_datetime(entry.get("published_parsed")),
            authors=[a.get("name") for a in entry.get("authors", []) if a.get("name")],
            metadata={
                "arxiv_id": arxiv_id,
                "categories": categories,
                "primary_category": (entry.get("arxiv_primary_category") or {}).get("term"),
                "pdf_url": pdf_url,
                "updated": entry.get("updated"),
            },
        )


def _struct_to_datetime(value) -> datetime | None:
    if not value:
        return None
    return datetime(*value[:6], tzinfo=timezone.utc)


def _field_term(term: str) -> str:
    """Prefix a bare term with all: and quote phrases."""
    term = term.strip()
    if term.lower().startswith(_FIELD_PREFIXES):
        return term
    return f'all:"{term}"' if " " in term else f"all:{term}"
