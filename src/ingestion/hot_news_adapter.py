"""
Adapters for generic hot-list aggregators.

Both providers return the current trending list of a platform (baidu,
weibo, zhihu, ...) rather than a searchable index, so search() fetches
the list and keeps items whose title or description contains the query
(case-insensitive). An empty query keeps everything.

- hot_news:     https://orz.ai/api/v1/dailynews/?platform=<p>&limit=<n>
                -> {"status": "200", "data": [...]}
- dailyhot_api: https://api-hot.imsyy.top/<p>
                -> [...] or {"code": 200, "data": [...]}

Config options:
    platform:  Single platform code (default "baidu")
    platforms: List of platform codes, overrides `platform`
"""

import logging
from abc import abstractmethod
from datetime import datetime, timezone
from typing import Any

from src.credentials.schemas import Credential
from src.ingestion.base_adapter import BaseAdapter, parse_epoch, title_contains
from src.ingestion.schemas import ContentItem, ContentKind, ProbeResult

logger = logging.getLogger(__name__)

DEFAULT_PLATFORM = "baidu"

# orz.ai caps list size
MAX_LIMIT = 100


class HotListAdapter(BaseAdapter):
    """Shared search/probe logic for hot-list aggregators."""

    kind = ContentKind.NEWS
    default_query = ""
    default_probe_query = ""

    def platforms(self) -> list[str]:
        platforms = self.config.get("platforms")
        if platforms:
            return [p for p in platforms if p]
        return [self.config.get("platform") or DEFAULT_PLATFORM]

    @abstractmethod
    async def fetch_list(self, platform: str, limit: int) -> list[dict[str, Any]]:
        """Fetch the raw hot list of one platform."""
        ...

    async def search(
        self,
        query: str,
        limit: int,
        since_days: int | None = None,
        credential: Credential | None = None,
    ) -> list[ContentItem]:
        query = query.strip()
        items: list[ContentItem] = []

        for platform in self.platforms():
            # The list is filtered locally, so fetch the full page
            raw_items = await self.fetch_list(platform, MAX_LIMIT if query else limit)
            for raw in raw_items:
                if not raw.get("title") or not raw.get("url"):
                    continue
                text = f"{raw.get('title', '')} {raw.get('desc') or raw.get('content') or ''}"
                if query and not title_contains(text, query):
                    continue
                items.append(self._transform(raw, platform))
                if len(items) >= limit:
                    return items

        return items

    async def probe(self, credential: Credential | None = None) -> ProbeResult:
        platform = self.platforms()[0]
        raw_items = await self.fetch_list(platform, 1)
        return ProbeResult(items=len(raw_items), request_url=self._list_url(platform))

    def _list_url(self, platform: str) -> str:
        return self.base_url

    def _transform(self, raw: dict[str, Any], platform: str) -> ContentItem:
        score = raw.get("score") or raw.get("hot")
        return ContentItem(
            external_id=raw["url"],
            source_name=self.name,
            kind=self.kind,
            title=raw["title"],
            body=raw.get("desc") or raw.get("content") or "",
            url=raw["url"],
            published_at=_parse_publish_time(raw.get("publish_time") or raw.get("time") or raw.get("timestamp")),
            metadata={
                "platform": platform,
                "score": str(score) if score is not None else None,
                "mobile_url": raw.get("mobileUrl"),
                "cover": raw.get("pic") or raw.get("cover"),
            },
        )


class HotNewsAdapter(HotListAdapter):
    """orz.ai hot_news aggregator."""

    name = "hot_news"
    default_base_url = "https://orz.ai/api/v1"

    def _list_url(self, platform: str) -> str:
        return self._url("/dailynews/")

    async def fetch_list(self, platform: str, limit: int) -> list[dict[str, Any]]:
        url = self._list_url(platform)
        data = await self._get_json(
            url, params={"platform": platform, "limit": min(limit, MAX_LIMIT)}
        )
        if not isinstance(data, dict) or str(data.get("status")) != "200":
            message = data.get("msg") if isinstance(data, dict) else None
            raise self._parse_error(f"API returned an error: {message or 'unknown'}", url)
        return list(data.get("data") or [])


class DailyHotAdapter(HotListAdapter):
    """imsyy DailyHotApi aggregator."""

    name = "dailyhot_api"
    default_base_url = "https://api-hot.imsyy.top"

    def _list_url(self, platform: str) -> str:
        return self._url(f"/{platform}")

    async def fetch_list(self, platform: str, limit: int) -> list[dict[str, Any]]:
        url = self._list_url(platform)
        data = await self._get_json(url)
        if isinstance(data, list):
            return data[:limit]
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            return data["data"][:limit]
        raise self._parse_error("unexpected list response shape", url)


def _parse_publish_time(value: Any) -> datetime | None:
    """Hot lists use "2026-01-20 20:17:49" strings or epoch numbers."""
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)) or str(value).isdigit():
        return parse_epoch(value)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
