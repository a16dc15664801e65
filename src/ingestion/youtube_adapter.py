"""
YouTube adapter using the Data API v3 search endpoint.

Requires an API key (YOUTUBE_API_KEY or the source's api_key). Without
one the adapter reports itself unconfigured and search() fails with an
auth error instead of sending an anonymous request.
"""

import logging
from typing import Any

from src.credentials.schemas import Credential
from src.ingestion.base_adapter import BaseAdapter, parse_iso_datetime, since_datetime
from src.ingestion.schemas import ContentItem, ContentKind
from src.sync.errors import UpstreamError

logger = logging.getLogger(__name__)

MAX_RESULTS = 50


class YouTubeAdapter(BaseAdapter):
    """Adapter for YouTube video search."""

    name = "youtube"
    kind = ContentKind.VIDEO
    default_base_url = "https://www.googleapis.com/youtube/v3"
    default_query = "embodied AI robot"

    def missing_configuration(self) -> str | None:
        if not self.api_key:
            return "YouTube API key is not configured"
        return super().missing_configuration()

    async def search(
        self,
        query: str,
        limit: int,
        since_days: int | None = None,
        credential: Credential | None = None,
    ) -> list[ContentItem]:
        if not self.api_key:
            raise UpstreamError("auth", "YouTube API key is not configured", retryable=False)

        params: dict[str, Any] = {
            "part": "snippet",
            "type": "video",
            "q": query.strip(),
            "maxResults": min(limit, MAX_RESULTS),
            "order": "relevance",
            "key": self.api_key,
        }
        if since_days:
            params["publishedAfter"] = since_datetime(since_days).strftime("%Y-%m-%dT%H:%M:%SZ")

        data = await self._get_json(self._url("/search"), params=params)
        if not isinstance(data, dict):
            raise self._parse_error("unexpected search response shape")

        items = []
        for result in data.get("items", []):
            video_id = (result.get("id") or {}).get("videoId")
            if video_id:
                items.append(self._transform(video_id, result.get("snippet") or {}))
        return items[:limit]

    def _transform(self, video_id: str, snippet: dict[str, Any]) -> ContentItem:
        thumbnails = snippet.get("thumbnails") or {}
        thumbnail = (thumbnails.get("high") or thumbnails.get("default") or {}).get("url")
        channel = snippet.get("channelTitle")
        return ContentItem(
            external_id=video_id,
            source_name=self.name,
            kind=self.kind,
            title=snippet.get("title", ""),
            body=snippet.get("description", ""),
            url=f"https://www.youtube.com/watch?v={video_id}",
            published_at=parse_iso_datetime(snippet.get("publishedAt")),
            authors=[channel] if channel else [],
            metadata={
                "channel_id": snippet.get("channelId"),
                "channel_title": channel,
                "thumbnail": thumbnail,
            },
        )
