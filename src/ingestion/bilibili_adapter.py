"""
Bilibili adapter using the web video search endpoint.

The web search API answers anonymous clients with risk-control errors,
so every call carries a logged-in session cookie selected from the
credential pool. Bilibili reports most failures in a JSON envelope
({"code": <non-zero>, "message": ...}) with HTTP 200; those codes are
mapped to the same UpstreamError kinds as HTTP failures.
"""

import logging
from typing import Any

from src.credentials.schemas import Credential
from src.ingestion.base_adapter import BaseAdapter, parse_epoch, since_datetime, strip_tags
from src.ingestion.schemas import ContentItem, ContentKind, ProbeResult
from src.sync.errors import UpstreamError

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

MAX_PAGE_SIZE = 50

# Envelope codes
_NOT_LOGGED_IN = -101
_RISK_CONTROL = -412
_RATE_LIMITED = -509
_AUTH_CODES = {_NOT_LOGGED_IN, -111, -352}


class BilibiliAdapter(BaseAdapter):
    """Adapter for Bilibili video keyword search."""

    name = "bilibili"
    kind = ContentKind.VIDEO
    default_base_url = "https://api.bilibili.com"
    default_query = "具身智能"
    default_probe_query = "机器人"
    needs_credential = True

    def _headers(self, credential: Credential | None) -> dict[str, str]:
        if credential is None:
            raise UpstreamError(
                "auth", "bilibili requests require a session cookie", retryable=False
            )
        return {
            "User-Agent": BROWSER_USER_AGENT,
            "Referer": "https://www.bilibili.com",
            "Cookie": credential.secret_value,
        }

    def _check_envelope(self, data: Any, url: str) -> dict[str, Any]:
        if not isinstance(data, dict) or "code" not in data:
            raise self._parse_error("response is missing the code envelope", url)

        code = data["code"]
        if code == 0:
            return data.get("data") or {}

        message = f"bilibili error {code}: {data.get('message') or data.get('msg') or 'unknown'}"
        if code in _AUTH_CODES:
            raise UpstreamError("auth", message, retryable=False, request_url=url)
        if code in (_RISK_CONTROL, _RATE_LIMITED):
            raise UpstreamError("rate_limited", message, retryable=True, request_url=url)
        raise UpstreamError("client_error", message, retryable=False, request_url=url)

    async def search(
        self,
        query: str,
        limit: int,
        since_days: int | None = None,
        credential: Credential | None = None,
    ) -> list[ContentItem]:
        url = self._url("/x/web-interface/search/type")
        params = {
            "search_type": "video",
            "keyword": query.strip(),
            "page": 1,
            "page_size": min(limit, MAX_PAGE_SIZE),
            "order": "pubdate",
        }
        data = await self._get_json(url, params=params, headers=self._headers(credential))
        payload = self._check_envelope(data, url)

        videos = [v for v in payload.get("result") or [] if v.get("bvid")]

        if since_days:
            cutoff = since_datetime(since_days).timestamp()
            videos = [v for v in videos if (v.get("pubdate") or 0) >= cutoff]

        return [self._transform(v) for v in videos][:limit]

    async def probe(self, credential: Credential | None = None) -> ProbeResult:
        """Check the session against /x/web-interface/nav."""
        url = self._url("/x/web-interface/nav")
        data = await self._get_json(url, headers=self._headers(credential))
        # nav answers -101 for anonymous sessions; the API itself is up
        if isinstance(data, dict) and data.get("code") == _NOT_LOGGED_IN:
            return ProbeResult(
                warning="API reachable but the session cookie is not logged in",
                request_url=url,
            )
        self._check_envelope(data, url)
        return ProbeResult(items=0, request_url=url)

    def _transform(self, video: dict[str, Any]) -> ContentItem:
        bvid = video["bvid"]
        cover = video.get("pic") or ""
        if cover.startswith("//"):
            cover = f"https:{cover}"
        author = video.get("author")
        return ContentItem(
            external_id=bvid,
            source_name=self.name,
            kind=self.kind,
            title=strip_tags(video.get("title", "")),
            body=strip_tags(video.get("description") or video.get("desc") or ""),
            url=f"https://www.bilibili.com/video/{bvid}",
            published_at=parse_epoch(video.get("pubdate")),
            authors=[author] if author else [],
            metadata={
                "aid": video.get("aid"),
                "mid": video.get("mid"),
                "cover_url": cover,
                "duration": video.get("duration"),
                "view_count": video.get("play") or video.get("view") or 0,
                "like_count": video.get("like", 0),
                "comment_count": video.get("review") or video.get("reply") or 0,
                "category": video.get("typename") or video.get("tname"),
            },
        )
