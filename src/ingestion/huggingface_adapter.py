"""
HuggingFace Hub adapter for model search.

Model-hub search is slow (responses regularly take tens of seconds), so
the adapter is marked slow and receives the long timeout. An optional
`task` config entry maps to the Hub's pipeline_tag filter.
"""

import logging
from typing import Any

from src.credentials.schemas import Credential
from src.ingestion.base_adapter import BaseAdapter, parse_iso_datetime, since_datetime
from src.ingestion.schemas import ContentItem, ContentKind, ProbeResult
from src.sync.errors import UpstreamError

logger = logging.getLogger(__name__)

MAX_LIMIT = 100


class HuggingFaceAdapter(BaseAdapter):
    """Adapter for HuggingFace model search."""

    name = "huggingface"
    kind = ContentKind.MODEL
    default_base_url = "https://huggingface.co/api"
    default_query = "robotics"
    slow = True

    def _headers(self) -> dict[str, str]:
        if self.api_key:
            return {"Authorization": f"Bearer {self.api_key}"}
        return {}

    async def search(
        self,
        query: str,
        limit: int,
        since_days: int | None = None,
        credential: Credential | None = None,
    ) -> list[ContentItem]:
        params: dict[str, Any] = {
            "search": query.strip(),
            "sort": "downloads",
            "direction": -1,
            "limit": min(limit, MAX_LIMIT),
        }
        task = self.config.get("task")
        if task:
            params["pipeline_tag"] = task

        data = await self._get_json(self._url("/models"), params=params, headers=self._headers())
        if not isinstance(data, list):
            raise self._parse_error("expected a list of models")

        items = [self._transform(model) for model in data if model.get("id")]

        if since_days:
            cutoff = since_datetime(since_days)
            items = [
                item
                for item in items
                if item.published_at is None or item.published_at >= cutoff
            ]
        return items[:limit]

    async def probe(self, credential: Credential | None = None) -> ProbeResult:
        """Ping /models; auth and throttling answers still prove the Hub is up."""
        url = self._url("/models")
        try:
            data = await self._get_json(url, params={"limit": 1}, headers=self._headers())
        except UpstreamError as e:
            if e.kind in ("auth", "rate_limited"):
                return ProbeResult(
                    items=0,
                    warning=f"Reachable but restricted: {e.message}",
                    request_url=url,
                    status_code=e.status_code,
                )
            raise
        return ProbeResult(items=len(data) if isinstance(data, list) else 0, request_url=url)

    def _transform(self, model: dict[str, Any]) -> ContentItem:
        model_id = model["id"]
        author = model.get("author") or (model_id.split("/", 1)[0] if "/" in model_id else None)
        tags = model.get("tags", [])
        pipeline_tag = model.get("pipeline_tag")
        body = pipeline_tag or ""
        if tags:
            body = f"{body} {' '.join(tags[:10])}".strip()

        return ContentItem(
            external_id=model_id,
            source_name=self.name,
            kind=self.kind,
            title=model_id,
            body=body,
            url=f"https://huggingface.co/{model_id}",
            published_at=parse_iso_datetime(model.get("lastModified") or model.get("createdAt")),
            authors=[author] if author else [],
            metadata={
                "downloads": model.get("downloads", 0),
                "likes": model.get("likes", 0),
                "pipeline_tag": pipeline_tag,
                "library_name": model.get("library_name"),
                "tags": tags[:20],
            },
        )
