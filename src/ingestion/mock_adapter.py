"""
Mock adapter for testing and development.

Generates deterministic content items without network access.
Useful for:
- Exercising sync runs and keyword flows without provider credentials
- Injecting failures per query to see partial-failure handling
- Development and debugging of the admin console
"""

import asyncio
import re
from datetime import datetime, timedelta, timezone

from src.credentials.schemas import Credential
from src.ingestion.base_adapter import BaseAdapter, since_datetime
from src.ingestion.schemas import ContentItem, ContentKind, ProbeResult

TITLE_TEMPLATES = [
    "{query} for dexterous manipulation",
    "Scaling {query} with teleoperation data",
    "A benchmark for {query} in household tasks",
    "{query}: sim-to-real transfer for legged robots",
    "Vision-language-action policies meet {query}",
]


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-") or "all"


class MockAdapter(BaseAdapter):
    """
    In-memory adapter with scripted results.

    Args:
        results: Items to return per query; queries without an entry get
            generated items
        failures: Exception to raise per query
        probe_error: Exception raised by probe()
        delay: Seconds to sleep per call, for timeout and single-flight tests
        generate: Items generated for unscripted queries

    Example:
        adapter = MockAdapter(failures={"LLM": UpstreamError("timeout", "slow", retryable=True)})
        items = await adapter.search("VLA", 5)
    """

    name = "mock"
    kind = ContentKind.PAPER
    default_base_url = "mock://local"
    default_query = "embodied ai"

    def __init__(
        self,
        results: dict[str, list[ContentItem]] | None = None,
        failures: dict[str, Exception] | None = None,
        probe_error: Exception | None = None,
        delay: float = 0.0,
        generate: int = 3,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.results = results or {}
        self.failures = failures or {}
        self.probe_error = probe_error
        self.delay = delay
        self.generate = generate
        self.calls: list[str] = []

    async def search(
        self,
        query: str,
        limit: int,
        since_days: int | None = None,
        credential: Credential | None = None,
    ) -> list[ContentItem]:
        self.calls.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)

        if query in self.failures:
            raise self.failures[query]

        if query in self.results:
            items = [item.model_copy(deep=True) for item in self.results[query]]
        else:
            items = self._generate(query)

        if since_days:
            cutoff = since_datetime(since_days)
            items = [i for i in items if i.published_at is None or i.published_at >= cutoff]
        return items[:limit]

    async def probe(self, credential: Credential | None = None) -> ProbeResult:
        self.calls.append("<probe>")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.probe_error is not None:
            raise self.probe_error
        return ProbeResult(items=0, request_url=self.base_url)

    def _generate(self, query: str) -> list[ContentItem]:
        slug = _slug(query)
        now = datetime.now(timezone.utc)
        return [
            ContentItem(
                external_id=f"mock-{slug}-{i}",
                source_name=self.name,
                kind=self.kind,
                title=TITLE_TEMPLATES[i % len(TITLE_TEMPLATES)].format(query=query),
                body=f"Synthetic abstract about {query}.",
                url=f"https://example.org/{slug}/{i}",
                published_at=now - timedelta(hours=i),
                authors=["Mock Author"],
                metadata={"rank": i},
            )
            for i in range(self.generate)
        ]
