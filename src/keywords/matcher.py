"""
Keyword subscription matcher.

Runs one adapter search per active keyword, in priority order, and merges
the results so an item found by several keywords is counted once while
remembering every keyword that surfaced it.
"""

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from src.ingestion.base_adapter import BaseAdapter
from src.ingestion.fetch_client import FetchClient
from src.ingestion.schemas import ContentItem
from src.keywords.schemas import Keyword, KeywordSyncResult
from src.sync.errors import CredentialError, SyncCancelledError, UpstreamError

logger = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def order_keywords(keywords: Iterable[Keyword]) -> list[Keyword]:
    """Active keywords, highest priority first, newest first within a priority."""
    active = [k for k in keywords if k.is_active]
    # Two stable passes: secondary key first
    active.sort(key=lambda k: k.created_at or _OLDEST, reverse=True)
    active.sort(key=lambda k: k.priority, reverse=True)
    return active


def keyword_matches(keyword: str, item: ContentItem) -> bool:
    """Case-insensitive substring match against title and body."""
    needle = keyword.lower()
    if not needle:
        return False
    return needle in item.title.lower() or needle in (item.body or "").lower()


class KeywordMatcher:
    """
    Drives an adapter through a keyword work list.

    A failing keyword is logged and counted, then the next keyword runs,
    whatever the adapter raised. CredentialError and cancellation are
    run-level and propagate to the orchestrator.

    Example:
        matcher = KeywordMatcher(fetch_client)
        result = await matcher.run(adapter, keywords, days=7, max_results_per_keyword=20)
        print(result.synced, result.keywords, result.errors)
    """

    def __init__(self, fetch_client: FetchClient) -> None:
        self._fetch = fetch_client

    async def run(
        self,
        adapter: BaseAdapter,
        keywords: Iterable[Keyword],
        days: int | None,
        max_results_per_keyword: int,
        cancel_event: asyncio.Event | None = None,
    ) -> KeywordSyncResult:
        result = KeywordSyncResult()
        merged: dict[tuple[str, str], ContentItem] = {}

        for keyword in order_keywords(keywords):
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                logger.info("Keyword run on %s cancelled before '%s'", adapter.name, keyword.keyword)
                break

            result.keywords += 1
            try:
                items = await self._fetch.search(
                    adapter,
                    keyword.keyword,
                    max_results_per_keyword,
                    since_days=days,
                    cancel_event=cancel_event,
                )
            except SyncCancelledError:
                result.keywords -= 1
                result.cancelled = True
                break
            except UpstreamError as e:
                result.errors += 1
                result.failed.append(keyword.keyword)
                logger.warning(
                    "Keyword '%s' failed on %s after %d attempt(s): %s",
                    keyword.keyword,
                    adapter.name,
                    e.attempts,
                    e,
                )
                continue
            except CredentialError:
                raise
            except Exception as e:
                result.errors += 1
                result.failed.append(keyword.keyword)
                logger.error(
                    "Keyword '%s' failed on %s: %s", keyword.keyword, adapter.name, e, exc_info=e
                )
                continue

            result.processed.append(keyword.id)
            for item in items:
                key = item.fingerprint
                existing = merged.get(key)
                if existing is None:
                    item.add_found_via(keyword.keyword)
                    merged[key] = item
                else:
                    existing.add_found_via(keyword.keyword)

            logger.debug(
                "Keyword '%s' returned %d item(s) from %s", keyword.keyword, len(items), adapter.name
            )

        result.items = list(merged.values())
        logger.info(
            "Keyword run on %s: %d keyword(s), %d error(s), %d unique item(s)",
            adapter.name,
            result.keywords,
            result.errors,
            result.synced,
        )
        return result
