"""
Sync orchestrator - single entry point for source and keyword syncs.

Resolves a DataSource, binds its adapter from the registry, fetches through
the FetchClient, upserts into the content store and records the run.

Features:
- One run per source at a time (in-process guard plus a DB claim)
- Idempotent content upserts keyed by (source_name, external_id)
- Per-item and per-keyword failures counted, not raised
- Run summary and sync log written in one transaction
- Cooperative cancellation via an asyncio.Event
"""

import asyncio
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import structlog

from src.ingestion.base_adapter import BaseAdapter
from src.ingestion.fetch_client import FetchClient
from src.ingestion.registry import AdapterRegistry
from src.ingestion.schemas import ContentItem
from src.keywords.matcher import KeywordMatcher
from src.keywords.repository import KeywordRepository
from src.keywords.schemas import KeywordScope, KeywordSourceType
from src.observability.logging import sync_context
from src.observability.metrics import get_metrics
from src.sources.repository import DataSourceRepository
from src.sources.schemas import DataSource, SyncStatus
from src.storage.database import Database
from src.storage.repository import ContentRepository
from src.sync.config import SyncConfig
from src.sync.errors import (
    NotFoundError,
    RunInProgressError,
    SourceDisabledError,
    SyncCancelledError,
    SyncError,
    ValidationError,
)
from src.sync_log.repository import SyncLogRepository
from src.sync_log.schemas import LogStatus, LogType, SyncLogEntry

logger = structlog.get_logger(__name__)

RUN_SUCCESS = "success"
RUN_WARNING = "warning"
RUN_ERROR = "error"


@dataclass
class SyncResult:
    """Outcome of one sync run, as returned to the admin API and CLI."""

    source_name: str
    status: str
    synced: int = 0
    errors: int = 0
    source_id: str | None = None
    keywords: int | None = None
    duration_ms: int = 0
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "source_id": self.source_id,
            "source_name": self.source_name,
            "status": self.status,
            "synced": self.synced,
            "errors": self.errors,
            "duration_ms": self.duration_ms,
            "error_message": self.error_message,
        }
        if self.keywords is not None:
            data["keywords"] = self.keywords
        return data


def _run_status(synced: int, errors: int) -> tuple[str, SyncStatus, LogStatus]:
    """Classify a completed run: (result status, last_sync_status, log status)."""
    if errors == 0:
        return RUN_SUCCESS, SyncStatus.SUCCESS, LogStatus.SUCCESS
    if synced > 0:
        return RUN_WARNING, SyncStatus.SUCCESS, LogStatus.WARNING
    return RUN_ERROR, SyncStatus.ERROR, LogStatus.ERROR


def _positive_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer, got {value!r}") from None
    if number < 1:
        raise ValidationError(f"{name} must be positive, got {number}")
    return number


class SyncOrchestrator:
    """
    Runs plain and keyword-driven syncs against registered adapters.

    Usage:
        orchestrator = SyncOrchestrator(db, registry, fetch_client)
        result = await orchestrator.sync_source(source_id, {"query": "humanoid"})
        result = await orchestrator.sync_by_keywords("arxiv", KeywordScope.PAPER)
    """

    def __init__(
        self,
        database: Database,
        registry: AdapterRegistry,
        fetch_client: FetchClient,
        config: SyncConfig | None = None,
    ):
        self._db = database
        self._registry = registry
        self._fetch = fetch_client
        self._config = config or SyncConfig()
        self._sources = DataSourceRepository(database)
        self._logs = SyncLogRepository(database)
        self._content = ContentRepository(database)
        self._keywords = KeywordRepository(database)
        self._matcher = KeywordMatcher(fetch_client)
        self._metrics = get_metrics()
        # Source ids with a run in this process
        self._running: set[str] = set()

    def is_running(self, source_id: str) -> bool:
        return source_id in self._running

    # ── Entry points ────────────────────────────────────────────

    async def sync_source(
        self,
        source_id: str,
        override_config: dict[str, Any] | None = None,
        force: bool = False,
        cancel_event: asyncio.Event | None = None,
    ) -> SyncResult:
        """
        Run one adapter search for a source and upsert the results.

        Args:
            source_id: DataSource id
            override_config: Per-run adapter options merged over source.config
            force: Sync even if the source is disabled
            cancel_event: Set to stop before the next adapter call

        Raises:
            NotFoundError: Unknown source or no adapter for it
            SourceDisabledError: Source is disabled and force is False
            RunInProgressError: A run for the source is already active
            UpstreamError, CredentialError: The adapter call failed entirely; any
                other exception is recorded as a failed run and re-raised
            SyncCancelledError: cancel_event fired before the fetch finished
        """
        if override_config is not None and not isinstance(override_config, dict):
            raise ValidationError("override config must be an object")

        source = await self._sources.get(source_id)
        if source is None:
            raise NotFoundError(f"Data source not found: {source_id}")

        note = await self._check_enabled(source, force)
        adapter = self._registry.get(source.name).configured(source, override_config)
        query = adapter.config.get("query") or adapter.default_query
        limit = _positive_int(
            adapter.config.get("maxResults") or self._config.default_max_results, "maxResults"
        )
        since_days = adapter.config.get("days")
        if since_days is not None:
            since_days = _positive_int(since_days, "days")

        async with self._run(source):
            started = time.monotonic()
            logger.info("Sync started", query=query, limit=limit, forced=bool(note))

            try:
                items = await self._fetch.search(
                    adapter, query, limit, since_days=since_days, cancel_event=cancel_event
                )
            except asyncio.CancelledError:
                await asyncio.shield(
                    self._record_failure(
                        source, adapter, SyncCancelledError("cancelled"), started
                    )
                )
                raise
            except Exception as e:
                await self._record_failure(source, adapter, e, started)
                raise

            async def on_cancel(synced: int, errors: int) -> None:
                await self._record_failure(
                    source, adapter, SyncCancelledError("cancelled"), started,
                    synced=synced, errors=errors,
                )

            synced, errors = await self._persist(items, on_cancel)
            return await self._record_completion(
                source, adapter, synced, errors, started, note=note
            )

    async def sync_by_keywords(
        self,
        source_name: str,
        scope: KeywordScope,
        source_type: str = "all",
        days: int | None = None,
        max_results_per_keyword: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> SyncResult:
        """
        Search a source once per active keyword of `scope` and upsert the merge.

        Per-keyword failures are counted in `errors`. A run where every
        keyword failed is recorded as an error but still returned.

        Raises:
            NotFoundError: Unknown source or no adapter for it
            SourceDisabledError: Source is disabled
            RunInProgressError: A run for the source is already active
            CredentialError: The provider has no usable credential
            SyncCancelledError: cancel_event fired; fetched items are kept
        """
        if source_type == "all":
            type_filter = None
        else:
            try:
                type_filter = KeywordSourceType(source_type)
            except ValueError:
                raise ValidationError(
                    f"sourceType must be one of all, admin, user; got {source_type!r}"
                ) from None

        days = _positive_int(days, "days") if days is not None else self._config.default_days
        per_keyword = (
            _positive_int(max_results_per_keyword, "maxResultsPerKeyword")
            if max_results_per_keyword is not None
            else self._config.default_max_results_per_keyword
        )

        source = await self._sources.get_by_name(source_name)
        if source is None:
            raise NotFoundError(f"Data source not found: {source_name}")

        await self._check_enabled(source, force=False)
        adapter = self._registry.get(source.name).configured(source)
        keywords = await self._keywords.get_active(scope, type_filter)

        async with self._run(source):
            started = time.monotonic()
            logger.info(
                "Keyword sync started",
                scope=scope.value,
                source_type=source_type,
                keywords=len(keywords),
                days=days,
            )

            try:
                outcome = await self._matcher.run(
                    adapter, keywords, days, per_keyword, cancel_event=cancel_event
                )
            except asyncio.CancelledError:
                await asyncio.shield(
                    self._record_failure(
                        source, adapter, SyncCancelledError("cancelled"), started
                    )
                )
                raise
            except Exception as e:
                await self._record_failure(source, adapter, e, started)
                raise

            async def on_cancel(synced: int, upsert_errors: int) -> None:
                await self._keywords.mark_synced(outcome.processed)
                await self._record_failure(
                    source, adapter, SyncCancelledError("cancelled"), started,
                    synced=synced, errors=outcome.errors + upsert_errors,
                )

            synced, upsert_errors = await self._persist(outcome.items, on_cancel)
            await self._keywords.mark_synced(outcome.processed)

            if outcome.cancelled:
                error = SyncCancelledError("cancelled")
                await self._record_failure(
                    source, adapter, error, started, synced=synced,
                    errors=outcome.errors + upsert_errors,
                )
                raise error

            errors = outcome.errors + upsert_errors
            failed = ", ".join(outcome.failed)
            message = detail = None
            if outcome.keywords and outcome.errors == outcome.keywords:
                message = f"all {outcome.keywords} keyword search(es) failed: {failed}"
            elif outcome.errors:
                detail = f"{outcome.errors} keyword search(es) failed: {failed}"
                if upsert_errors:
                    detail += f"; {upsert_errors} item(s) failed"

            result = await self._record_completion(
                source, adapter, synced, errors, started, message=message, detail=detail
            )
            result.keywords = outcome.keywords
            return result

    # ── Run guard ───────────────────────────────────────────────

    async def _check_enabled(self, source: DataSource, force: bool) -> str | None:
        """Reject disabled sources unless forced; returns the log note for a forced run."""
        if source.enabled:
            return None
        if force:
            return "forced sync of disabled source"

        message = f"Data source is disabled: {source.name}"
        async with self._db.transaction() as conn:
            await self._logs.append(
                SyncLogEntry(
                    source_id=source.id,
                    source_name=source.name,
                    type=LogType.SYNC,
                    status=LogStatus.ERROR,
                    error_message=message,
                ),
                conn=conn,
            )
            if source.last_sync_status != SyncStatus.RUNNING:
                await self._sources.reject_sync(source.id, SyncStatus.ERROR, conn=conn)
        raise SourceDisabledError(message)

    @asynccontextmanager
    async def _run(self, source: DataSource) -> AsyncIterator[None]:
        """Hold the single-flight claim and bind run context for the duration."""
        await self._claim(source)
        try:
            with sync_context(source.name):
                yield
        finally:
            self._running.discard(source.id)

    async def _claim(self, source: DataSource) -> None:
        # No await between the check and the add
        if source.id in self._running:
            raise RunInProgressError(
                f"Sync already running for {source.name}", source_name=source.name
            )
        self._running.add(source.id)

        try:
            claimed = await self._sources.claim_sync(source.id, self._config.stale_run_minutes)
        except BaseException:
            self._running.discard(source.id)
            raise
        if not claimed:
            self._running.discard(source.id)
            raise RunInProgressError(
                f"Sync already running for {source.name} in another worker",
                source_name=source.name,
            )

    # ── Persistence ─────────────────────────────────────────────

    async def _persist(
        self,
        items: list[ContentItem],
        on_cancel: Callable[[int, int], Awaitable[None]],
    ) -> tuple[int, int]:
        """
        Upsert items and return (synced, errors).

        If the caller is cancelled mid-write, the upserts still finish and
        `on_cancel(synced, errors)` records the partial run before the
        cancellation propagates.
        """
        task = asyncio.ensure_future(self._upsert_all(items))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            synced, errors = await task
            await asyncio.shield(on_cancel(synced, errors))
            raise

    async def _upsert_all(self, items: list[ContentItem]) -> tuple[int, int]:
        synced = 0
        errors = 0
        for item in items:
            try:
                await self._content.upsert(item)
            except Exception as e:
                errors += 1
                logger.warning(
                    "Content upsert failed",
                    external_id=item.external_id,
                    error=str(e),
                )
                continue
            synced += 1
        return synced, errors

    async def _record_completion(
        self,
        source: DataSource,
        adapter: BaseAdapter,
        synced: int,
        errors: int,
        started: float,
        note: str | None = None,
        message: str | None = None,
        detail: str | None = None,
    ) -> SyncResult:
        status, sync_status, log_status = _run_status(synced, errors)
        if message:
            status, sync_status, log_status = RUN_ERROR, SyncStatus.ERROR, LogStatus.ERROR
        elif errors:
            message = detail or f"{errors} item(s) failed"
        if note:
            message = f"{note}; {message}" if message else note

        duration_ms = int((time.monotonic() - started) * 1000)
        await self._finish(
            source,
            sync_status,
            SyncLogEntry(
                source_id=source.id,
                source_name=source.name,
                type=LogType.SYNC,
                status=log_status,
                request_url=adapter.base_url,
                request_method="GET",
                duration_ms=duration_ms,
                synced_count=synced,
                error_count=errors,
                error_message=message,
            ),
        )
        self._metrics.record_sync_run(
            source.name, status, synced, errors, latency=duration_ms / 1000
        )
        logger.info("Sync finished", status=status, synced=synced, errors=errors, duration_ms=duration_ms)

        return SyncResult(
            source_id=source.id,
            source_name=source.name,
            status=status,
            synced=synced,
            errors=errors,
            duration_ms=duration_ms,
            error_message=message,
        )

    async def _record_failure(
        self,
        source: DataSource,
        adapter: BaseAdapter,
        error: Exception,
        started: float,
        synced: int = 0,
        errors: int = 1,
    ) -> None:
        duration_ms = int((time.monotonic() - started) * 1000)
        request_url = getattr(error, "request_url", None) or adapter.base_url
        response_code = getattr(error, "status_code", None)
        message = str(error) if isinstance(error, SyncError) else f"{type(error).__name__}: {error}"

        await self._finish(
            source,
            SyncStatus.ERROR,
            SyncLogEntry(
                source_id=source.id,
                source_name=source.name,
                type=LogType.SYNC,
                status=LogStatus.ERROR,
                request_url=request_url,
                request_method="GET",
                response_code=response_code,
                duration_ms=duration_ms,
                synced_count=synced,
                error_count=errors,
                error_message=message,
            ),
        )
        self._metrics.record_sync_run(
            source.name, RUN_ERROR, synced, errors, latency=duration_ms / 1000
        )
        logger.error("Sync failed", error=message, duration_ms=duration_ms)

    async def _finish(
        self,
        source: DataSource,
        status: SyncStatus,
        entry: SyncLogEntry,
    ) -> None:
        """Write the run summary and its log entry atomically."""
        synced = entry.synced_count or 0
        errors = entry.error_count or 0
        async with self._db.transaction() as conn:
            await self._sources.finish_sync(source.id, status, synced, errors, conn=conn)
            await self._logs.append(entry, conn=conn)

