"""
Source health checker.

Issues one lightweight probe per source through the same adapter used for
sync, classifies the outcome and persists it. Probes are never retried:
a health check reports what a single attempt sees.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from src.ingestion.fetch_client import FetchClient, RetryPolicy
from src.ingestion.registry import AdapterRegistry
from src.observability.metrics import get_metrics
from src.sources.repository import DataSourceRepository
from src.sources.schemas import DataSource, HealthStatus
from src.storage.database import Database
from src.sync.errors import CredentialError, NotFoundError, UpstreamError
from src.sync_log.repository import SyncLogRepository
from src.sync_log.schemas import LogStatus, LogType, SyncLogEntry

logger = logging.getLogger(__name__)

_LOG_STATUS = {
    HealthStatus.HEALTHY: LogStatus.SUCCESS,
    HealthStatus.UNHEALTHY: LogStatus.ERROR,
    HealthStatus.UNKNOWN: LogStatus.WARNING,
}


@dataclass
class HealthCheckResult:
    """Classification of one probe.

    A healthy result may still carry `error` as a warning for operators.
    """

    source_id: str
    source_name: str
    status: HealthStatus
    latency_ms: int = 0
    error: str | None = None
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    request_url: str | None = None
    response_code: int | None = None

    def to_dict(self) -> dict:
        return {
            "source_id": self.source_id,
            "source_name": self.source_name,
            "status": self.status.value,
            "latency_ms": self.latency_ms,
            "error": self.error,
            "checked_at": self.checked_at.isoformat(),
        }


@dataclass
class HealthSummary:
    """Results of check_all_health with aggregate counts."""

    results: list[HealthCheckResult] = field(default_factory=list)

    def count(self, status: HealthStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    def to_dict(self) -> dict:
        return {
            "results": [r.to_dict() for r in self.results],
            "healthy": self.count(HealthStatus.HEALTHY),
            "unhealthy": self.count(HealthStatus.UNHEALTHY),
            "unknown": self.count(HealthStatus.UNKNOWN),
        }


class HealthChecker:
    """
    Probes sources and records their health.

    Health checks never disable a source; that stays an operator action.

    Usage:
        checker = HealthChecker(db, registry, fetch_client)
        result = await checker.check_health(source_id)
        summary = await checker.check_all_health()
    """

    def __init__(
        self,
        database: Database,
        registry: AdapterRegistry,
        fetch_client: FetchClient,
    ):
        self._db = database
        self._registry = registry
        self._fetch = fetch_client
        self._sources = DataSourceRepository(database)
        self._logs = SyncLogRepository(database)
        self._policy = RetryPolicy.no_retry()

    async def check_health(self, source_id: str) -> HealthCheckResult:
        """
        Probe one source, enabled or not, and persist the classification.

        Raises:
            NotFoundError: Unknown source id
        """
        source = await self._sources.get(source_id)
        if source is None:
            raise NotFoundError(f"Data source not found: {source_id}")
        return await self._check(source)

    async def check_all_health(self) -> HealthSummary:
        """Probe every enabled source concurrently."""
        sources = await self._sources.list_sources(enabled_only=True)
        outcomes = await asyncio.gather(
            *(self._check(source) for source in sources),
            return_exceptions=True,
        )

        summary = HealthSummary()
        for source, outcome in zip(sources, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.error(
                    "Health check for %s could not be recorded: %s",
                    source.name,
                    outcome,
                    exc_info=outcome,
                )
                outcome = HealthCheckResult(
                    source_id=source.id,
                    source_name=source.name,
                    status=HealthStatus.UNHEALTHY,
                    error=str(outcome) or type(outcome).__name__,
                )
            summary.results.append(outcome)

        logger.info(
            "Health check of %d source(s): %d healthy, %d unhealthy, %d unknown",
            len(summary.results),
            summary.count(HealthStatus.HEALTHY),
            summary.count(HealthStatus.UNHEALTHY),
            summary.count(HealthStatus.UNKNOWN),
        )
        return summary

    async def _check(self, source: DataSource) -> HealthCheckResult:
        result = await self._probe(source)
        await self._record(source, result)
        get_metrics().set_source_health(source.name, result.status.value)
        return result

    async def _probe(self, source: DataSource) -> HealthCheckResult:
        if source.name not in self._registry:
            return self._unknown(source, f"No adapter registered for source: {source.name}")
        if not source.api_base_url:
            return self._unknown(source, "API base URL is not configured")

        adapter = self._registry.get(source.name).configured(source)
        missing = adapter.missing_configuration()
        if missing:
            return self._unknown(source, missing)

        started = time.monotonic()
        try:
            probe = await self._fetch.probe(adapter, policy=self._policy)
        except UpstreamError as e:
            return HealthCheckResult(
                source_id=source.id,
                source_name=source.name,
                status=HealthStatus.UNHEALTHY,
                latency_ms=int((time.monotonic() - started) * 1000),
                error=str(e),
                request_url=e.request_url or adapter.base_url,
                response_code=e.status_code,
            )
        except CredentialError as e:
            return HealthCheckResult(
                source_id=source.id,
                source_name=source.name,
                status=HealthStatus.UNHEALTHY,
                latency_ms=int((time.monotonic() - started) * 1000),
                error=e.message,
                request_url=adapter.base_url,
            )
        except Exception as e:
            logger.error("%s health check raised %s", source.name, type(e).__name__, exc_info=e)
            return HealthCheckResult(
                source_id=source.id,
                source_name=source.name,
                status=HealthStatus.UNHEALTHY,
                latency_ms=int((time.monotonic() - started) * 1000),
                error=f"{type(e).__name__}: {e}",
                request_url=adapter.base_url,
            )

        return HealthCheckResult(
            source_id=source.id,
            source_name=source.name,
            status=HealthStatus.HEALTHY,
            latency_ms=int((time.monotonic() - started) * 1000),
            error=probe.warning,
            request_url=probe.request_url or adapter.base_url,
            response_code=probe.status_code,
        )

    def _unknown(self, source: DataSource, message: str) -> HealthCheckResult:
        return HealthCheckResult(
            source_id=source.id,
            source_name=source.name,
            status=HealthStatus.UNKNOWN,
            error=message,
        )

    async def _record(self, source: DataSource, result: HealthCheckResult) -> None:
        log_status = _LOG_STATUS[result.status]
        if result.status == HealthStatus.HEALTHY and result.error:
            log_status = LogStatus.WARNING

        async with self._db.transaction() as conn:
            await self._sources.update_health(
                source.id, result.status, result.error, result.checked_at, conn=conn
            )
            await self._logs.append(
                SyncLogEntry(
                    source_id=source.id,
                    source_name=source.name,
                    type=LogType.HEALTH_CHECK,
                    status=log_status,
                    request_url=result.request_url,
                    request_method="GET",
                    response_code=result.response_code,
                    duration_ms=result.latency_ms,
                    error_message=result.error,
                ),
                conn=conn,
            )

        if result.status == HealthStatus.HEALTHY:
            logger.info("%s healthy in %dms", source.name, result.latency_ms)
        else:
            logger.warning("%s %s: %s", source.name, result.status.value, result.error)
