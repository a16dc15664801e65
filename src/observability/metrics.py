"""
Prometheus metrics for the sync and health-monitoring engine.

Defines and exposes metrics for:
- Sync runs and items upserted per source
- Upstream (provider) failures by kind
- Adapter call latency and retry attempts
- Source health and credential pool availability

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# Provider calls range from sub-second to the two-minute model-hub searches
LATENCY_BUCKETS = (0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0)

_HEALTH_VALUES = {"healthy": 1, "unknown": 0, "unhealthy": -1}


class MetricsCollector:
    """
    Prometheus metrics collector for sync runs and source health.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_sync_run("arxiv", "success", synced=12, errors=0, latency=4.2)
        metrics.set_source_health("github", "healthy")
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.sync_runs = Counter(
            "embodied_sync_runs_total",
            "Total sync runs",
            ["source", "status"],  # status: success, warning, error
        )

        self.items_synced = Counter(
            "embodied_sync_items_synced_total",
            "Total content items upserted into the content store",
            ["source"],
        )

        self.item_errors = Counter(
            "embodied_sync_item_errors_total",
            "Total per-item or per-keyword failures contained inside a run",
            ["source"],
        )

        self.upstream_errors = Counter(
            "embodied_sync_upstream_errors_total",
            "Total provider failures after retries",
            ["source", "kind"],
        )

        self.retry_attempts = Counter(
            "embodied_sync_retry_attempts_total",
            "Total retried adapter calls",
            ["source"],
        )

        self.adapter_latency = Histogram(
            "embodied_sync_adapter_latency_seconds",
            "Time spent in a single adapter call attempt",
            ["source", "operation"],  # operation: search, probe
            buckets=LATENCY_BUCKETS,
        )

        self.sync_latency = Histogram(
            "embodied_sync_run_latency_seconds",
            "End-to-end sync run duration",
            ["source"],
            buckets=LATENCY_BUCKETS,
        )

        self.source_health = Gauge(
            "embodied_sync_source_health",
            "Source health (1=healthy, 0=unknown, -1=unhealthy)",
            ["source"],
        )

        self.credentials_usable = Gauge(
            "embodied_sync_credentials_usable",
            "Number of credentials currently eligible for selection",
            ["provider"],
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_sync_run(
        self,
        source: str,
        status: str,
        synced: int,
        errors: int,
        latency: float | None = None,
    ) -> None:
        """Record the outcome of one sync run."""
        self.sync_runs.labels(source=source, status=status).inc()
        if synced:
            self.items_synced.labels(source=source).inc(synced)
        if errors:
            self.item_errors.labels(source=source).inc(errors)
        if latency is not None:
            self.sync_latency.labels(source=source).observe(latency)

    def record_upstream_error(self, source: str, kind: str) -> None:
        self.upstream_errors.labels(source=source, kind=kind).inc()

    def record_retry(self, source: str) -> None:
        self.retry_attempts.labels(source=source).inc()

    def record_adapter_latency(self, source: str, operation: str, latency: float) -> None:
        self.adapter_latency.labels(source=source, operation=operation).observe(latency)

    def set_source_health(self, source: str, status: str) -> None:
        """Set the health gauge from a healthy/unhealthy/unknown status string."""
        self.source_health.labels(source=source).set(_HEALTH_VALUES.get(status, 0))

    def set_credentials_usable(self, provider: str, count: int) -> None:
        self.credentials_usable.labels(provider=provider).set(count)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
