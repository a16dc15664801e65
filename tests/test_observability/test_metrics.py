"""Tests for the Prometheus metrics collector."""

from prometheus_client import REGISTRY

from src.observability.metrics import get_metrics


def _sample(name: str, labels: dict) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestMetricsCollector:
    def test_singleton(self):
        assert get_metrics() is get_metrics()

    def test_record_sync_run(self):
        metrics = get_metrics()
        runs = _sample("embodied_sync_runs_total", {"source": "metrics-test", "status": "warning"})
        items = _sample("embodied_sync_items_synced_total", {"source": "metrics-test"})
        errors = _sample("embodied_sync_item_errors_total", {"source": "metrics-test"})

        metrics.record_sync_run("metrics-test", "warning", synced=5, errors=2, latency=1.5)

        assert _sample(
            "embodied_sync_runs_total", {"source": "metrics-test", "status": "warning"}
        ) == runs + 1
        assert _sample("embodied_sync_items_synced_total", {"source": "metrics-test"}) == items + 5
        assert _sample("embodied_sync_item_errors_total", {"source": "metrics-test"}) == errors + 2

    def test_upstream_error_by_kind(self):
        metrics = get_metrics()
        labels = {"source": "metrics-test", "kind": "rate_limited"}
        before = _sample("embodied_sync_upstream_errors_total", labels)

        metrics.record_upstream_error("metrics-test", "rate_limited")

        assert _sample("embodied_sync_upstream_errors_total", labels) == before + 1

    def test_source_health_gauge(self):
        metrics = get_metrics()
        labels = {"source": "metrics-test"}

        metrics.set_source_health("metrics-test", "unhealthy")
        assert _sample("embodied_sync_source_health", labels) == -1

        metrics.set_source_health("metrics-test", "healthy")
        assert _sample("embodied_sync_source_health", labels) == 1

        metrics.set_source_health("metrics-test", "unknown")
        assert _sample("embodied_sync_source_health", labels) == 0

    def test_credentials_usable_gauge(self):
        get_metrics().set_credentials_usable("metrics-test", 2)
        assert _sample("embodied_sync_credentials_usable", {"provider": "metrics-test"}) == 2
