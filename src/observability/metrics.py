"""
Prometheus metrics for monitoring the mirror loop.

Defines and exposes metrics for:
- Poll cycles and cycle latency
- Per-source reconciliation outcomes
- Webhook and fetch errors

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging
import time

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for cycle latency histograms (in seconds)
LATENCY_BUCKETS = (0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)


class MetricsCollector:
    """
    Prometheus metrics collector for webhook-mirror.

    Usage:
        metrics = get_metrics()
        metrics.start_server()
        metrics.record_outcome("rules", "updated")
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.cycles = Counter(
            "webhook_mirror_cycles_total",
            "Total number of completed poll cycles",
        )

        self.cycle_latency = Histogram(
            "webhook_mirror_cycle_latency_seconds",
            "Time to reconcile all sources once",
            buckets=LATENCY_BUCKETS,
        )

        self.last_cycle_timestamp = Gauge(
            "webhook_mirror_last_cycle_timestamp_seconds",
            "Unix time at which the last cycle finished",
        )

        self.reconcile_outcomes = Counter(
            "webhook_mirror_reconcile_outcomes_total",
            "Reconciliation outcomes per source",
            ["source", "outcome"],  # created, updated, recreated, unchanged, skipped, failed
        )

        self.webhook_errors = Counter(
            "webhook_mirror_webhook_errors_total",
            "Webhook call failures (404 fallbacks excluded)",
            ["operation"],  # validate, create, update
        )

        self.fetch_failures = Counter(
            "webhook_mirror_fetch_failures_total",
            "Cycles skipped because no content was fetched",
            ["source"],
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

    def record_cycle(self, latency: float) -> None:
        """Record a finished cycle and its duration in seconds."""
        self.cycles.inc()
        self.cycle_latency.observe(latency)
        self.last_cycle_timestamp.set(time.time())

    def record_outcome(self, source: str, outcome: str) -> None:
        """Record the reconciliation outcome for a source."""
        self.reconcile_outcomes.labels(source=source, outcome=outcome).inc()
        if outcome == "skipped":
            self.fetch_failures.labels(source=source).inc()

    def record_webhook_error(self, operation: str) -> None:
        """Record a failed webhook call (validate, create, update)."""
        self.webhook_errors.labels(operation=operation).inc()


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
