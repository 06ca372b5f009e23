"""
Prometheus metrics for the acquisition and publication pipeline.

Defines and exposes metrics for:
- Acquisition attempts by source and final ledger status
- Connector latency and errors
- Article scrape outcomes (body extracted vs. fallback)
- Result rows stored and embeddings published
- Ledger reconciliation

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

from sintillio.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the sintillio pipeline.

    Usage:
        metrics = get_metrics()
        metrics.record_acquisition("firecrawl", "completed")
        metrics.record_connector_latency("cryptopanic", 1.2)
    """

    def __init__(self):
        self.acquisitions = Counter(
            "sintillio_acquisitions_total",
            "Acquisition attempts by source and final ledger status",
            ["source", "status"],
        )

        self.connector_errors = Counter(
            "sintillio_connector_errors_total",
            "Upstream provider failures",
            ["source", "error_type"],
        )

        self.connector_latency = Histogram(
            "sintillio_connector_latency_seconds",
            "Time spent in a connector fetch",
            ["source"],
            buckets=LATENCY_BUCKETS,
        )

        self.article_scrapes = Counter(
            "sintillio_article_scrapes_total",
            "Per-headline article scrape outcomes",
            ["outcome"],  # body, description, title
        )

        self.results_stored = Counter(
            "sintillio_results_stored_total",
            "Content result rows written",
            ["source"],
        )

        self.results_failed = Counter(
            "sintillio_results_failed_total",
            "Content result rows that failed to write",
            ["source"],
        )

        self.embeddings_published = Counter(
            "sintillio_embeddings_published_total",
            "Rows embedded and published",
        )

        self.embeddings_skipped = Counter(
            "sintillio_embeddings_skipped_total",
            "Rows skipped by the embedding generator",
            ["reason"],  # blank, error, race
        )

        self.embedding_latency = Histogram(
            "sintillio_embedding_latency_seconds",
            "Time to embed a single row",
            buckets=LATENCY_BUCKETS,
        )

        self.ledger_reconciled = Counter(
            "sintillio_ledger_reconciled_total",
            "Stale processing ledger rows marked failed",
        )

        self.authorization_decisions = Counter(
            "sintillio_authorization_decisions_total",
            "Admin checks by outcome and granting rule",
            ["outcome", "rule"],
        )

        self.embedding_cache_hits = Counter(
            "sintillio_embedding_cache_hits_total",
            "Embedding cache hits",
        )

        self.embedding_cache_misses = Counter(
            "sintillio_embedding_cache_misses_total",
            "Embedding cache misses",
        )

        self.service_info = Gauge(
            "sintillio_up",
            "Set to 1 while the process is serving",
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
        self.service_info.set(1)
        logger.info(f"Prometheus metrics server started on port {port}")

    def record_acquisition(self, source: str, status: str) -> None:
        self.acquisitions.labels(source=source, status=status).inc()

    def record_connector_latency(self, source: str, latency: float) -> None:
        self.connector_latency.labels(source=source).observe(latency)

    def record_connector_error(self, source: str, error_type: str) -> None:
        self.connector_errors.labels(source=source, error_type=error_type).inc()

    def record_scrape(self, outcome: str) -> None:
        """
        Record how a crypto headline body was obtained.

        Args:
            outcome: "body" (scraped article), "description" or "title"
        """
        self.article_scrapes.labels(outcome=outcome).inc()

    def record_results(self, source: str, stored: int, failed: int = 0) -> None:
        if stored:
            self.results_stored.labels(source=source).inc(stored)
        if failed:
            self.results_failed.labels(source=source).inc(failed)

    def record_embedding(self, latency: float | None = None) -> None:
        self.embeddings_published.inc()
        if latency is not None:
            self.embedding_latency.observe(latency)

    def record_embedding_skipped(self, reason: str) -> None:
        self.embeddings_skipped.labels(reason=reason).inc()

    def record_embedding_cache(self, hit: bool) -> None:
        if hit:
            self.embedding_cache_hits.inc()
        else:
            self.embedding_cache_misses.inc()

    def record_reconciled(self, count: int) -> None:
        if count:
            self.ledger_reconciled.inc(count)

    def record_authorization(self, granted: bool, rule: str | None) -> None:
        self.authorization_decisions.labels(
            outcome="granted" if granted else "denied",
            rule=rule or "none",
        ).inc()


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
