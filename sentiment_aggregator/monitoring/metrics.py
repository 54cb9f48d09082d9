"""Prometheus metrics for monitoring the sentiment aggregator."""

import logging
import time
from typing import Optional

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)

# Define metrics
CYCLES_RUN = Counter(
    "sentiment_aggregator_cycles_total",
    "Number of aggregation cycles run",
    ["outcome"],
)

SOURCE_FAILURES = Counter(
    "sentiment_aggregator_source_failures_total",
    "Number of cycles in which a source failed or timed out",
    ["source"],
)

READINGS_STORED = Counter(
    "sentiment_aggregator_readings_stored_total",
    "Number of per-source readings persisted",
    ["source"],
)

ALERTS_FIRED = Counter(
    "sentiment_aggregator_alerts_fired_total",
    "Number of extreme-sentiment alerts appended",
    ["alert_type"],
)

AGGREGATE_PCT = Gauge(
    "sentiment_aggregator_aggregate_pct",
    "Latest aggregate sentiment share in percent",
    ["label"],
)

AGGREGATE_TOTAL_POSTS = Gauge(
    "sentiment_aggregator_aggregate_total_posts",
    "Number of posts behind the latest aggregate",
)

CYCLE_DURATION = Histogram(
    "sentiment_aggregator_cycle_duration_seconds",
    "Duration of aggregation cycles in seconds",
    buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
)


class PrometheusExporter:
    """Prometheus metrics exporter for the sentiment aggregator."""

    def __init__(self, port: int = 8000):
        """
        Initialize the Prometheus exporter.

        Args:
            port: Port to expose metrics on
        """
        self.port = port
        self.server_started = False

    def start_server(self) -> None:
        """Start the Prometheus metrics server."""
        if not self.server_started:
            try:
                start_http_server(self.port)
                self.server_started = True
                logger.info(f"Started Prometheus metrics server on port {self.port}")
            except Exception as e:
                logger.error(f"Failed to start Prometheus metrics server: {str(e)}")

    def record_cycle(self, outcome: str) -> None:
        """
        Record a finished cycle.

        Args:
            outcome: 'data', 'empty' or 'error'
        """
        CYCLES_RUN.labels(outcome=outcome).inc()

    def record_source_failure(self, source: str) -> None:
        SOURCE_FAILURES.labels(source=source).inc()

    def record_reading_stored(self, source: str) -> None:
        READINGS_STORED.labels(source=source).inc()

    def record_alert(self, alert_type: str) -> None:
        ALERTS_FIRED.labels(alert_type=alert_type).inc()

    def set_aggregate(self, bullish_pct: float, bearish_pct: float, neutral_pct: float, total_posts: int) -> None:
        """
        Publish the latest aggregate.

        Args:
            bullish_pct: Aggregate bullish share
            bearish_pct: Aggregate bearish share
            neutral_pct: Aggregate neutral share
            total_posts: Posts behind the aggregate
        """
        AGGREGATE_PCT.labels(label="bullish").set(bullish_pct)
        AGGREGATE_PCT.labels(label="bearish").set(bearish_pct)
        AGGREGATE_PCT.labels(label="neutral").set(neutral_pct)
        AGGREGATE_TOTAL_POSTS.set(total_posts)

    def time_cycle(self) -> "CycleTimer":
        """
        Create a context manager for timing a cycle.

        Returns:
            CycleTimer context manager
        """
        return CycleTimer()


class CycleTimer:
    """Context manager for timing aggregation cycles."""

    def __init__(self):
        self.start_time: Optional[float] = None

    def __enter__(self) -> "CycleTimer":
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is not None:
            CYCLE_DURATION.observe(time.time() - self.start_time)
