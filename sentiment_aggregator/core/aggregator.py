"""
Aggregation and alerting engine.

One cycle asks every source for its tallies, stores a reading per non-empty
tally, combines them into a volume-weighted aggregate, classifies the
aggregate into a signal band and, for extreme bands, appends an alert.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sentiment_aggregator.collector.error_handler import ConsecutiveErrorTracker
from sentiment_aggregator.models.dtos import (
    AggregateResult,
    AggregateSnapshot,
    Alert,
    AlertType,
    ExtremeSignal,
    Reading,
    SourceTally,
    compute_percentages,
    utc_now,
)
from sentiment_aggregator.sources.base import SourceAdapter
from sentiment_aggregator.storage.base_store import TimeSeriesStore

logger = logging.getLogger(__name__)

DEDUP_ALWAYS = "always"
DEDUP_UNACKNOWLEDGED = "unacknowledged"

ALERT_MESSAGES = {
    AlertType.EXTREME_BULLISH: "CONTRARIAN ALERT: Retail is {pct:.1f}% bullish. Consider fading.",
    AlertType.EXTREME_BEARISH: "CONTRARIAN ALERT: Retail is {pct:.1f}% bearish. Consider buying.",
}


def classify_signal(
    bullish_pct: float,
    bearish_pct: float,
    extreme_threshold: float = 90.0,
    high_threshold: float = 75.0,
) -> Optional[ExtremeSignal]:
    """
    Map aggregate percentages to a signal band.

    Checks run in a fixed order and the first match wins; both thresholds are
    inclusive.
    """
    if bullish_pct >= extreme_threshold:
        return ExtremeSignal.EXTREME_BULLISH
    if bearish_pct >= extreme_threshold:
        return ExtremeSignal.EXTREME_BEARISH
    if bullish_pct >= high_threshold:
        return ExtremeSignal.HIGH_BULLISH
    if bearish_pct >= high_threshold:
        return ExtremeSignal.HIGH_BEARISH
    return None


def build_alert(signal: Optional[ExtremeSignal], bullish_pct: float, bearish_pct: float, timestamp: datetime) -> Optional[Alert]:
    """Return the alert an extreme signal fires, or None for every other band."""
    if signal == ExtremeSignal.EXTREME_BULLISH:
        alert_type, pct = AlertType.EXTREME_BULLISH, bullish_pct
    elif signal == ExtremeSignal.EXTREME_BEARISH:
        alert_type, pct = AlertType.EXTREME_BEARISH, bearish_pct
    else:
        return None
    return Alert(
        timestamp=timestamp,
        alert_type=alert_type,
        sentiment_pct=pct,
        message=ALERT_MESSAGES[alert_type].format(pct=pct),
    )


def combine_tallies(tallies: Sequence[SourceTally]) -> Tuple[Dict[str, float], int]:
    """
    Sum the counts of several tallies.

    Returns:
        (percentages, total_posts) where percentages has the bullish_pct,
        bearish_pct and neutral_pct keys
    """
    bullish = sum(t.bullish for t in tallies)
    bearish = sum(t.bearish for t in tallies)
    neutral = sum(t.neutral for t in tallies)
    total_posts = sum(t.total for t in tallies)
    return compute_percentages(bullish, bearish, neutral), total_posts


class SentimentAggregator:
    """Runs aggregation cycles over a set of sources against one store."""

    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        store: TimeSeriesStore,
        extreme_threshold: float = 90.0,
        high_threshold: float = 75.0,
        dedup_policy: str = DEDUP_ALWAYS,
        source_timeout: float = 120.0,
        concurrent: bool = True,
        failure_warn_threshold: int = 3,
        prometheus_exporter=None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the aggregator.

        Args:
            adapters: Sources polled every cycle
            store: Store receiving readings, snapshots and alerts
            extreme_threshold: Percentage at or above which an alert fires
            high_threshold: Percentage at or above which a high band is logged
            dedup_policy: 'always' appends an alert every extreme cycle,
                'unacknowledged' skips it while one of the same type is open
            source_timeout: Seconds one adapter may take before it counts as failed
            concurrent: Poll the adapters concurrently instead of one by one
            failure_warn_threshold: Failed cycles in a row before a source is reported degraded
            prometheus_exporter: Optional Prometheus metrics exporter
            clock: Source of the cycle timestamp
        """
        if dedup_policy not in (DEDUP_ALWAYS, DEDUP_UNACKNOWLEDGED):
            raise ValueError(f"Unknown alert dedup policy: {dedup_policy}")
        if high_threshold > extreme_threshold:
            raise ValueError("high_threshold must not exceed extreme_threshold")

        self.adapters = list(adapters)
        self.store = store
        self.extreme_threshold = extreme_threshold
        self.high_threshold = high_threshold
        self.dedup_policy = dedup_policy
        self.source_timeout = source_timeout
        self.concurrent = concurrent
        self.prometheus_exporter = prometheus_exporter
        self.clock = clock
        self.failure_warn_threshold = failure_warn_threshold
        self.error_trackers: Dict[str, ConsecutiveErrorTracker] = {
            adapter.name: ConsecutiveErrorTracker(adapter.name, failure_warn_threshold, prometheus_exporter)
            for adapter in self.adapters
        }

    @classmethod
    def from_settings(cls, settings, adapters: Sequence[SourceAdapter], store: TimeSeriesStore, prometheus_exporter=None) -> "SentimentAggregator":
        return cls(
            adapters=adapters,
            store=store,
            extreme_threshold=settings.EXTREME_THRESHOLD_PCT,
            high_threshold=settings.HIGH_THRESHOLD_PCT,
            dedup_policy=settings.ALERT_DEDUP_POLICY,
            source_timeout=settings.SOURCE_TIMEOUT_SECONDS,
            concurrent=settings.CONCURRENT_SOURCES,
            failure_warn_threshold=settings.SOURCE_FAILURE_WARN_THRESHOLD,
            prometheus_exporter=prometheus_exporter,
        )

    async def _fetch_one(self, adapter: SourceAdapter) -> List[SourceTally]:
        """
        Fetch one adapter's tallies, bounded by the source timeout.

        Errors are logged and turned into an empty result so that one source
        never aborts the cycle.
        """
        tracker = self.error_trackers.setdefault(
            adapter.name, ConsecutiveErrorTracker(adapter.name, self.failure_warn_threshold, self.prometheus_exporter)
        )
        try:
            tallies = await asyncio.wait_for(adapter.fetch(), timeout=self.source_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Source '{adapter.name}' timed out after {self.source_timeout}s")
            tracker.record_error()
            return []
        except Exception as e:
            logger.error(f"Source '{adapter.name}' failed: {e}", exc_info=True)
            tracker.record_error()
            return []

        tracker.record_success()
        return [t for t in (tallies or []) if t.total > 0]

    async def collect_tallies(self) -> List[SourceTally]:
        """Poll every adapter and return the non-empty tallies in adapter order."""
        if self.concurrent:
            results = await asyncio.gather(*(self._fetch_one(a) for a in self.adapters))
        else:
            results = [await self._fetch_one(a) for a in self.adapters]
        return [tally for tallies in results for tally in tallies]

    def _should_append_alert(self, alert: Alert) -> bool:
        if self.dedup_policy == DEDUP_ALWAYS:
            return True
        open_same_type = [a for a in self.store.active_alerts() if a.alert_type == alert.alert_type]
        if open_same_type:
            logger.info(
                f"Skipping {alert.alert_type.value} alert, alert {open_same_type[-1].id} is still unacknowledged"
            )
            return False
        return True

    async def aggregate_sentiment(self) -> Optional[AggregateResult]:
        """
        Run one full cycle.

        Returns:
            The cycle's aggregate, or None when no source produced any data (in
            which case nothing is stored).

        Raises:
            StoreError: If the store cannot be written
        """
        logger.info("Starting sentiment aggregation cycle")
        tallies = await self.collect_tallies()

        if not tallies:
            logger.warning("No sentiment data collected this cycle")
            return None

        timestamp = self.clock()
        percentages, total_posts = combine_tallies(tallies)
        signal = classify_signal(
            percentages["bullish_pct"],
            percentages["bearish_pct"],
            self.extreme_threshold,
            self.high_threshold,
        )
        alert = build_alert(signal, percentages["bullish_pct"], percentages["bearish_pct"], timestamp)

        stored_alert: Optional[Alert] = None
        with self.store.batch():
            for tally in tallies:
                self.store.append_reading(Reading.from_tally(tally, timestamp))
            if alert is not None and self._should_append_alert(alert):
                stored_alert = self.store.append_alert(alert)
            self.store.append_aggregate(AggregateSnapshot(
                timestamp=timestamp,
                total_posts=total_posts,
                extreme_signal=signal,
                **percentages,
            ))

        self._log_signal(signal, percentages)
        self._record_metrics(tallies, percentages, total_posts, stored_alert)

        sources = list(dict.fromkeys(t.source for t in tallies))
        logger.info(
            f"Aggregate: {percentages['bullish_pct']:.1f}% bullish, "
            f"{percentages['bearish_pct']:.1f}% bearish from {total_posts} posts "
            f"({', '.join(sources)})"
        )
        return AggregateResult(
            timestamp=timestamp,
            total_posts=total_posts,
            extreme_signal=signal,
            sources=sources,
            alert=stored_alert,
            **percentages,
        )

    def _log_signal(self, signal: Optional[ExtremeSignal], percentages: Dict[str, float]) -> None:
        bullish = percentages["bullish_pct"]
        bearish = percentages["bearish_pct"]
        if signal == ExtremeSignal.EXTREME_BULLISH:
            logger.warning(f"EXTREME BULLISH SIGNAL: {bullish:.1f}%")
        elif signal == ExtremeSignal.EXTREME_BEARISH:
            logger.warning(f"EXTREME BEARISH SIGNAL: {bearish:.1f}%")
        elif signal == ExtremeSignal.HIGH_BULLISH:
            logger.info(f"High bullish: {bullish:.1f}%")
        elif signal == ExtremeSignal.HIGH_BEARISH:
            logger.info(f"High bearish: {bearish:.1f}%")

    def _record_metrics(
        self,
        tallies: Sequence[SourceTally],
        percentages: Dict[str, float],
        total_posts: int,
        alert: Optional[Alert],
    ) -> None:
        if not self.prometheus_exporter:
            return
        for tally in tallies:
            self.prometheus_exporter.record_reading_stored(tally.source)
        if alert is not None:
            self.prometheus_exporter.record_alert(alert.alert_type.value)
        self.prometheus_exporter.set_aggregate(
            percentages["bullish_pct"],
            percentages["bearish_pct"],
            percentages["neutral_pct"],
            total_posts,
        )
