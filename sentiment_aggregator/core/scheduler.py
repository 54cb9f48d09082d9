"""Scheduler driving periodic and on-demand aggregation cycles."""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sentiment_aggregator.core.aggregator import SentimentAggregator
from sentiment_aggregator.exceptions import CycleInProgressError
from sentiment_aggregator.models.dtos import AggregateResult

logger = logging.getLogger(__name__)


class SentimentScheduler:
    """
    Runs the aggregator on a fixed interval and on manual triggers.

    Only one cycle runs at a time: the periodic loop and manual triggers share
    one lock, so a trigger that arrives during a cycle either waits for it to
    finish or is rejected.
    """

    def __init__(
        self,
        aggregator: SentimentAggregator,
        interval_seconds: float = 15 * 60,
        run_on_startup: bool = True,
        prometheus_exporter=None,
    ):
        """
        Initialize the scheduler.

        Args:
            aggregator: Aggregator whose cycle is run
            interval_seconds: Seconds between the starts of two scheduled cycles
            run_on_startup: Run the first cycle immediately instead of after one interval
            prometheus_exporter: Optional Prometheus metrics exporter
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.aggregator = aggregator
        self.interval_seconds = interval_seconds
        self.run_on_startup = run_on_startup
        self.prometheus_exporter = prometheus_exporter
        self.running = False
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self.started_at = time.time()
        self.last_cycle_time = 0.0
        self.last_success_time = 0.0
        self.last_result: Optional[AggregateResult] = None
        self.stats: Dict[str, int] = {
            "runs_completed": 0,
            "runs_with_data": 0,
            "runs_failed": 0,
            "manual_runs": 0,
        }

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    async def run_cycle(self, manual: bool = False) -> Optional[AggregateResult]:
        """
        Run one cycle under the scheduler's lock.

        Args:
            manual: Whether the cycle was triggered on demand

        Returns:
            The cycle's aggregate, or None when there was no data

        Raises:
            StoreError: If the store could not be written
        """
        async with self._lock:
            cycle_start = time.time()
            self.last_cycle_time = cycle_start
            if manual:
                self.stats["manual_runs"] += 1

            try:
                if self.prometheus_exporter:
                    with self.prometheus_exporter.time_cycle():
                        result = await self.aggregator.aggregate_sentiment()
                else:
                    result = await self.aggregator.aggregate_sentiment()
            except Exception:
                self.stats["runs_failed"] += 1
                if self.prometheus_exporter:
                    self.prometheus_exporter.record_cycle("error")
                raise

            self.stats["runs_completed"] += 1
            if result is not None:
                self.stats["runs_with_data"] += 1
                self.last_success_time = time.time()
                self.last_result = result
            if self.prometheus_exporter:
                self.prometheus_exporter.record_cycle("data" if result is not None else "empty")

            logger.info(f"Cycle completed in {time.time() - cycle_start:.2f}s")
            return result

    async def trigger_now(self, wait: bool = True) -> Optional[AggregateResult]:
        """
        Run a cycle on demand.

        Args:
            wait: Queue behind a running cycle; when False, reject instead

        Raises:
            CycleInProgressError: If wait is False and a cycle is running
        """
        if not wait and self.is_busy:
            raise CycleInProgressError("An aggregation cycle is already running")
        logger.info("Manual refresh triggered")
        return await self.run_cycle(manual=True)

    async def run_forever(self) -> None:
        """Run cycles until stopped, one every interval."""
        self.running = True
        logger.info(f"Starting scheduler, interval: {self.interval_seconds:.0f}s")

        try:
            if not self.run_on_startup:
                await asyncio.sleep(self.interval_seconds)

            while self.running:
                cycle_start = time.time()

                try:
                    await self.run_cycle()
                except Exception as e:
                    logger.error(f"Error in aggregation cycle: {str(e)}", exc_info=True)

                elapsed = time.time() - cycle_start
                sleep_time = max(0, self.interval_seconds - elapsed)
                if sleep_time > 0:
                    logger.info(f"Sleeping for {sleep_time:.2f}s until next cycle")
                    await asyncio.sleep(sleep_time)

        except asyncio.CancelledError:
            logger.info("Scheduler cancelled")
            raise
        finally:
            self.running = False
            logger.info(f"Scheduler stopped after {self.stats['runs_completed']} cycles")

    def start(self) -> asyncio.Task:
        """Start the repeating task on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever())
        return self._task

    async def stop(self) -> None:
        """Stop the repeating task, cancelling a cycle in flight."""
        logger.info("Stopping scheduler")
        self.running = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                logger.info("Scheduler task cancelled successfully")
        self._task = None

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get current scheduler state for monitoring.

        Returns:
            Dictionary of metrics
        """
        now = time.time()

        def _iso(ts: float) -> Optional[str]:
            return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat() if ts > 0 else None

        return {
            **self.stats,
            "is_running": self.running,
            "is_busy": self.is_busy,
            "interval_seconds": self.interval_seconds,
            "uptime_sec": now - self.started_at,
            "last_cycle_time": _iso(self.last_cycle_time),
            "last_success_time": _iso(self.last_success_time),
            "last_success_age_sec": now - self.last_success_time if self.last_success_time > 0 else None,
            "degraded_sources": [
                name for name, tracker in self.aggregator.error_trackers.items() if tracker.is_degraded()
            ],
        }
