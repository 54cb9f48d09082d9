"""In-memory storage implementation of the TimeSeriesStore protocol."""

import logging
import threading
from collections import deque
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Deque, Dict, Iterator, List, Optional, Tuple

from sentiment_aggregator.models.dtos import AggregateSnapshot, Alert, Reading, utc_now

logger = logging.getLogger(__name__)

DEFAULT_MAX_READINGS = 1000
DEFAULT_MAX_AGGREGATES = 500
DEFAULT_MAX_ALERTS = 100


class InMemoryStore:
    """
    Bounded, process-local time-series store.

    Each collection is a deque with a maximum length, so the oldest entry is
    dropped in the same step that appends past the bound. Records are copied on
    the way in and on the way out; callers never hold a reference to stored state.
    """

    def __init__(
        self,
        max_readings: int = DEFAULT_MAX_READINGS,
        max_aggregates: int = DEFAULT_MAX_AGGREGATES,
        max_alerts: int = DEFAULT_MAX_ALERTS,
    ):
        """
        Initialize an empty store.

        Args:
            max_readings: Number of readings retained
            max_aggregates: Number of aggregate snapshots retained
            max_alerts: Number of alerts retained
        """
        for name, bound in (("max_readings", max_readings), ("max_aggregates", max_aggregates), ("max_alerts", max_alerts)):
            if bound < 1:
                raise ValueError(f"{name} must be at least 1, got {bound}")

        self._lock = threading.RLock()
        self._batch_depth = 0
        self._readings: Deque[Reading] = deque(maxlen=max_readings)
        self._aggregates: Deque[AggregateSnapshot] = deque(maxlen=max_aggregates)
        self._alerts: Deque[Alert] = deque(maxlen=max_alerts)
        self._next_ids: Dict[str, int] = {"readings": 1, "aggregates": 1, "alerts": 1}

    def _take_id(self, collection: str) -> int:
        next_id = self._next_ids[collection]
        self._next_ids[collection] = next_id + 1
        return next_id

    def _persist(self) -> None:
        """Hook for subclasses that mirror the collections somewhere durable."""

    def _checkpoint(self) -> Tuple[Deque[Reading], Deque[AggregateSnapshot], Deque[Alert], Dict[str, int]]:
        return (
            deque(self._readings, maxlen=self._readings.maxlen),
            deque(self._aggregates, maxlen=self._aggregates.maxlen),
            deque(self._alerts, maxlen=self._alerts.maxlen),
            dict(self._next_ids),
        )

    def _restore(self, checkpoint) -> None:
        self._readings, self._aggregates, self._alerts, self._next_ids = checkpoint

    @contextmanager
    def batch(self) -> Iterator[None]:
        """
        Group writes so they are seen, and persisted, all at once.

        If the block raises or the final persist fails, the collections and
        id counters are restored to their state before the outermost batch.
        """
        with self._lock:
            outermost = self._batch_depth == 0
            checkpoint = self._checkpoint() if outermost else None
            self._batch_depth += 1
            try:
                yield
                if outermost:
                    self._persist()
            except BaseException:
                if outermost:
                    self._restore(checkpoint)
                    logger.warning("Store batch failed, changes discarded")
                raise
            finally:
                self._batch_depth -= 1

    def append_reading(self, reading: Reading) -> Reading:
        with self.batch():
            stored = reading.model_copy(update={"id": self._take_id("readings")})
            self._readings.append(stored)
            return stored.model_copy()

    def append_aggregate(self, snapshot: AggregateSnapshot) -> AggregateSnapshot:
        with self.batch():
            stored = snapshot.model_copy(update={"id": self._take_id("aggregates")})
            self._aggregates.append(stored)
            return stored.model_copy()

    def append_alert(self, alert: Alert) -> Alert:
        with self.batch():
            stored = alert.model_copy(update={"id": self._take_id("alerts"), "acknowledged": False})
            self._alerts.append(stored)
            return stored.model_copy()

    def latest_aggregate(self) -> Optional[AggregateSnapshot]:
        with self._lock:
            if not self._aggregates:
                return None
            return self._aggregates[-1].model_copy()

    def aggregates_since(self, duration: timedelta, now: Optional[datetime] = None) -> List[AggregateSnapshot]:
        cutoff = (now or utc_now()) - duration
        with self._lock:
            return [s.model_copy() for s in self._aggregates if s.timestamp > cutoff]

    def active_alerts(self) -> List[Alert]:
        with self._lock:
            return [a.model_copy() for a in self._alerts if not a.acknowledged]

    def acknowledge_alert(self, alert_id: int) -> bool:
        with self._lock:
            for index, alert in enumerate(self._alerts):
                if alert.id == alert_id:
                    if not alert.acknowledged:
                        with self.batch():
                            self._alerts[index] = alert.model_copy(update={"acknowledged": True})
                        logger.info(f"Acknowledged alert {alert_id}")
                    return True
        logger.debug(f"Acknowledge ignored, no alert with id {alert_id}")
        return False

    def recent_readings(self, limit: Optional[int] = None) -> List[Reading]:
        with self._lock:
            readings = list(self._readings)
        if limit is not None:
            readings = readings[-limit:] if limit > 0 else []
        return [r.model_copy() for r in readings]

    def counts(self) -> Dict[str, int]:
        """Return the current size of each collection."""
        with self._lock:
            return {
                "readings": len(self._readings),
                "aggregates": len(self._aggregates),
                "alerts": len(self._alerts),
            }
