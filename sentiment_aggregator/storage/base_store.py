"""Defines the TimeSeriesStore protocol for storage backends."""

from datetime import datetime, timedelta
from typing import ContextManager, Dict, List, Optional, Protocol

from sentiment_aggregator.models.dtos import AggregateSnapshot, Alert, Reading


class TimeSeriesStore(Protocol):
    """
    A protocol that defines the interface for all time-series stores.

    Any backend (in-memory, JSON file, SQL database) can be handed to the
    aggregator and the API interchangeably. Every collection is bounded and
    truncated oldest-first right after each append, and every id is assigned
    by the store, monotonically increasing per collection.
    """

    def append_reading(self, reading: Reading) -> Reading:
        """
        Append one per-source reading.

        Args:
            reading: Reading to store; its id is ignored.

        Returns:
            The stored reading, carrying its assigned id.
        """
        ...

    def append_aggregate(self, snapshot: AggregateSnapshot) -> AggregateSnapshot:
        """Append one cycle-wide snapshot and return it with its assigned id."""
        ...

    def append_alert(self, alert: Alert) -> Alert:
        """Append an alert (always stored unacknowledged) and return it with its id."""
        ...

    def latest_aggregate(self) -> Optional[AggregateSnapshot]:
        """Return the most recently appended snapshot, or None if there is none."""
        ...

    def aggregates_since(self, duration: timedelta, now: Optional[datetime] = None) -> List[AggregateSnapshot]:
        """
        Return the snapshots newer than a window, oldest first.

        Args:
            duration: Length of the window.
            now: End of the window; defaults to the current UTC time.

        Returns:
            Snapshots whose timestamp is strictly greater than now - duration.
        """
        ...

    def active_alerts(self) -> List[Alert]:
        """Return the unacknowledged alerts in insertion order."""
        ...

    def acknowledge_alert(self, alert_id: int) -> bool:
        """
        Mark an alert as acknowledged.

        Unknown ids and already acknowledged alerts are not errors.

        Returns:
            True if an alert with that id exists.
        """
        ...

    def recent_readings(self, limit: Optional[int] = None) -> List[Reading]:
        """Return the stored readings, oldest first, optionally only the last `limit`."""
        ...

    def counts(self) -> Dict[str, int]:
        """Return the current size of each collection."""
        ...

    def batch(self) -> ContextManager[None]:
        """Hold the store's lock so a group of writes is seen by readers all at once."""
        ...
