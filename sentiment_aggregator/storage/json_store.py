"""JSON file storage implementation of the TimeSeriesStore protocol."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Union

from pydantic import ValidationError

from sentiment_aggregator.exceptions import StoreError
from sentiment_aggregator.models.dtos import AggregateSnapshot, Alert, Reading
from sentiment_aggregator.storage.memory_store import (
    DEFAULT_MAX_AGGREGATES,
    DEFAULT_MAX_ALERTS,
    DEFAULT_MAX_READINGS,
    InMemoryStore,
)

logger = logging.getLogger(__name__)


class JsonFileStore(InMemoryStore):
    """
    In-memory store mirrored to a single JSON document.

    The document holds the three collections plus the next id of each, so ids
    keep increasing across restarts even after old entries were evicted. The
    file is rewritten through a temporary file and an atomic rename after every
    mutation, or once at the end of a `batch()`.
    """

    def __init__(
        self,
        path: Union[str, Path],
        max_readings: int = DEFAULT_MAX_READINGS,
        max_aggregates: int = DEFAULT_MAX_AGGREGATES,
        max_alerts: int = DEFAULT_MAX_ALERTS,
    ):
        """
        Initialize the store, loading the file if it exists.

        Args:
            path: Location of the JSON document
            max_readings: Number of readings retained
            max_aggregates: Number of aggregate snapshots retained
            max_alerts: Number of alerts retained

        Raises:
            StoreError: If the file exists but cannot be read or parsed
        """
        super().__init__(max_readings=max_readings, max_aggregates=max_aggregates, max_alerts=max_alerts)
        self.path = Path(path)
        self._ensure_directory()
        self._load()

    def _ensure_directory(self) -> None:
        """Ensure the directory for the JSON file exists."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create directory for {self.path}: {e}") from e

    def _load(self) -> None:
        if not self.path.exists() or self.path.stat().st_size == 0:
            logger.info(f"No existing data at {self.path}, starting empty")
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            readings = [Reading.model_validate(item) for item in data.get("readings", [])]
            aggregates = [AggregateSnapshot.model_validate(item) for item in data.get("aggregate", [])]
            alerts = [Alert.model_validate(item) for item in data.get("alerts", [])]
        except (OSError, json.JSONDecodeError, ValidationError, AttributeError) as e:
            raise StoreError(f"Cannot load store file {self.path}: {e}") from e

        self._readings.extend(readings)
        self._aggregates.extend(aggregates)
        self._alerts.extend(alerts)

        # Files without next_ids still never hand out an id that is already taken.
        next_ids = data.get("next_ids") or {}
        for collection, records in (("readings", readings), ("aggregates", aggregates), ("alerts", alerts)):
            highest = max((r.id or 0 for r in records), default=0)
            self._next_ids[collection] = max(int(next_ids.get(collection, 1)), highest + 1)

        logger.info(
            f"Loaded {len(self._readings)} readings, {len(self._aggregates)} aggregates "
            f"and {len(self._alerts)} alerts from {self.path}"
        )

    def _snapshot(self) -> Dict[str, Any]:
        return {
            "readings": [r.model_dump(mode="json") for r in self._readings],
            "aggregate": [s.model_dump(mode="json") for s in self._aggregates],
            "alerts": [a.model_dump(mode="json") for a in self._alerts],
            "next_ids": dict(self._next_ids),
        }

    def _persist(self) -> None:
        """
        Write the whole document atomically.

        Runs synchronously under the store lock, on the caller's thread (the
        event loop for cycle writes). The bounded collections keep the document
        small; larger bounds would call for moving the write off the loop.
        """
        payload = self._snapshot()
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            logger.error(f"Failed to write store file {self.path}: {e}")
            raise StoreError(f"Cannot write store file {self.path}: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
