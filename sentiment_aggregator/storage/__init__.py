"""Time-series store backends."""

import logging

from sentiment_aggregator.config.settings import Settings
from sentiment_aggregator.storage.base_store import TimeSeriesStore
from sentiment_aggregator.storage.json_store import JsonFileStore
from sentiment_aggregator.storage.memory_store import InMemoryStore
from sentiment_aggregator.storage.sqlalchemy_store import SQLAlchemyStore

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> TimeSeriesStore:
    """
    Create the store backend selected by STORE_BACKEND.

    Args:
        settings: Application settings

    Returns:
        A ready-to-use store
    """
    bounds = {
        "max_readings": settings.MAX_READINGS,
        "max_aggregates": settings.MAX_AGGREGATES,
        "max_alerts": settings.MAX_ALERTS,
    }
    backend = settings.STORE_BACKEND
    logger.info(f"Using '{backend}' store backend")
    if backend == "memory":
        return InMemoryStore(**bounds)
    if backend == "json":
        return JsonFileStore(settings.STORE_JSON_PATH, **bounds)
    if backend == "sqlalchemy":
        return SQLAlchemyStore(settings.DATABASE_URL, echo=settings.DEBUG, **bounds)
    raise ValueError(f"Unknown store backend: {backend}")


__all__ = ["InMemoryStore", "JsonFileStore", "SQLAlchemyStore", "TimeSeriesStore", "build_store"]
