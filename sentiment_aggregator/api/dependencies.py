"""FastAPI dependencies resolving the per-application store and scheduler."""

from fastapi import HTTPException, Request

from sentiment_aggregator.core.scheduler import SentimentScheduler
from sentiment_aggregator.storage.base_store import TimeSeriesStore


def get_store(request: Request) -> TimeSeriesStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Store not initialized")
    return store


def get_scheduler(request: Request) -> SentimentScheduler:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Scheduler not initialized")
    return scheduler
