"""
Sentiment API endpoints.

Current aggregate, aggregate history and the manual refresh that runs a
cycle through the scheduler.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from sentiment_aggregator.api.dependencies import get_scheduler, get_store
from sentiment_aggregator.config.settings import settings
from sentiment_aggregator.core.scheduler import SentimentScheduler
from sentiment_aggregator.exceptions import SentimentAggregatorError
from sentiment_aggregator.models.dtos import (
    CurrentSentimentResponse,
    HistoryPointResponse,
    RefreshResponse,
    RefreshResultResponse,
    utc_now,
)
from sentiment_aggregator.storage.base_store import TimeSeriesStore

router = APIRouter()
logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "No data yet - scraping in progress"


@router.get("/current", response_model=CurrentSentimentResponse, response_model_by_alias=True)
def get_current_sentiment(store: TimeSeriesStore = Depends(get_store)) -> CurrentSentimentResponse:
    """
    Get the latest aggregate snapshot.

    Before the first successful cycle a neutral 50/50 placeholder is returned
    with an explanatory message.
    """
    try:
        latest = store.latest_aggregate()
    except SentimentAggregatorError as e:
        logger.error(f"Error reading current sentiment: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to get sentiment")

    if latest is None:
        return CurrentSentimentResponse(
            bullish_pct=50.0,
            bearish_pct=50.0,
            neutral_pct=0.0,
            total_posts=0,
            extreme_signal=None,
            timestamp=utc_now(),
            message=NO_DATA_MESSAGE,
        )
    return CurrentSentimentResponse(**latest.model_dump(exclude={"id"}))


@router.get("/history", response_model=List[HistoryPointResponse], response_model_by_alias=True)
def get_sentiment_history(
    hours: Optional[float] = Query(default=None, description="Window length in hours; missing or non-positive means the default"),
    store: TimeSeriesStore = Depends(get_store),
) -> List[HistoryPointResponse]:
    """Get the aggregate snapshots of the last `hours` hours, oldest first."""
    window = hours if hours and hours > 0 else settings.HISTORY_DEFAULT_HOURS
    try:
        snapshots = store.aggregates_since(timedelta(hours=window))
    except SentimentAggregatorError as e:
        logger.error(f"Error reading sentiment history: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to get history")
    return [HistoryPointResponse(**s.model_dump(exclude={"id"})) for s in snapshots]


@router.post("/refresh", response_model=RefreshResponse, response_model_by_alias=True)
async def refresh_sentiment(scheduler: SentimentScheduler = Depends(get_scheduler)) -> RefreshResponse:
    """
    Run an aggregation cycle now and return its result.

    Waits for a cycle already in flight to finish before starting a new one.
    `data` is null when no source produced anything.
    """
    try:
        result = await scheduler.trigger_now(wait=True)
    except SentimentAggregatorError as e:
        logger.error(f"Manual refresh failed: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to refresh")

    data = None
    if result is not None:
        data = RefreshResultResponse(**result.model_dump(exclude={"alert"}))
    return RefreshResponse(success=True, data=data)
