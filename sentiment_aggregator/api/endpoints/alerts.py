"""Alert API endpoints: list open alerts and acknowledge them."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from sentiment_aggregator.api.dependencies import get_store
from sentiment_aggregator.exceptions import SentimentAggregatorError
from sentiment_aggregator.models.dtos import AckResponse, AlertResponse
from sentiment_aggregator.storage.base_store import TimeSeriesStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=List[AlertResponse], response_model_by_alias=True)
def get_active_alerts(store: TimeSeriesStore = Depends(get_store)) -> List[AlertResponse]:
    """Get the unacknowledged alerts, oldest first."""
    try:
        alerts = store.active_alerts()
    except SentimentAggregatorError as e:
        logger.error(f"Error reading alerts: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to get alerts")
    return [AlertResponse(**a.model_dump()) for a in alerts]


@router.post("/{alert_id}/ack", response_model=AckResponse, response_model_by_alias=True)
def acknowledge_alert(alert_id: int, store: TimeSeriesStore = Depends(get_store)) -> AckResponse:
    """Acknowledge an alert. Unknown ids succeed without changing anything."""
    try:
        store.acknowledge_alert(alert_id)
    except SentimentAggregatorError as e:
        logger.error(f"Error acknowledging alert {alert_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to acknowledge")
    return AckResponse(success=True)
