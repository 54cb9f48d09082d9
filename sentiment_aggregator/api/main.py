"""
FastAPI application for the Sentiment Aggregator service.

This module wires the store, the sources, the aggregator and the scheduler
together and serves the sentiment and alert endpoints.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from sentiment_aggregator.api.dependencies import get_scheduler, get_store
from sentiment_aggregator.api.endpoints import alerts, sentiment
from sentiment_aggregator.config.settings import Settings, get_settings
from sentiment_aggregator.core.aggregator import SentimentAggregator
from sentiment_aggregator.core.scheduler import SentimentScheduler
from sentiment_aggregator.exceptions import SentimentAggregatorError
from sentiment_aggregator.monitoring.metrics import PrometheusExporter
from sentiment_aggregator.sources import build_adapters
from sentiment_aggregator.storage import build_store
from sentiment_aggregator.storage.base_store import TimeSeriesStore

logger = logging.getLogger(__name__)


def build_scheduler(
    settings: Settings,
    store: TimeSeriesStore,
    aggregator: Optional[SentimentAggregator] = None,
    prometheus_exporter: Optional[PrometheusExporter] = None,
) -> SentimentScheduler:
    """Create the scheduler, building the aggregator and its sources when none is given."""
    if aggregator is None:
        aggregator = SentimentAggregator.from_settings(
            settings, build_adapters(settings), store, prometheus_exporter=prometheus_exporter
        )
    return SentimentScheduler(
        aggregator,
        interval_seconds=settings.SCRAPE_INTERVAL_MINUTES * 60,
        run_on_startup=settings.RUN_ON_STARTUP,
        prometheus_exporter=prometheus_exporter,
    )


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[TimeSeriesStore] = None,
    aggregator: Optional[SentimentAggregator] = None,
    start_scheduler: bool = True,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use; defaults to the process-wide settings
        store: Store to serve; built from settings when omitted
        aggregator: Aggregator to schedule; built from settings when omitted
        start_scheduler: Start the periodic scrape loop with the application

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Build the store and scheduler on startup; stop the loop on shutdown."""
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

        prometheus_exporter = None
        if settings.ENABLE_PROMETHEUS:
            prometheus_exporter = PrometheusExporter(settings.PROMETHEUS_PORT)
            prometheus_exporter.start_server()

        app_store = store if store is not None else build_store(settings)
        scheduler = build_scheduler(settings, app_store, aggregator, prometheus_exporter)
        app.state.store = app_store
        app.state.scheduler = scheduler

        if start_scheduler:
            scheduler.start()
            logger.info(
                f"Scheduler started, scraping every {settings.SCRAPE_INTERVAL_MINUTES:g} minutes"
            )
        else:
            logger.info("Scheduler not started; cycles run only on manual refresh")

        yield

        logger.info("Shutting down application")
        await scheduler.stop()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="""Social sentiment aggregator API.

        Serves the latest volume-weighted sentiment aggregate across StockTwits,
        Reddit and Twitter/X, its history, and the contrarian alerts raised when
        retail sentiment reaches an extreme.""",
        debug=settings.DEBUG,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "sentiment", "description": "Aggregate sentiment and manual refresh"},
            {"name": "alerts", "description": "Extreme-sentiment alerts"},
            {"name": "health", "description": "Health check and monitoring"},
        ],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(sentiment.router, prefix="/api/sentiment", tags=["sentiment"])
    app.include_router(alerts.router, prefix="/api/alerts", tags=["alerts"])

    @app.get("/api/status", tags=["health"], summary="Service status")
    def get_status(
        store: TimeSeriesStore = Depends(get_store),
        scheduler: SentimentScheduler = Depends(get_scheduler),
    ):
        """Report the time of the last aggregate, uptime and scheduler state."""
        try:
            latest = store.latest_aggregate()
            counts = store.counts()
        except SentimentAggregatorError as e:
            logger.error(f"Error reading status: {str(e)}")
            raise HTTPException(status_code=500, detail="Failed to get status")

        metrics = scheduler.get_metrics()
        return {
            "status": "running",
            "lastUpdate": latest.timestamp.isoformat() if latest else None,
            "uptime": metrics["uptime_sec"],
            "scheduler": metrics,
            "store": counts,
        }

    @app.get("/health", tags=["health"], summary="Health Check")
    def health_check():
        """Liveness probe."""
        return {
            "status": "healthy",
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


# Create the application instance
app = create_app()
