"""Command-line interface for the Social Sentiment Aggregator."""

import asyncio
import json
import logging
from datetime import timedelta
from typing import Optional

import typer
import uvicorn
from typing_extensions import Annotated

from sentiment_aggregator.config.settings import get_settings
from sentiment_aggregator.core.aggregator import SentimentAggregator
from sentiment_aggregator.exceptions import SentimentAggregatorError
from sentiment_aggregator.sources import build_adapters
from sentiment_aggregator.storage import build_store
from sentiment_aggregator.utils.logging_utils import setup_logging

app = typer.Typer(help="Social Sentiment Aggregator - contrarian retail sentiment from social media")

logger = logging.getLogger(__name__)


def _echo_json(payload) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


@app.callback()
def main(
    loglevel: Annotated[Optional[str], typer.Option("--loglevel", "-l", help="Logging level (overrides LOG_LEVEL)")] = None,
) -> None:
    """Configure logging for every command."""
    settings = get_settings()
    setup_logging(settings.LOGGING_CONFIG_PATH, log_level=loglevel or settings.LOG_LEVEL)


@app.command()
def serve(
    host: Annotated[Optional[str], typer.Option("--host", help="Interface to bind (default: API_HOST)")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Port to listen on (default: API_PORT)")] = None,
    no_scheduler: Annotated[bool, typer.Option("--no-scheduler", help="Serve the API without the periodic scrape loop")] = False,
) -> None:
    """Run the HTTP API together with the scrape scheduler."""
    from sentiment_aggregator.api.main import create_app

    settings = get_settings()
    application = create_app(settings, start_scheduler=not no_scheduler)
    bind_host = host or settings.API_HOST
    bind_port = port or settings.API_PORT
    logger.info(f"Serving on http://{bind_host}:{bind_port}")
    uvicorn.run(application, host=bind_host, port=bind_port, log_config=None)


@app.command()
def scrape() -> None:
    """Run one aggregation cycle and print its result."""
    settings = get_settings()
    try:
        store = build_store(settings)
        aggregator = SentimentAggregator.from_settings(settings, build_adapters(settings), store)
        result = asyncio.run(aggregator.aggregate_sentiment())
    except SentimentAggregatorError as e:
        typer.echo(f"Scrape failed: {e}", err=True)
        raise typer.Exit(code=1)

    if result is None:
        typer.echo("No sentiment data collected", err=True)
        raise typer.Exit(code=2)
    _echo_json(result.model_dump(mode="json"))


@app.command()
def alerts() -> None:
    """Print the unacknowledged alerts."""
    try:
        active = build_store(get_settings()).active_alerts()
    except SentimentAggregatorError as e:
        typer.echo(f"Cannot read alerts: {e}", err=True)
        raise typer.Exit(code=1)
    _echo_json([a.model_dump(mode="json") for a in active])


@app.command()
def ack(
    alert_id: Annotated[int, typer.Argument(help="Id of the alert to acknowledge")],
) -> None:
    """Acknowledge an alert."""
    try:
        found = build_store(get_settings()).acknowledge_alert(alert_id)
    except SentimentAggregatorError as e:
        typer.echo(f"Cannot acknowledge alert: {e}", err=True)
        raise typer.Exit(code=1)
    if found:
        typer.echo(f"Alert {alert_id} acknowledged")
    else:
        typer.echo(f"No alert with id {alert_id}")


@app.command()
def history(
    hours: Annotated[Optional[float], typer.Option("--hours", help="Window length in hours (default: HISTORY_DEFAULT_HOURS)")] = None,
) -> None:
    """Print the aggregate snapshots of the last N hours."""
    settings = get_settings()
    window = hours if hours and hours > 0 else settings.HISTORY_DEFAULT_HOURS
    try:
        snapshots = build_store(settings).aggregates_since(timedelta(hours=window))
    except SentimentAggregatorError as e:
        typer.echo(f"Cannot read history: {e}", err=True)
        raise typer.Exit(code=1)
    _echo_json([s.model_dump(mode="json") for s in snapshots])


if __name__ == "__main__":
    app()
