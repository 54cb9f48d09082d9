"""Sentiment sources and the factory that builds the enabled ones."""

import logging
from typing import List

from sentiment_aggregator.config.settings import Settings
from sentiment_aggregator.sources.base import HttpSourceAdapter, SourceAdapter
from sentiment_aggregator.sources.reddit import RedditAdapter
from sentiment_aggregator.sources.stocktwits import StockTwitsAdapter
from sentiment_aggregator.sources.twitter import TwitterAdapter

logger = logging.getLogger(__name__)


def build_adapters(settings: Settings) -> List[SourceAdapter]:
    """
    Create an adapter for every enabled source.

    Args:
        settings: Application settings

    Returns:
        The adapters, in the order the aggregator reports them
    """
    adapters: List[SourceAdapter] = []
    if settings.STOCKTWITS_ENABLED:
        adapters.append(StockTwitsAdapter(
            tickers=settings.TICKERS,
            api_url=settings.STOCKTWITS_API_URL,
            message_limit=settings.STOCKTWITS_MESSAGE_LIMIT,
            user_agent=settings.USER_AGENT,
            request_timeout=settings.REQUEST_TIMEOUT_SECONDS,
            request_delay=settings.STOCKTWITS_REQUEST_DELAY_SECONDS,
            max_retries=settings.MAX_RETRIES,
        ))
    if settings.REDDIT_ENABLED:
        adapters.append(RedditAdapter(
            subreddits=settings.SUBREDDITS,
            search_terms=settings.SEARCH_TERMS,
            base_url=settings.REDDIT_BASE_URL,
            post_limit=settings.REDDIT_POST_LIMIT,
            user_agent=settings.USER_AGENT,
            request_timeout=settings.REQUEST_TIMEOUT_SECONDS,
            request_delay=settings.REDDIT_REQUEST_DELAY_SECONDS,
            max_retries=settings.MAX_RETRIES,
        ))
    if settings.TWITTER_ENABLED:
        if not settings.twitter_credentials_configured:
            logger.info("Twitter source enabled but AUTH_TOKEN/CT0 not set; it will be skipped")
        adapters.append(TwitterAdapter(
            search_terms=settings.TWITTER_SEARCH_TERMS,
            auth_token=settings.AUTH_TOKEN,
            ct0=settings.CT0,
            cli_path=settings.TWITTER_CLI_PATH,
            search_limit=settings.TWITTER_SEARCH_LIMIT,
            cli_timeout=settings.TWITTER_CLI_TIMEOUT_SECONDS,
            request_delay=settings.TWITTER_REQUEST_DELAY_SECONDS,
        ))
    logger.info(f"Configured sources: {', '.join(a.name for a in adapters) or 'none'}")
    return adapters


__all__ = [
    "HttpSourceAdapter",
    "RedditAdapter",
    "SourceAdapter",
    "StockTwitsAdapter",
    "TwitterAdapter",
    "build_adapters",
]
