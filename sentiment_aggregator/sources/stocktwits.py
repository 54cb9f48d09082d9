"""StockTwits source: per-ticker message streams with native sentiment tags."""

import asyncio
import logging
from typing import Any, Dict, List, Sequence

import aiohttp

from sentiment_aggregator.exceptions import SourceError
from sentiment_aggregator.models.dtos import SentimentLabel, SourceTally
from sentiment_aggregator.sources.base import HttpSourceAdapter

logger = logging.getLogger(__name__)

STOCKTWITS_LABELS = {
    "Bullish": SentimentLabel.BULLISH,
    "Bearish": SentimentLabel.BEARISH,
}


def tally_messages(messages: Sequence[Dict[str, Any]], ticker: str, source: str = "stocktwits") -> SourceTally:
    """
    Count the sentiment tags of a StockTwits message list.

    Messages without a tag, or with an unknown one, count as neutral.
    """
    tally = SourceTally.from_counts(source, 0, 0, 0, ticker=ticker)
    for message in messages:
        sentiment = (message.get("entities") or {}).get("sentiment") or {}
        tally = tally.add(STOCKTWITS_LABELS.get(sentiment.get("basic"), SentimentLabel.NEUTRAL))
    return tally


class StockTwitsAdapter(HttpSourceAdapter):
    """Fetches the latest messages of every configured ticker, one tally per ticker."""

    name = "stocktwits"

    def __init__(
        self,
        tickers: Sequence[str],
        api_url: str,
        message_limit: int = 30,
        user_agent: str = "Social-Sentiment-Aggregator/1.0",
        request_timeout: float = 15.0,
        request_delay: float = 0.5,
        max_retries: int = 2,
    ):
        super().__init__(user_agent, request_timeout, request_delay, max_retries)
        self.tickers = list(tickers)
        self.api_url = api_url.rstrip("/")
        self.message_limit = message_limit

    async def fetch(self) -> List[SourceTally]:
        tallies: List[SourceTally] = []
        failed: List[str] = []

        async with self._create_session() as session:
            for ticker in self.tickers:
                url = f"{self.api_url}/{ticker}.json"
                params = {"filter": "all", "limit": self.message_limit}
                try:
                    data = await self._get_json(session, url, params=params)
                except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                    logger.warning(f"StockTwits error for {ticker}: {e!r}")
                    failed.append(ticker)
                    continue

                if not isinstance(data, dict):
                    data = {}
                messages = data.get("messages") or []
                tally = tally_messages(messages, ticker, source=self.name)
                logger.info(f"StockTwits {ticker}: {tally.bullish_pct:.1f}% bullish ({tally.total} posts)")
                tallies.append(tally)

        if self.tickers and len(failed) == len(self.tickers):
            raise SourceError(self.name, f"all {len(failed)} tickers failed")
        return tallies
