"""Reddit source: hot listings of finance subreddits, classified by keyword."""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import aiohttp

from sentiment_aggregator.core.classifier import KeywordClassifier
from sentiment_aggregator.exceptions import SourceError
from sentiment_aggregator.models.dtos import ALL_TICKERS, SourceTally
from sentiment_aggregator.sources.base import HttpSourceAdapter

logger = logging.getLogger(__name__)


def mentions_any(text: str, terms: Sequence[str]) -> bool:
    lower_text = text.lower()
    return any(term.lower() in lower_text for term in terms)


def post_text(post: Dict[str, Any]) -> str:
    """Title and body of a listing child, joined by a space."""
    data = post.get("data") or {}
    return f"{data.get('title') or ''} {data.get('selftext') or ''}"


class RedditAdapter(HttpSourceAdapter):
    """
    Reads the hot listing of each configured subreddit.

    Only posts whose title or body mention one of the search terms are
    classified. All subreddits are combined into a single "ALL" tally.
    """

    name = "reddit"

    def __init__(
        self,
        subreddits: Sequence[str],
        search_terms: Sequence[str],
        base_url: str = "https://www.reddit.com",
        post_limit: int = 50,
        user_agent: str = "Social-Sentiment-Aggregator/1.0",
        request_timeout: float = 15.0,
        request_delay: float = 0.5,
        max_retries: int = 2,
        classifier: Optional[KeywordClassifier] = None,
    ):
        super().__init__(user_agent, request_timeout, request_delay, max_retries)
        self.subreddits = list(subreddits)
        self.search_terms = list(search_terms)
        self.base_url = base_url.rstrip("/")
        self.post_limit = post_limit
        self.classifier = classifier or KeywordClassifier()

    async def fetch(self) -> List[SourceTally]:
        tally = SourceTally.from_counts(self.name, 0, 0, 0, ticker=ALL_TICKERS)
        failed = 0

        async with self._create_session() as session:
            for subreddit in self.subreddits:
                url = f"{self.base_url}/r/{subreddit}/hot.json"
                try:
                    data = await self._get_json(session, url, params={"limit": self.post_limit})
                except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                    logger.warning(f"Reddit error for r/{subreddit}: {e!r}")
                    failed += 1
                    continue

                if not isinstance(data, dict):
                    data = {}
                posts = (data.get("data") or {}).get("children") or []
                relevant = [p for p in posts if mentions_any(post_text(p), self.search_terms)]
                for post in relevant:
                    tally = tally.add(self.classifier.classify(post_text(post)))
                logger.debug(f"r/{subreddit}: {len(relevant)} of {len(posts)} posts relevant")

        if self.subreddits and failed == len(self.subreddits):
            raise SourceError(self.name, f"all {failed} subreddits failed")

        if tally.total == 0:
            logger.info("Reddit: no relevant posts found")
            return []
        logger.info(f"Reddit combined: {tally.bullish_pct:.1f}% bullish ({tally.total} relevant posts)")
        return [tally]
