"""Defines the SourceAdapter protocol and the shared HTTP adapter base."""

import logging
from typing import Any, Dict, List, Optional, Protocol

import aiohttp

from sentiment_aggregator.collector.error_handler import with_retries
from sentiment_aggregator.collector.rate_limiter import RateLimiter
from sentiment_aggregator.models.dtos import SourceTally

logger = logging.getLogger(__name__)


class SourceAdapter(Protocol):
    """
    A protocol that defines the interface for all sentiment sources.

    The aggregator only depends on this contract, so any source (HTTP API,
    external CLI, test double) can be plugged in interchangeably.
    """

    name: str

    async def fetch(self) -> List[SourceTally]:
        """
        Collect one cycle's worth of posts and tally their sentiment.

        Returns:
            Zero or more tallies; an empty list means nothing was available.

        Raises:
            SourceError: If the source could not be read at all.
        """
        ...


class HttpSourceAdapter:
    """Base class for sources reached over HTTP with aiohttp."""

    name = "http"

    def __init__(
        self,
        user_agent: str,
        request_timeout: float,
        request_delay: float,
        max_retries: int = 2,
    ):
        """
        Initialize the adapter.

        Args:
            user_agent: User-Agent header sent with every request
            request_timeout: Total timeout of one HTTP request in seconds
            request_delay: Minimum seconds between two requests to this source
            max_retries: Retries for 429, 5xx and network errors
        """
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_retries = max_retries
        self.rate_limiter = RateLimiter(request_delay)

    def _create_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            headers={"User-Agent": self.user_agent},
            timeout=aiohttp.ClientTimeout(total=self.request_timeout),
        )

    @with_retries()
    async def _get_json(
        self,
        session: aiohttp.ClientSession,
        url: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        GET a URL and decode its JSON body.

        Raises:
            aiohttp.ClientResponseError: For a non-success status after retries
        """
        await self.rate_limiter.pre_request()
        async with session.get(url, params=params) as response:
            self.rate_limiter.update_from_headers(response.headers)
            response.raise_for_status()
            return await response.json(content_type=None)
