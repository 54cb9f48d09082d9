"""Request spacing for third-party sentiment sources."""

import asyncio
import logging
import time
from typing import Optional, Mapping, Any

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Per-source rate limiter.

    Keeps a minimum delay between consecutive calls to the same source and
    honours X-Ratelimit headers and 429 responses where the source sends them.
    """

    def __init__(
        self,
        min_interval_sec: float,
        min_remaining_calls: int = 5,
        sleep_buffer_sec: float = 1.0,
        default_retry_after_sec: float = 60.0,
    ):
        """
        Initialize the rate limiter.

        Args:
            min_interval_sec: Minimum seconds between two requests to the source
            min_remaining_calls: Wait for the window reset below this many remaining calls
            sleep_buffer_sec: Extra seconds added to every header-driven wait
            default_retry_after_sec: Wait used for a 429 without a usable Retry-After
        """
        self.min_interval = min_interval_sec
        self.min_remaining_calls = min_remaining_calls
        self.sleep_buffer_sec = sleep_buffer_sec
        self.default_retry_after_sec = default_retry_after_sec
        self.remaining_calls: Optional[int] = None
        self.reset_timestamp: Optional[float] = None
        self.last_request_time = 0.0

    async def pre_request(self) -> None:
        """
        Sleep as long as needed before the next request to this source.
        """
        now = time.time()
        elapsed = now - self.last_request_time
        if elapsed < self.min_interval:
            await asyncio.sleep(self.min_interval - elapsed)

        if (self.remaining_calls is not None and
                self.reset_timestamp is not None and
                self.remaining_calls < self.min_remaining_calls):

            wait_time = self.reset_timestamp - time.time() + self.sleep_buffer_sec
            if wait_time > 0:
                logger.info(f"Rate limit approaching: {self.remaining_calls} calls remaining. "
                            f"Sleeping for {wait_time:.2f}s until reset.")
                await asyncio.sleep(wait_time)
            self.remaining_calls = None
            self.reset_timestamp = None

        self.last_request_time = time.time()

    def update_from_headers(self, headers: Mapping[str, Any]) -> None:
        """
        Update rate limit tracking from response headers.

        Args:
            headers: Response headers (case-insensitive mappings are fine)
        """
        remaining = headers.get("x-ratelimit-remaining")
        if remaining is not None:
            try:
                self.remaining_calls = int(float(remaining))
            except (ValueError, TypeError):
                logger.warning("Failed to parse x-ratelimit-remaining header")

        reset = headers.get("x-ratelimit-reset")
        if reset is not None:
            try:
                self.reset_timestamp = time.time() + float(reset)
            except (ValueError, TypeError):
                logger.warning("Failed to parse x-ratelimit-reset header")

    async def handle_429(self, retry_after: Optional[str] = None) -> None:
        """
        Wait out a 429 Too Many Requests response.

        Args:
            retry_after: Value of the Retry-After header, if available
        """
        wait_seconds = self.default_retry_after_sec
        if retry_after:
            try:
                wait_seconds = float(retry_after)
            except (ValueError, TypeError):
                logger.debug(f"Unparseable Retry-After header {retry_after!r}, using default wait")

        wait_seconds += self.sleep_buffer_sec

        logger.warning(f"Rate limited (429). Waiting for {wait_seconds:.2f}s before retrying.")
        await asyncio.sleep(wait_seconds)

        self.remaining_calls = None
        self.reset_timestamp = None
