"""Error handling and retry logic for source requests."""

import asyncio
import logging
from functools import wraps
from typing import TypeVar, Callable, Any, Optional, Awaitable, cast

from aiohttp import ClientError
from aiohttp.client_exceptions import ClientResponseError

from sentiment_aggregator.collector.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T")
AsyncFunc = Callable[..., Awaitable[T]]


class ConsecutiveErrorTracker:
    """Tracks how many cycles in a row a source has failed."""

    def __init__(self, source: str, threshold: int, prometheus_exporter=None):
        """
        Initialize the error tracker.

        Args:
            source: Name of the tracked source
            threshold: Number of consecutive failures that counts as degraded
            prometheus_exporter: Optional Prometheus exporter for metrics
        """
        self.source = source
        self.threshold = threshold
        self.consecutive_errors = 0
        self.prometheus_exporter = prometheus_exporter

    def record_error(self) -> None:
        """Record a failed cycle for the source."""
        self.consecutive_errors += 1
        if self.prometheus_exporter:
            self.prometheus_exporter.record_source_failure(self.source)
        if self.is_degraded():
            logger.warning(
                f"Source '{self.source}' has failed {self.consecutive_errors} cycles in a row "
                f"(threshold {self.threshold})"
            )

    def record_success(self) -> None:
        """Record a successful cycle, resetting the consecutive error count."""
        if self.consecutive_errors > 0:
            logger.info(f"Source '{self.source}' recovered after {self.consecutive_errors} failed cycles")
            self.consecutive_errors = 0

    def is_degraded(self) -> bool:
        return self.consecutive_errors >= self.threshold


def with_retries(
    max_retries: Optional[int] = None,
    initial_backoff: float = 1.0,
    max_backoff: float = 16.0,
    backoff_factor: float = 2.0,
) -> Callable[[AsyncFunc[T]], AsyncFunc[T]]:
    """
    Decorator for retrying source request methods with exponential backoff.

    The decorated method's instance may carry `rate_limiter` (used for 429
    responses) and `max_retries` (used when the decorator gets none).

    - 429: wait per Retry-After, counts as a retry
    - 5xx, network errors and timeouts: exponential backoff
    - other 4xx: raised immediately

    Args:
        max_retries: Maximum number of retry attempts
        initial_backoff: Initial backoff time in seconds
        max_backoff: Maximum backoff time in seconds
        backoff_factor: Multiplier for backoff time between retries

    Returns:
        Decorator function
    """
    def decorator(func: AsyncFunc[T]) -> AsyncFunc[T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            owner = args[0] if args else None
            rate_limiter: Optional[RateLimiter] = getattr(owner, "rate_limiter", None)
            limit = max_retries if max_retries is not None else getattr(owner, "max_retries", 2)
            retries = 0
            backoff = initial_backoff

            while True:
                try:
                    return await func(*args, **kwargs)

                except ClientResponseError as e:
                    if retries >= limit:
                        logger.error(f"Max retries ({limit}) exceeded: {e.status} {e.message}")
                        raise

                    if e.status == 429:
                        retry_after = e.headers.get("Retry-After") if e.headers else None
                        if rate_limiter:
                            await rate_limiter.handle_429(retry_after)
                        else:
                            await asyncio.sleep(backoff)
                        retries += 1
                        continue

                    elif 500 <= e.status < 600:
                        logger.warning(
                            f"Server error {e.status}: {e.message}. "
                            f"Retrying in {backoff:.2f}s ({retries+1}/{limit})"
                        )
                        await asyncio.sleep(backoff)
                        retries += 1
                        backoff = min(backoff * backoff_factor, max_backoff)
                        continue

                    else:
                        logger.warning(f"Client error {e.status}: {e.message}")
                        raise

                except (ClientError, asyncio.TimeoutError) as e:
                    if retries >= limit:
                        logger.error(f"Max retries ({limit}) exceeded: {e!r}")
                        raise

                    logger.warning(
                        f"Request error: {e!r}. "
                        f"Retrying in {backoff:.2f}s ({retries+1}/{limit})"
                    )
                    await asyncio.sleep(backoff)
                    retries += 1
                    backoff = min(backoff * backoff_factor, max_backoff)
                    continue

        return cast(AsyncFunc[T], wrapper)
    return decorator
