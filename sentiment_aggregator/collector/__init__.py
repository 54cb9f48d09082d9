"""Request throttling and retry helpers shared by the source adapters."""

from .error_handler import ConsecutiveErrorTracker, with_retries
from .rate_limiter import RateLimiter

__all__ = ["ConsecutiveErrorTracker", "RateLimiter", "with_retries"]
