"""Fixed-window rate limiting for anonymous participant endpoints.

Buckets are keyed by action and invite token (e.g. "submit:<token>").
Counting is delegated to the `limits` library. The default limiter keeps
counters in its in-process MemoryStorage, which expires elapsed windows on
its own; pass another `limits` storage (e.g. Redis) to share counters
between workers, or override the `get_rate_limiter` dependency.
"""

from typing import Optional

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter as FixedWindowStrategy

from survey_studio.config import get_settings
from survey_studio.logging_config import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Interface for rate limiters used by the participant service."""

    def allow(self, bucket: str, limit: int) -> bool:
        """Record one hit on `bucket` and report whether it is within `limit`."""
        raise NotImplementedError


class FixedWindowRateLimiter(RateLimiter):
    """Fixed-window counter backed by a `limits` storage.

    Each bucket counts hits until its window elapses, then starts over.
    """

    def __init__(self, window_seconds: int, storage: Optional[Storage] = None):
        """Initialize limiter.

        Args:
            window_seconds: Window length in seconds
            storage: `limits` storage holding the counters (defaults to
                a fresh MemoryStorage)
        """
        self.window_seconds = window_seconds
        self.storage = storage if storage is not None else MemoryStorage()
        self._strategy = FixedWindowStrategy(self.storage)

    def allow(self, bucket: str, limit: int) -> bool:
        item = RateLimitItemPerSecond(limit, self.window_seconds)
        allowed = self._strategy.hit(item, bucket)
        if not allowed:
            logger.debug(f"Bucket exhausted ({limit} per {self.window_seconds}s)")
        return allowed

    def reset(self) -> None:
        """Drop every counter."""
        self.storage.reset()


# Global singleton instance
_limiter_instance: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get global RateLimiter instance.

    Returns:
        Global FixedWindowRateLimiter configured from settings
    """
    global _limiter_instance
    if _limiter_instance is None:
        _limiter_instance = FixedWindowRateLimiter(
            window_seconds=get_settings().rate_limit_window_seconds,
        )
    return _limiter_instance
