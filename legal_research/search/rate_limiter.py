"""
Global rate limiter for external APIs and scraped domains.

One independent limiter per key, where a key is an API name
("courtlistener", "caselaw", "pubmed") or a scraped domain
("lawreview.stanford.edu"). Limits come from the `rate_limits` settings table:
`requests` per `per_seconds`, enforced as a minimum interval between issued
slots. Slots are handed out FIFO per key regardless of how many searches are
in flight.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from legal_research.utils.config import RateLimitsConfig, get_settings
from legal_research.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class KeyRateLimitConfig:
    """Rate limit for a single key."""

    min_interval_seconds: float = 60.0


class DomainRateLimiter:
    """Per-domain / per-API request spacing.

    Each key owns an asyncio.Lock; waiters queue on it in arrival order and
    the holder sleeps until the key's interval has elapsed since the previous
    slot. A robots.txt crawl delay larger than the configured interval wins.

    Example:
        limiter = get_rate_limiter()
        await limiter.acquire("courtlistener")
        response = await session.get(...)
    """

    def __init__(
        self,
        limits: RateLimitsConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._limits = limits
        self._clock = clock
        self._sleep = sleep
        self._locks: dict[str, asyncio.Lock] = {}
        self._last_request: dict[str, float] = {}
        self._configs: dict[str, KeyRateLimitConfig] = {}

    def _get_key_config(self, key: str) -> KeyRateLimitConfig:
        """Resolve and cache the interval for a key.

        Unknown keys fall back to `rate_limits.default`.
        """
        if key in self._configs:
            return self._configs[key]

        limits = self._limits if self._limits is not None else get_settings().rate_limits
        rate = limits.for_key(key)
        config = KeyRateLimitConfig(min_interval_seconds=rate.min_interval_seconds)
        self._configs[key] = config

        logger.debug(
            "Loaded rate limit config",
            key=key,
            requests=rate.requests,
            per_seconds=rate.per_seconds,
        )
        return config

    async def acquire(self, key: str, min_interval: float | None = None) -> None:
        """Suspend until the next slot for `key` is issued.

        Args:
            key: API name or domain.
            min_interval: Extra lower bound on spacing (e.g. robots Crawl-delay).
        """
        config = self._get_key_config(key)
        interval = config.min_interval_seconds
        if min_interval is not None and min_interval > interval:
            interval = min_interval

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            last = self._last_request.get(key)
            if last is not None:
                wait_time = interval - (self._clock() - last)
                if wait_time > 0:
                    logger.debug("Rate limiting: waiting", key=key, wait_seconds=round(wait_time, 3))
                    await self._sleep(wait_time)

            self._last_request[key] = self._clock()

    def get_stats(self, key: str) -> dict[str, float | None]:
        """Get limiter statistics for a key."""
        config = self._get_key_config(key)
        return {
            "min_interval_seconds": config.min_interval_seconds,
            "last_request": self._last_request.get(key),
        }


# Global instance
_rate_limiter: DomainRateLimiter | None = None


def get_rate_limiter() -> DomainRateLimiter:
    """Get or create the process-wide rate limiter."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = DomainRateLimiter()
    return _rate_limiter


def reset_rate_limiter() -> None:
    """Reset the global rate limiter (for testing only)."""
    global _rate_limiter
    _rate_limiter = None
