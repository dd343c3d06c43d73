"""
In-memory result cache for ranked search pages.

Bounded LRU with a fixed age limit: an entry is evicted when it becomes the
least recently used one past capacity, or when it is older than the TTL,
whichever comes first. Keys are exact strings; there is no normalization.
"""

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from legal_research.utils.config import CacheConfig, get_settings
from legal_research.utils.logging import get_logger
from legal_research.utils.schemas import RankedResultPage

logger = get_logger(__name__)


def make_cache_key(query: str, filter_string: str | None, page: int, limit: int) -> str:
    """Cache key for one search request: ``"{query}|{filter}|{page}|{limit}"``."""
    return f"{query}|{filter_string or ''}|{page}|{limit}"


@dataclass
class CacheEntry:
    value: RankedResultPage
    expires_at: float


class ResultCache:
    """LRU + TTL cache of RankedResultPage values.

    Example:
        cache = ResultCache(max_entries=1000, ttl_seconds=86400)
        cache.set(key, page)
        cached = cache.get(key)
    """

    def __init__(
        self,
        max_entries: int = 1000,
        ttl_seconds: float = 24 * 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self.hits = 0
        self.misses = 0

    @classmethod
    def from_config(cls, config: CacheConfig | None = None) -> "ResultCache":
        config = config if config is not None else get_settings().cache
        return cls(max_entries=config.max_entries, ttl_seconds=config.ttl_hours * 3600)

    def get(self, key: str) -> RankedResultPage | None:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if self._clock() >= entry.expires_at:
            del self._entries[key]
            self.misses += 1
            logger.debug("Cache entry expired", key=key)
            return None

        self._entries.move_to_end(key)
        self.hits += 1
        return entry.value

    def set(self, key: str, value: RankedResultPage) -> None:
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self.ttl_seconds)
        self._entries.move_to_end(key)

        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Cache entry evicted", key=evicted)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

