"""
Search module: source adapters, filter parsing, rate limiting and result caching.
"""

from legal_research.search.filters import FilterParseResult, parse_filter
from legal_research.search.provider import (
    AdapterRegistry,
    BaseSourceAdapter,
    SourceAdapter,
    SourceTier,
)
from legal_research.search.rate_limiter import DomainRateLimiter, get_rate_limiter
from legal_research.search.result_cache import ResultCache, make_cache_key
from legal_research.search.store_adapter import InternalStoreAdapter

__all__ = [
    "AdapterRegistry",
    "BaseSourceAdapter",
    "DomainRateLimiter",
    "FilterParseResult",
    "InternalStoreAdapter",
    "ResultCache",
    "SourceAdapter",
    "SourceTier",
    "get_rate_limiter",
    "make_cache_key",
    "parse_filter",
]
