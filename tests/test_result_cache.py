"""
Tests for the LRU + TTL result cache.

Test Perspectives Table:
| Case ID | Input / Precondition | Perspective | Expected Result | Notes |
|---------|---------------------|-------------|-----------------|-------|
| TC-N-01 | set then get | Normal | Same object returned | Identity |
| TC-N-02 | Key format | Normal | "query|filter|page|limit" | None filter -> "" |
| TC-N-03 | get refreshes recency | Normal | Oldest untouched entry evicted | LRU |
| TC-B-01 | Capacity exceeded | Boundary | Oldest evicted, len == max | - |
| TC-B-02 | Age == TTL | Boundary | Miss, entry removed | Expiry |
| TC-B-03 | Age just below TTL | Boundary | Hit | - |
| TC-B-04 | max_entries=0 | Boundary | ValueError | - |
| TC-N-04 | clear() | Normal | Empty | - |
| TC-N-05 | from_config | Normal | Entries / TTL hours -> seconds | - |
"""

import pytest

pytestmark = pytest.mark.unit

from legal_research.search.result_cache import ResultCache, make_cache_key
from legal_research.utils.config import CacheConfig
from legal_research.utils.schemas import Pagination, RankedResultPage


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _page(total: int = 0) -> RankedResultPage:
    return RankedResultPage(
        results=[], pagination=Pagination(total=total, page=1, limit=20, pages=0)
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestMakeCacheKey:
    """Tests for make_cache_key()."""

    def test_key_format(self):
        """TC-N-02: Key joins the request parameters with '|'."""
        # Given/When/Then
        assert make_cache_key("miranda", "court:scotus", 2, 10) == "miranda|court:scotus|2|10"
        assert make_cache_key("miranda", None, 1, 20) == "miranda||1|20"


class TestResultCache:
    """Tests for ResultCache."""

    def test_hit_returns_same_object(self, clock):
        """TC-N-01: A hit returns the stored object itself."""
        # Given
        cache = ResultCache(max_entries=10, ttl_seconds=60, clock=clock)
        page = _page()

        # When
        cache.set("k", page)

        # Then
        assert cache.get("k") is page
        assert cache.hits == 1

    def test_capacity_evicts_oldest(self, clock):
        """TC-B-01: Inserting past capacity evicts the least recently used."""
        # Given: Capacity 2
        cache = ResultCache(max_entries=2, ttl_seconds=60, clock=clock)

        # When: Three inserts
        cache.set("a", _page())
        cache.set("b", _page())
        cache.set("c", _page())

        # Then
        assert len(cache) == 2
        assert "a" not in cache
        assert cache.get("b") is not None
        assert cache.get("c") is not None

    def test_get_refreshes_recency(self, clock):
        """TC-N-03: Reading an entry protects it from the next eviction."""
        # Given
        cache = ResultCache(max_entries=2, ttl_seconds=60, clock=clock)
        cache.set("a", _page())
        cache.set("b", _page())

        # When: Touch "a", then insert "c"
        cache.get("a")
        cache.set("c", _page())

        # Then: "b" was the least recently used
        assert "a" in cache
        assert "b" not in cache

    def test_entry_expires_at_ttl(self, clock):
        """TC-B-02: An entry whose age reaches the TTL is a miss and removed."""
        # Given
        cache = ResultCache(max_entries=10, ttl_seconds=60, clock=clock)
        cache.set("k", _page())

        # When: Exactly TTL later
        clock.now += 60

        # Then
        assert cache.get("k") is None
        assert len(cache) == 0
        assert cache.misses == 1

    def test_entry_valid_just_before_ttl(self, clock):
        """TC-B-03: An entry younger than the TTL is still served."""
        # Given
        cache = ResultCache(max_entries=10, ttl_seconds=60, clock=clock)
        page = _page()
        cache.set("k", page)

        # When
        clock.now += 59.9

        # Then
        assert cache.get("k") is page

    def test_invalid_capacity(self):
        """TC-B-04: Capacity below 1 is rejected."""
        # Given/When/Then
        with pytest.raises(ValueError):
            ResultCache(max_entries=0)

    def test_clear(self, clock):
        """TC-N-04: clear() drops every entry."""
        # Given
        cache = ResultCache(clock=clock)
        cache.set("a", _page())

        # When
        cache.clear()

        # Then
        assert len(cache) == 0
        assert cache.get("a") is None

    def test_from_config(self):
        """TC-N-05: Settings map onto capacity and TTL seconds."""
        # Given/When
        cache = ResultCache.from_config(CacheConfig(max_entries=5, ttl_hours=2))

        # Then
        assert cache.max_entries == 5
        assert cache.ttl_seconds == 7200
