"""
Tests for the source adapter registry and the internal store adapter.

Test Perspectives Table:
| Case ID | Input / Precondition | Perspective | Expected Result | Notes |
|---------|---------------------|-------------|-----------------|-------|
| TC-RG-N-01 | Store, API and scraper registered | Normal | by_tier keeps registration order | - |
| TC-RG-N-02 | for_prefix("cl") | Normal | CourtListener-like adapter | Store owns no prefix |
| TC-RG-N-03 | close_all | Normal | Every adapter closed, registry empty | - |
| TC-RG-A-01 | Duplicate name | Abnormal | ValueError | - |
| TC-RG-A-02 | Duplicate prefix | Abnormal | ValueError | - |
| TC-RG-A-03 | fetch_one on raising adapter | Abnormal | None | - |
| TC-RG-A-04 | close() raises | Abnormal | Other adapters still closed | - |
| TC-ST-N-01 | Store search | Normal | Store records, page/limit forwarded | - |
| TC-ST-A-01 | Store search raises | Abnormal | Empty with error | - |
| TC-AD-N-01 | Real adapters | Normal | Satisfy SourceAdapter protocol | - |
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

pytestmark = pytest.mark.unit

from legal_research.search.apis import CaselawClient, CourtListenerClient, PubMedClient
from legal_research.search.provider import (
    AdapterRegistry,
    BaseSourceAdapter,
    SourceAdapter,
    SourceTier,
)
from legal_research.search.scrapers import StanfordLawReviewScraper
from legal_research.search.store_adapter import InternalStoreAdapter
from legal_research.utils.schemas import RecordSet


class StubAdapter(BaseSourceAdapter):
    def __init__(self, name: str, prefix: str, tier: SourceTier = SourceTier.API):
        self.name = name
        self.id_prefix = prefix
        self.tier = tier
        self.closed = False

    async def search(self, query, filters, *, page=1, limit=20, timeout=None) -> RecordSet:
        return RecordSet.success(self.name, [])

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# Registry
# =============================================================================


class TestAdapterRegistry:
    """Tests for AdapterRegistry."""

    def test_tiers_keep_registration_order(self):
        """TC-RG-N-01: Tier lists follow registration order."""
        # Given
        registry = AdapterRegistry()
        store = InternalStoreAdapter(AsyncMock())
        first = StubAdapter("first", "f")
        second = StubAdapter("second", "s")
        scraper = StubAdapter("scraper", "sc", SourceTier.SCRAPER)

        # When
        for adapter in (store, first, second, scraper):
            registry.register(adapter)

        # Then
        assert registry.store is store
        assert registry.by_tier(SourceTier.API) == [first, second]
        assert registry.by_tier(SourceTier.SCRAPER) == [scraper]
        assert registry.list_adapters() == ["store", "first", "second", "scraper"]

    def test_for_prefix(self):
        """TC-RG-N-02: Prefix lookup skips the store."""
        # Given
        registry = AdapterRegistry()
        registry.register(InternalStoreAdapter(AsyncMock()))
        cl = StubAdapter("courtlistener", "cl")
        registry.register(cl)

        # When/Then
        assert registry.for_prefix("cl") is cl
        assert registry.for_prefix("") is None
        assert registry.for_prefix("pm") is None

    @pytest.mark.parametrize("name,prefix", [("courtlistener", "x"), ("other", "cl")])
    def test_duplicates_rejected(self, name, prefix):
        """TC-RG-A-01 / TC-RG-A-02: Names and prefixes are unique."""
        # Given
        registry = AdapterRegistry()
        registry.register(StubAdapter("courtlistener", "cl"))

        # When/Then
        with pytest.raises(ValueError):
            registry.register(StubAdapter(name, prefix))

    @pytest.mark.asyncio
    async def test_fetch_one_swallows_adapter_errors(self):
        """TC-RG-A-03: A raising adapter fetch resolves to None."""
        # Given
        registry = AdapterRegistry()
        adapter = StubAdapter("courtlistener", "cl")
        adapter.fetch_one = AsyncMock(side_effect=RuntimeError("boom"))
        registry.register(adapter)

        # When/Then
        assert await registry.fetch_one("cl-1") is None
        adapter.fetch_one.assert_awaited_once_with("cl-1")

    @pytest.mark.asyncio
    async def test_close_all(self):
        """TC-RG-N-03 / TC-RG-A-04: Every adapter is closed even if one fails."""
        # Given
        registry = AdapterRegistry()
        broken = StubAdapter("broken", "b")
        broken.close = AsyncMock(side_effect=RuntimeError("close failed"))
        healthy = StubAdapter("healthy", "h")
        registry.register(broken)
        registry.register(healthy)

        # When
        await registry.close_all()

        # Then
        assert healthy.closed
        assert registry.list_adapters() == []


# =============================================================================
# Store adapter and protocol conformance
# =============================================================================


class TestInternalStoreAdapter:
    """Tests for InternalStoreAdapter."""

    @pytest.mark.asyncio
    async def test_search_forwards(self, make_record):
        """TC-ST-N-01: Search is forwarded to the store."""
        # Given
        store = AsyncMock()
        record = make_record("cl-1", in_store=True)
        store.search_records.return_value = [record]
        adapter = InternalStoreAdapter(store)

        # When
        result = await adapter.search("miranda", {"court": "scotus"}, page=1, limit=5)

        # Then
        assert result.records == [record]
        store.search_records.assert_awaited_once_with(
            "miranda", {"court": "scotus"}, page=1, limit=5
        )

    @pytest.mark.asyncio
    async def test_search_failure(self):
        """TC-ST-A-01: Store errors degrade to an empty result."""
        # Given
        store = AsyncMock()
        store.search_records.side_effect = RuntimeError("database is locked")
        adapter = InternalStoreAdapter(store)

        # When
        result = await adapter.search("miranda", {})

        # Then
        assert result.records == []
        assert not result.ok

    def test_store_accepts_any_source_filter(self):
        """The store answers regardless of the source filter."""
        # Given/When/Then
        assert InternalStoreAdapter(AsyncMock()).accepts({"source": "pubmed"})


class TestProtocolConformance:
    """Tests that concrete adapters satisfy SourceAdapter."""

    def test_adapters_implement_protocol(self):
        """TC-AD-N-01: Every concrete adapter is a SourceAdapter."""
        # Given
        limiter = MagicMock()
        adapters = [
            InternalStoreAdapter(AsyncMock()),
            CourtListenerClient(limiter=limiter),
            CaselawClient(limiter=limiter),
            PubMedClient(limiter=limiter),
            StanfordLawReviewScraper(robots=MagicMock(), limiter=limiter),
        ]

        # When/Then
        for adapter in adapters:
            assert isinstance(adapter, SourceAdapter)
        assert {a.id_prefix for a in adapters} == {"", "cl", "cap", "pm", "stanford"}
