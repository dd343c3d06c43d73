"""
Source adapter abstraction layer.

Every source of legal records (the internal store, official APIs, scraped
sites) implements one capability interface so the aggregation pipeline can
treat them uniformly. Adapters are grouped by tier; the tier fixes the order
in which results are merged and therefore which copy survives deduplication.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Protocol, runtime_checkable

from legal_research.utils.logging import get_logger
from legal_research.utils.schemas import Record, RecordSet

logger = get_logger(__name__)


class SourceTier(str, Enum):
    """Priority class of an adapter (store > api > scraper)."""

    STORE = "store"
    API = "api"
    SCRAPER = "scraper"


# ============================================================================
# Source Adapter Protocol
# ============================================================================


@runtime_checkable
class SourceAdapter(Protocol):
    """
    Protocol for source adapters.

    Example implementation:
        class MyAdapter:
            name = "my_source"
            id_prefix = "my"
            tier = SourceTier.API

            async def search(self, query, filters, *, page=1, limit=20, timeout=None) -> RecordSet:
                ...

            async def fetch_one(self, record_id) -> Record | None:
                ...

            async def close(self) -> None:
                ...
    """

    name: str
    id_prefix: str
    tier: SourceTier

    def accepts(self, filters: dict[str, str]) -> bool:
        """Whether the adapter should run at all for these filters."""
        ...

    async def search(
        self,
        query: str,
        filters: dict[str, str],
        *,
        page: int = 1,
        limit: int = 20,
        timeout: float | None = None,
    ) -> RecordSet:
        """
        Execute a search.

        ``timeout`` bounds each upstream call, not the wait for a rate limiter
        slot. Must not raise for upstream failures: those are reported through
        ``RecordSet.error`` with an empty record list.
        """
        ...

    async def fetch_one(self, record_id: str) -> Record | None:
        """Fetch a single record by its prefixed id, None when not found."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...


class BaseSourceAdapter(ABC):
    """
    Abstract base class for source adapters.

    ``source_labels`` are the values of the ``source`` filter this adapter
    answers to, compared case-insensitively. An adapter with a ``source``
    filter naming another source is skipped.
    """

    name: str = ""
    id_prefix: str = ""
    tier: SourceTier = SourceTier.API
    source_labels: tuple[str, ...] = ()

    def accepts(self, filters: dict[str, str]) -> bool:
        wanted = filters.get("source")
        if not wanted or self.tier == SourceTier.STORE:
            return True
        wanted = wanted.lower()
        return wanted == self.name.lower() or wanted in (s.lower() for s in self.source_labels)

    def owns_id(self, record_id: str) -> bool:
        return record_id.startswith(f"{self.id_prefix}-")

    def strip_prefix(self, record_id: str) -> str:
        return record_id[len(self.id_prefix) + 1 :] if self.owns_id(record_id) else record_id

    @abstractmethod
    async def search(
        self,
        query: str,
        filters: dict[str, str],
        *,
        page: int = 1,
        limit: int = 20,
        timeout: float | None = None,
    ) -> RecordSet:
        pass

    async def fetch_one(self, record_id: str) -> Record | None:
        return None

    async def close(self) -> None:
        logger.debug("Source adapter closed", adapter=self.name)


# ============================================================================
# Adapter Registry
# ============================================================================


class AdapterRegistry:
    """
    Registry of source adapters grouped by tier.

    Registration order within a tier is the merge order used by the pipeline.

    Example usage:
        registry = AdapterRegistry()
        registry.register(InternalStoreAdapter(db))
        registry.register(CourtListenerClient())

        apis = registry.by_tier(SourceTier.API)
        record = await registry.fetch_one("cl-12345")
    """

    def __init__(self) -> None:
        self._adapters: dict[str, SourceAdapter] = {}

    def register(self, adapter: SourceAdapter) -> None:
        """
        Register an adapter.

        Raises:
            ValueError: If an adapter with the same name or id prefix exists.
        """
        if adapter.name in self._adapters:
            raise ValueError(f"Adapter '{adapter.name}' already registered")
        if adapter.tier != SourceTier.STORE and self.for_prefix(adapter.id_prefix) is not None:
            raise ValueError(f"Id prefix '{adapter.id_prefix}' already registered")

        self._adapters[adapter.name] = adapter
        logger.info(
            "Source adapter registered",
            adapter=adapter.name,
            tier=adapter.tier.value,
            id_prefix=adapter.id_prefix,
        )

    def get(self, name: str) -> SourceAdapter | None:
        return self._adapters.get(name)

    def list_adapters(self) -> list[str]:
        return list(self._adapters)

    def by_tier(self, tier: SourceTier) -> list[SourceAdapter]:
        return [a for a in self._adapters.values() if a.tier == tier]

    @property
    def store(self) -> SourceAdapter | None:
        stores = self.by_tier(SourceTier.STORE)
        return stores[0] if stores else None

    def for_prefix(self, prefix: str) -> SourceAdapter | None:
        """Adapter that owns ids with this prefix (the store owns none)."""
        for adapter in self._adapters.values():
            if adapter.tier != SourceTier.STORE and adapter.id_prefix == prefix:
                return adapter
        return None

    async def fetch_one(self, record_id: str) -> Record | None:
        """
        Dispatch a single-record fetch on the id prefix.

        Returns:
            The record, or None for an unknown prefix, a miss or an upstream
            failure.
        """
        prefix, sep, _ = record_id.partition("-")
        adapter = self.for_prefix(prefix) if sep else None
        if adapter is None:
            logger.debug("No adapter for id prefix", record_id=record_id)
            return None

        try:
            return await adapter.fetch_one(record_id)
        except Exception as e:
            logger.error(
                "Adapter fetch_one failed",
                adapter=adapter.name,
                record_id=record_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

    async def close_all(self) -> None:
        """Close all registered adapters."""
        for name, adapter in self._adapters.items():
            try:
                await adapter.close()
            except Exception as e:
                logger.error("Failed to close adapter", adapter=name, error=str(e))

        self._adapters.clear()
        logger.info("All source adapters closed")

