"""
Multi-source aggregation pipeline.

One search request flows through:
1. Result cache (a hit short-circuits everything)
2. Internal store adapter
3. API adapters, concurrently
4. Scraping adapters, concurrently, only while still short of `limit`
5. Deduplication in tier order, ranking, pagination
6. Cache write-through and fire-and-forget persistence of new records
"""

import asyncio

from legal_research.filter.deduplication import deduplicate_records
from legal_research.filter.ranking import paginate, rank_records
from legal_research.search.filters import parse_filter
from legal_research.search.provider import AdapterRegistry, SourceAdapter, SourceTier
from legal_research.search.result_cache import ResultCache, make_cache_key
from legal_research.storage.sink import PersistenceSink
from legal_research.utils.logging import LogContext, get_logger
from legal_research.utils.schemas import RankedResultPage, Record, RecordSet

logger = get_logger(__name__)


class AggregationPipeline:
    """Fan-out search over every registered adapter, merged into one ranked page.

    Adapter failures (including timeouts) degrade that adapter to an empty
    result; the request itself only fails on invalid caller input.
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        cache: ResultCache,
        sink: PersistenceSink | None = None,
        adapter_timeout: float = 30.0,
        max_fetch: int = 200,
    ):
        self.registry = registry
        self.cache = cache
        self.sink = sink
        self.adapter_timeout = adapter_timeout
        self.max_fetch = max_fetch

    async def search(
        self,
        query: str,
        filter_string: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> RankedResultPage:
        """Aggregate, deduplicate, rank and paginate results for a query.

        Args:
            query: Free-text query.
            filter_string: Raw ``key:value,key:value`` filter.
            page: 1-indexed page.
            limit: Page size.

        Returns:
            RankedResultPage. Cached pages are returned as the same object.

        Raises:
            ValueError: If limit is below 1.
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")

        cache_key = make_cache_key(query, filter_string, page, limit)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("Result cache hit", key=cache_key)
            return cached

        filters = parse_filter(filter_string).filters
        # Every adapter is asked for enough records to fill the requested page,
        # up to max_fetch per adapter
        fetch_limit = min(max(page, 1) * limit, self.max_fetch)

        with LogContext(query=query[:100], page=page):
            logger.info("Aggregating search", filters=filters, limit=limit)

            result_sets: list[RecordSet] = []

            store = self.registry.store
            if store is not None:
                result_sets.append(await self._run_adapter(store, query, filters, fetch_limit))

            apis = [a for a in self.registry.by_tier(SourceTier.API) if a.accepts(filters)]
            result_sets.extend(await self._run_tier(apis, query, filters, fetch_limit))

            found = sum(len(rs) for rs in result_sets)
            if found < limit:
                scrapers = [
                    a for a in self.registry.by_tier(SourceTier.SCRAPER) if a.accepts(filters)
                ]
                result_sets.extend(await self._run_tier(scrapers, query, filters, fetch_limit))
            else:
                logger.debug("Skipping scrapers", found=found, limit=limit)

            merged = [record for rs in result_sets for record in rs.records]
            unique = deduplicate_records(merged)
            ranked = rank_records(unique, query)
            result = paginate(ranked, page, limit)

            self.cache.set(cache_key, result)
            if self.sink is not None:
                self.sink.submit(unique)

            logger.info(
                "Search aggregated",
                total=result.pagination.total,
                returned=len(result.results),
                failed_sources=[rs.source for rs in result_sets if not rs.ok],
            )
            return result

    async def _run_tier(
        self,
        adapters: list[SourceAdapter],
        query: str,
        filters: dict[str, str],
        limit: int,
    ) -> list[RecordSet]:
        """Run adapters concurrently; results keep the registration order."""
        if not adapters:
            return []
        return list(
            await asyncio.gather(
                *(self._run_adapter(adapter, query, filters, limit) for adapter in adapters)
            )
        )

    async def _run_adapter(
        self,
        adapter: SourceAdapter,
        query: str,
        filters: dict[str, str],
        limit: int,
    ) -> RecordSet:
        try:
            return await adapter.search(
                query, filters, page=1, limit=limit, timeout=self.adapter_timeout
            )
        except TimeoutError:
            logger.error(
                "Adapter timed out",
                adapter=adapter.name,
                timeout=self.adapter_timeout,
            )
            return RecordSet.failure(adapter.name, f"timeout after {self.adapter_timeout}s")
        except Exception as e:
            logger.error(
                "Adapter raised",
                adapter=adapter.name,
                error_type=type(e).__name__,
                error=str(e),
            )
            return RecordSet.failure(adapter.name, f"{type(e).__name__}: {e}")

    async def fetch_one(self, record_id: str) -> Record | None:
        """Fetch one record: store first, then the adapter owning the id prefix.

        A record fetched from an upstream is queued for persistence.
        """
        store = self.registry.store
        if store is not None:
            try:
                record = await store.fetch_one(record_id)
            except Exception as e:
                logger.error(
                    "Store lookup failed",
                    record_id=record_id,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                record = None
            if record is not None:
                return record

        record = await self.registry.fetch_one(record_id)
        if record is not None and self.sink is not None:
            self.sink.submit([record])
        return record
