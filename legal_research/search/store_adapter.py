"""
Internal store adapter.

Reads previously persisted records. Always queried first so stored copies win
deduplication against fresh upstream copies of the same document.
"""

import asyncio

from legal_research.search.provider import BaseSourceAdapter, SourceTier
from legal_research.storage.database import RecordStore
from legal_research.utils.logging import get_logger
from legal_research.utils.schemas import Record, RecordSet

logger = get_logger(__name__)


class InternalStoreAdapter(BaseSourceAdapter):
    """Adapter over the persistent record store."""

    name = "store"
    id_prefix = ""
    tier = SourceTier.STORE

    def __init__(self, store: RecordStore):
        self._store = store

    async def search(
        self,
        query: str,
        filters: dict[str, str],
        *,
        page: int = 1,
        limit: int = 20,
        timeout: float | None = None,
    ) -> RecordSet:
        try:
            records = await asyncio.wait_for(
                self._store.search_records(query, filters, page=page, limit=limit),
                timeout=timeout,
            )
        except Exception as e:
            logger.error(
                "Store search failed",
                query=query,
                error_type=type(e).__name__,
                error=str(e),
            )
            return RecordSet.failure(self.name, f"{type(e).__name__}: {e}")

        logger.debug("Store search completed", query=query, count=len(records))
        return RecordSet.success(self.name, records)

    async def fetch_one(self, record_id: str) -> Record | None:
        return await self._store.get_record(record_id)
