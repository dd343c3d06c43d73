"""
Citation graph reader.

Serves the immediate citation neighbourhood of a document from the store:
``cited_by`` are edges pointing at the document, ``cites`` are edges leaving it.
"""

import asyncio

from legal_research.storage.database import RecordStore
from legal_research.utils.logging import get_logger
from legal_research.utils.schemas import CitationEdge, CitationNetwork

logger = get_logger(__name__)

DIRECTIONS = ("both", "cited", "citing")


class CitationGraphReader:
    """Depth-1 citation lookups against the record store."""

    def __init__(self, store: RecordStore):
        self._store = store

    async def get_network(
        self,
        record_id: str,
        direction: str = "both",
        depth: int = 1,
    ) -> CitationNetwork:
        """Get citation edges around a document.

        Args:
            record_id: Document id.
            direction: "cited" (who cites it), "citing" (what it cites) or "both".
            depth: Traversal depth; values above 1 are served as 1.

        Returns:
            CitationNetwork. A failed lookup leaves its direction empty.

        Raises:
            ValueError: On an unknown direction or depth below 1.
        """
        if direction not in DIRECTIONS:
            raise ValueError(f"direction must be one of {DIRECTIONS}, got {direction!r}")
        if depth < 1:
            raise ValueError(f"depth must be at least 1, got {depth}")
        if depth > 1:
            logger.info("Citation depth capped", record_id=record_id, requested=depth, served=1)

        want_cited = direction in ("both", "cited")
        want_citing = direction in ("both", "citing")

        cited_by, cites = await asyncio.gather(
            self._lookup(record_id, "cited") if want_cited else _empty(),
            self._lookup(record_id, "citing") if want_citing else _empty(),
        )
        return CitationNetwork(cited_by=cited_by, cites=cites)

    async def _lookup(self, record_id: str, direction: str) -> list[CitationEdge]:
        try:
            if direction == "cited":
                return await self._store.get_citation_edges(target_id=record_id)
            return await self._store.get_citation_edges(source_id=record_id)
        except Exception as e:
            logger.error(
                "Citation lookup failed",
                record_id=record_id,
                direction=direction,
                error_type=type(e).__name__,
                error=str(e),
            )
            return []


async def _empty() -> list[CitationEdge]:
    return []
