"""
Judge directory: store first, then the CourtListener people API.
"""

from typing import Protocol

from legal_research.storage.database import RecordStore
from legal_research.utils.logging import get_logger
from legal_research.utils.schemas import Judge

logger = get_logger(__name__)


class JudgeSource(Protocol):
    """External judge lookup (implemented by CourtListenerClient)."""

    async def find_judge(self, name: str) -> Judge | None: ...


class JudgeDirectory:
    """Looks judges up by name, caching external hits in the store."""

    def __init__(self, store: RecordStore, external: JudgeSource | None = None):
        self._store = store
        self._external = external

    async def get_judge(self, name: str) -> Judge | None:
        """Find a judge by case-insensitive name substring.

        Returns:
            The judge, or None when neither the store nor the upstream knows
            the name (or the upstream failed).
        """
        name = name.strip()
        if not name:
            return None

        try:
            judge = await self._store.find_judge(name)
        except Exception as e:
            logger.error("Judge store lookup failed", name=name, error=str(e))
            judge = None
        if judge is not None:
            return judge

        if self._external is None:
            return None

        try:
            judge = await self._external.find_judge(name)
        except Exception as e:
            logger.error(
                "External judge lookup failed",
                name=name,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        if judge is None:
            logger.debug("Judge not found", name=name)
            return None

        try:
            await self._store.insert_judge(judge)
        except Exception as e:
            logger.error("Storing judge failed", judge_id=judge.id, error=str(e))

        logger.info("Judge fetched from upstream", judge_id=judge.id, source=judge.source)
        return judge
