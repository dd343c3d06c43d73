"""
Cross-source deduplication of search records.

Two records describe the same document when their stripped titles match
exactly and their stripped court (or, for articles without a court, their
source label) match exactly. Comparison is case-sensitive.
"""

from collections.abc import Iterable

from legal_research.utils.logging import get_logger
from legal_research.utils.schemas import Record

logger = get_logger(__name__)


def dedup_key(record: Record) -> tuple[str, str]:
    """Identity of a record for deduplication: ``(title, court or source)``."""
    venue = (record.court or "").strip() or record.source.strip()
    return record.title.strip(), venue


def deduplicate_records(records: Iterable[Record]) -> list[Record]:
    """Drop later duplicates, keeping the first occurrence.

    Callers pass records in tier order (store, APIs, scrapers) so the
    highest-priority copy survives.
    """
    seen: set[tuple[str, str]] = set()
    unique: list[Record] = []
    dropped = 0

    for record in records:
        key = dedup_key(record)
        if key in seen:
            dropped += 1
            continue
        seen.add(key)
        unique.append(record)

    if dropped:
        logger.debug("Dropped duplicate records", dropped=dropped, kept=len(unique))
    return unique
