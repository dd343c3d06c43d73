"""
Merging stages of the aggregation pipeline: deduplication, ranking, pagination.
"""

from legal_research.filter.deduplication import dedup_key, deduplicate_records
from legal_research.filter.ranking import (
    paginate,
    parse_record_date,
    rank_records,
    recency_score,
    score_record,
)

__all__ = [
    "dedup_key",
    "deduplicate_records",
    "paginate",
    "parse_record_date",
    "rank_records",
    "recency_score",
    "score_record",
]
