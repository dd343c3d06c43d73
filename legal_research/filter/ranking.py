"""
Relevance ranking and pagination of merged search records.

Score = 10 when the query occurs in the title + 5 when it occurs in the
content + a recency term. The recency term is the date's proleptic Gregorian
ordinal scaled by 1e-7, so it is always below 1 and only orders records whose
text scores are equal.
"""

import math
from datetime import date, datetime

from legal_research.utils.schemas import Pagination, RankedResultPage, Record

TITLE_MATCH_SCORE = 10.0
CONTENT_MATCH_SCORE = 5.0
RECENCY_SCALE = 1e-7

# Formats seen across CourtListener, CAP, PubMed and scraped pages
_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m",
    "%Y %b %d",
    "%Y %b",
    "%Y %B %d",
    "%Y %B",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%B %Y",
    "%b %Y",
    "%m/%d/%Y",
    "%Y",
)


def parse_record_date(value: str | None) -> date | None:
    """Best-effort parse of a source-native date string.

    Returns:
        The date, or None when the value is missing or not understood.
    """
    if not value:
        return None
    text = value.strip()
    if not text:
        return None

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    # PubMed ranges such as "2019 Mar-Apr" or "2019 Spring"
    head = text.split(" ", 1)[0]
    if len(head) == 4 and head.isdigit():
        return date(int(head), 1, 1)
    return None


def recency_score(record: Record) -> float:
    parsed = parse_record_date(record.date)
    if parsed is None:
        return 0.0
    return parsed.toordinal() * RECENCY_SCALE


def score_record(record: Record, query: str) -> float:
    """Relevance score of one record for a query (case-insensitive match)."""
    needle = query.lower()
    score = 0.0
    if needle and needle in record.title.lower():
        score += TITLE_MATCH_SCORE
    if needle and needle in record.content.lower():
        score += CONTENT_MATCH_SCORE
    return score + recency_score(record)


def rank_records(records: list[Record], query: str) -> list[Record]:
    """Sort by descending score; equal scores keep their input order."""
    return sorted(records, key=lambda r: score_record(r, query), reverse=True)


def paginate(records: list[Record], page: int, limit: int) -> RankedResultPage:
    """Slice one page out of the ranked list.

    Pages outside ``1..pages`` yield an empty result list with the true total.

    Raises:
        ValueError: If limit is below 1.
    """
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")

    total = len(records)
    results = records[(page - 1) * limit : page * limit] if page >= 1 else []

    return RankedResultPage(
        results=results,
        pagination=Pagination(
            total=total,
            page=page,
            limit=limit,
            pages=math.ceil(total / limit),
        ),
    )
