"""
Filter string parsing.

Filters arrive as ``key:value,key:value`` (e.g. ``court:scotus,year:1966``) and
are turned into a plain mapping that every adapter maps onto its native
vocabulary.
"""

from dataclasses import dataclass, field

from legal_research.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class FilterParseResult:
    """Parsed filters plus the fragments that could not be parsed."""

    filters: dict[str, str] = field(default_factory=dict)
    rejected: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.filters)


def parse_filter(raw: str | None) -> FilterParseResult:
    """Parse a ``key:value,key:value`` filter string.

    Keys are lower-cased; keys and values are whitespace-stripped. The value is
    everything after the first ':' so values may contain colons. A fragment
    with no ':', an empty key or an empty value is rejected. The last
    occurrence of a duplicate key wins.

    Args:
        raw: Filter string or None.

    Returns:
        FilterParseResult. Never raises.
    """
    result = FilterParseResult()
    if not raw:
        return result

    for fragment in raw.split(","):
        if not fragment.strip():
            continue

        key, sep, value = fragment.partition(":")
        key = key.strip().lower()
        value = value.strip()

        if not sep or not key or not value:
            result.rejected.append(fragment.strip())
            continue

        result.filters[key] = value

    if result.rejected:
        logger.debug("Rejected malformed filter fragments", rejected=result.rejected)

    return result

