"""
Pydantic schemas shared between adapters, the aggregation pipeline and the store.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """Canonical legal-research record returned by every source.

    The id is namespaced by source prefix (``cl-``, ``cap-``, ``pm-``,
    ``stanford-``) and the prefix identifies the adapter that can re-fetch it.
    A record with ``court`` set is a case; without it, an article.
    """

    model_config = ConfigDict(frozen=False, extra="ignore")

    id: str = Field(..., min_length=1, description="Source-prefixed unique id")
    title: str = Field(..., min_length=1, description="Case name or article title")
    content: str = Field(default="", description="Snippet, abstract or full text")
    court: str | None = Field(default=None, description="Court name (cases only)")
    authors: str | None = Field(default=None, description="Comma-separated authors")
    date: str | None = Field(default=None, description="Source-native date string")
    url: str | None = Field(default=None, description="Canonical URL")
    source: str = Field(..., description="Human-readable provenance tag")
    judges: str | None = Field(default=None, description="Comma-separated judges")
    in_store: bool = Field(
        default=False,
        exclude=True,
        description="True when the record was read from the persistent store",
    )

    @property
    def id_prefix(self) -> str:
        """Source prefix of the id (text before the first '-')."""
        prefix, _, _ = self.id.partition("-")
        return prefix

    def to_row(self) -> dict[str, Any]:
        """Column mapping for the legal_cases table."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "court": self.court,
            "authors": self.authors,
            "date": self.date,
            "url": self.url,
            "source": self.source,
            "judges": self.judges,
        }


class RecordSet(BaseModel):
    """Result of one adapter search.

    ``error`` is set when the adapter degraded to an empty result
    (upstream unavailable, scraping disallowed, timeout).
    """

    records: list[Record] = Field(default_factory=list)
    source: str = Field(..., description="Adapter name that produced the records")
    error: str | None = Field(default=None)

    @property
    def ok(self) -> bool:
        return self.error is None

    def __len__(self) -> int:
        return len(self.records)

    @classmethod
    def success(cls, source: str, records: list[Record]) -> "RecordSet":
        return cls(source=source, records=records)

    @classmethod
    def failure(cls, source: str, error: str) -> "RecordSet":
        return cls(source=source, records=[], error=error)


class Pagination(BaseModel):
    """Pagination block of a ranked result page."""

    total: int = Field(..., ge=0)
    page: int
    limit: int = Field(..., ge=1)
    pages: int = Field(..., ge=0)


class RankedResultPage(BaseModel):
    """One page of deduplicated, ranked results."""

    results: list[Record] = Field(default_factory=list)
    pagination: Pagination

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return self.model_dump(mode="json")


class CitationEdge(BaseModel):
    """Directed citation: source document cites target document."""

    source_id: str
    source_title: str | None = None
    target_id: str
    target_title: str | None = None
    citation_text: str | None = None


class CitationNetwork(BaseModel):
    """Depth-1 citation neighbourhood of a document."""

    cited_by: list[CitationEdge] = Field(
        default_factory=list, description="Edges whose target is the document"
    )
    cites: list[CitationEdge] = Field(
        default_factory=list, description="Edges whose source is the document"
    )


class Judge(BaseModel):
    """Judge profile."""

    id: str
    name: str
    position: str = "Unknown"
    court: str = "Unknown"
    appointed_by: str = "Unknown"
    biography: str | None = None
    source: str
