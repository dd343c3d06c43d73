"""
Research layer: aggregation pipeline, citation graph, judge directory and the
service facade that wires them together.
"""

from legal_research.research.citation_graph import CitationGraphReader
from legal_research.research.judges import JudgeDirectory
from legal_research.research.pipeline import AggregationPipeline
from legal_research.research.service import LegalResearchService

__all__ = [
    "AggregationPipeline",
    "CitationGraphReader",
    "JudgeDirectory",
    "LegalResearchService",
]
