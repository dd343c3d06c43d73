"""
Official API adapters (CourtListener, Caselaw Access Project, PubMed).
"""

from legal_research.search.apis.base import BaseLegalAPIClient
from legal_research.search.apis.caselaw import CaselawClient
from legal_research.search.apis.courtlistener import CourtListenerClient
from legal_research.search.apis.pubmed import PubMedClient

__all__ = [
    "BaseLegalAPIClient",
    "CaselawClient",
    "CourtListenerClient",
    "PubMedClient",
]
