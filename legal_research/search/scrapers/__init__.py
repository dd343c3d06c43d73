"""
Scraping adapters for sites without an API.
"""

from legal_research.search.scrapers.base import BaseScraperAdapter, SiteSelectors
from legal_research.search.scrapers.stanford import StanfordLawReviewScraper

__all__ = [
    "BaseScraperAdapter",
    "SiteSelectors",
    "StanfordLawReviewScraper",
]
