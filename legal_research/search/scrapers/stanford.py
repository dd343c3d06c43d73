"""
Stanford Law Review search scraper.
"""

from legal_research.search.scrapers.base import BaseScraperAdapter, SiteSelectors


class StanfordLawReviewScraper(BaseScraperAdapter):
    """Scrapes article hits from the Stanford Law Review site search."""

    name = "stanford_law_review"
    id_prefix = "stanford"
    source_name = "Stanford Law Review"
    source_labels = ("Stanford Law Review", "stanford")
    search_url = "https://lawreview.stanford.edu/search"
    selectors = SiteSelectors(
        result=".search-result",
        title=".article-title",
        content=".article-excerpt",
        authors=".article-authors",
        date=".article-date",
    )
