"""
Base class for scraping adapters.

Scraped sites tolerate far less traffic than official APIs, so every fetch:
- checks the domain's robots.txt policy first against the search path and
  encoded query (a disallowed URL is never fetched)
- takes a slot from the domain rate limiter, honouring the robots Crawl-delay
- is attempted once; failures degrade to an empty result
"""

import asyncio
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode, urljoin, urlparse

import httpx
from bs4 import BeautifulSoup, Tag
from pydantic import ValidationError

from legal_research.crawler.robots import RobotsPolicyCache, get_robots_cache
from legal_research.search.provider import BaseSourceAdapter, SourceTier
from legal_research.search.rate_limiter import DomainRateLimiter, get_rate_limiter
from legal_research.utils.config import get_settings
from legal_research.utils.logging import get_logger
from legal_research.utils.schemas import Record, RecordSet

logger = get_logger(__name__)


@dataclass(frozen=True)
class SiteSelectors:
    """CSS selector table for one site's search result page."""

    result: str
    title: str
    content: str | None = None
    authors: str | None = None
    date: str | None = None
    link: str = "a"
    id_attribute: str = "data-id"


class BaseScraperAdapter(BaseSourceAdapter):
    """Robots-aware, rate-limited HTML search scraper."""

    tier = SourceTier.SCRAPER

    #: Search page URL; the query goes into ``query_param``
    search_url: str = ""
    query_param: str = "q"
    source_name: str = ""
    selectors: SiteSelectors

    def __init__(
        self,
        robots: RobotsPolicyCache | None = None,
        limiter: DomainRateLimiter | None = None,
        session: httpx.AsyncClient | None = None,
    ):
        self._robots = robots
        self._limiter = limiter
        self._session = session

        parsed = urlparse(self.search_url)
        self.domain = parsed.netloc.lower()
        self.search_path = parsed.path or "/"

    @property
    def robots(self) -> RobotsPolicyCache:
        if self._robots is None:
            self._robots = get_robots_cache()
        return self._robots

    @property
    def limiter(self) -> DomainRateLimiter:
        if self._limiter is None:
            self._limiter = get_rate_limiter()
        return self._limiter

    async def _get_session(self) -> httpx.AsyncClient:
        if self._session is None:
            crawler = get_settings().crawler
            self._session = httpx.AsyncClient(
                timeout=crawler.request_timeout_seconds,
                headers={"User-Agent": crawler.user_agent},
                follow_redirects=True,
            )
        return self._session

    async def search(
        self,
        query: str,
        filters: dict[str, str],
        *,
        page: int = 1,
        limit: int = 20,
        timeout: float | None = None,
    ) -> RecordSet:
        params = self._build_params(query, filters)
        target = f"{self.search_path}?{urlencode(params)}" if params else self.search_path

        policy = await self.robots.get_policy(self.domain)
        if not policy.is_allowed(target):
            logger.info(
                "Scraping disallowed by robots.txt",
                adapter=self.name,
                domain=self.domain,
                path=target,
            )
            return RecordSet.failure(self.name, "disallowed by robots.txt")

        try:
            await self.limiter.acquire(self.domain, min_interval=policy.crawl_delay)
            session = await self._get_session()
            # Waiting for the slot above is not part of the timeout
            response = await asyncio.wait_for(
                session.get(self.search_url, params=params), timeout=timeout
            )
            response.raise_for_status()
            records = self.parse_results(response.text)[:limit]
        except Exception as e:
            logger.error(
                "Scraping failed",
                adapter=self.name,
                domain=self.domain,
                error_type=type(e).__name__,
                error=str(e),
            )
            return RecordSet.failure(self.name, f"{type(e).__name__}: {e}")

        logger.debug("Scrape completed", adapter=self.name, query=query, count=len(records))
        return RecordSet.success(self.name, records)

    def _build_params(self, query: str, filters: dict[str, str]) -> dict[str, Any]:
        return {self.query_param: query}

    def parse_results(self, html: str) -> list[Record]:
        """Extract records from a search result page.

        Entries without a title are skipped.
        """
        soup = BeautifulSoup(html, "html.parser")
        records = []

        for index, element in enumerate(soup.select(self.selectors.result)):
            title = self._select_text(element, self.selectors.title)
            if not title:
                continue

            link = element.select_one(self.selectors.link)
            href = link.get("href") if link is not None else None
            url = urljoin(self.search_url, str(href)) if href else None
            native_id = element.get(self.selectors.id_attribute) or index

            try:
                records.append(
                    Record(
                        id=f"{self.id_prefix}-{native_id}",
                        title=title,
                        content=self._select_text(element, self.selectors.content),
                        authors=self._select_text(element, self.selectors.authors) or None,
                        date=self._select_text(element, self.selectors.date) or None,
                        url=url,
                        source=self.source_name,
                    )
                )
            except ValidationError as e:
                logger.debug("Skipping malformed scraped entry", adapter=self.name, error=str(e))

        return records

    @staticmethod
    def _select_text(element: Tag, selector: str | None) -> str:
        if not selector:
            return ""
        found = element.select_one(selector)
        return found.get_text(" ", strip=True) if found is not None else ""

    async def close(self) -> None:
        if self._session is not None:
            await self._session.aclose()
            self._session = None
        await super().close()
