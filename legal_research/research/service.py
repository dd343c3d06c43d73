"""
Research service facade.

Wires the store, adapters, caches and background sink from settings and
exposes the four read operations: search, fetch_one, get_network, get_judge.
"""

from legal_research.crawler.robots import RobotsPolicyCache
from legal_research.research.citation_graph import CitationGraphReader
from legal_research.research.judges import JudgeDirectory
from legal_research.research.pipeline import AggregationPipeline
from legal_research.search.apis import CaselawClient, CourtListenerClient, PubMedClient
from legal_research.search.apis.base import BaseLegalAPIClient
from legal_research.search.provider import AdapterRegistry
from legal_research.search.rate_limiter import DomainRateLimiter
from legal_research.search.result_cache import ResultCache
from legal_research.search.scrapers import BaseScraperAdapter, StanfordLawReviewScraper
from legal_research.search.store_adapter import InternalStoreAdapter
from legal_research.storage.database import Database
from legal_research.storage.sink import PersistenceSink
from legal_research.utils.config import Settings, get_settings
from legal_research.utils.logging import get_logger
from legal_research.utils.schemas import CitationNetwork, Judge, RankedResultPage, Record

logger = get_logger(__name__)

API_CLIENTS: dict[str, type[BaseLegalAPIClient]] = {
    "courtlistener": CourtListenerClient,
    "caselaw": CaselawClient,
    "pubmed": PubMedClient,
}

SCRAPERS: dict[str, type[BaseScraperAdapter]] = {
    "stanford_law_review": StanfordLawReviewScraper,
}


class LegalResearchService:
    """Entry point used by the CLI (and any embedding application)."""

    def __init__(
        self,
        db: Database,
        registry: AdapterRegistry,
        pipeline: AggregationPipeline,
        citations: CitationGraphReader,
        judges: JudgeDirectory,
        sink: PersistenceSink,
        robots: RobotsPolicyCache | None = None,
        owns_db: bool = False,
    ):
        self.db = db
        self.registry = registry
        self.pipeline = pipeline
        self.citations = citations
        self.judges = judges
        self.sink = sink
        self._robots = robots
        self._owns_db = owns_db

    @classmethod
    async def create(
        cls,
        settings: Settings | None = None,
        db: Database | None = None,
    ) -> "LegalResearchService":
        """Build a service from settings.

        Args:
            settings: Settings (default: get_settings()).
            db: Connected database, left open by close(). A new one is opened
                from settings (and closed by close()) otherwise.
        """
        settings = settings if settings is not None else get_settings()

        owns_db = db is None
        if db is None:
            db = Database(settings.storage.database_path)
            await db.connect()
            await db.initialize_schema()

        limiter = DomainRateLimiter(settings.rate_limits)
        robots = RobotsPolicyCache(config=settings.crawler)

        registry = AdapterRegistry()
        registry.register(InternalStoreAdapter(db))

        courtlistener: CourtListenerClient | None = None
        for name in settings.search.apis:
            client_cls = API_CLIENTS.get(name)
            if client_cls is None:
                logger.warning("Unknown API in settings, skipping", api=name)
                continue
            api_config = settings.get_api_config(name)
            if not api_config.enabled:
                logger.info("API disabled", api=name)
                continue
            client = client_cls(api_config=api_config, limiter=limiter)
            registry.register(client)
            if isinstance(client, CourtListenerClient):
                courtlistener = client

        for name in settings.search.scrapers:
            scraper_cls = SCRAPERS.get(name)
            if scraper_cls is None:
                logger.warning("Unknown scraper in settings, skipping", scraper=name)
                continue
            registry.register(scraper_cls(robots=robots, limiter=limiter))

        sink = PersistenceSink(db)
        pipeline = AggregationPipeline(
            registry,
            ResultCache.from_config(settings.cache),
            sink,
            adapter_timeout=settings.search.adapter_timeout_seconds,
            max_fetch=settings.search.max_fetch,
        )

        logger.info("Research service ready", adapters=registry.list_adapters())
        return cls(
            db=db,
            registry=registry,
            pipeline=pipeline,
            citations=CitationGraphReader(db),
            judges=JudgeDirectory(db, courtlistener),
            sink=sink,
            robots=robots,
            owns_db=owns_db,
        )

    async def search(
        self,
        query: str,
        filter_string: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> RankedResultPage:
        return await self.pipeline.search(query, filter_string, page=page, limit=limit)

    async def fetch_one(self, record_id: str) -> Record | None:
        return await self.pipeline.fetch_one(record_id)

    async def get_network(
        self,
        record_id: str,
        direction: str = "both",
        depth: int = 1,
    ) -> CitationNetwork:
        return await self.citations.get_network(record_id, direction=direction, depth=depth)

    async def get_judge(self, name: str) -> Judge | None:
        return await self.judges.get_judge(name)

    async def close(self) -> None:
        """Flush pending writes and release every network and store resource."""
        await self.sink.close()
        await self.registry.close_all()
        if self._robots is not None:
            await self._robots.close()
        if self._owns_db:
            await self.db.close()
        logger.info("Research service closed")
