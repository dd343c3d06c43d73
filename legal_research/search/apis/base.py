"""
Base class for external legal API clients.
"""

import asyncio
import os
from abc import abstractmethod
from contextvars import ContextVar
from typing import Any, cast

import httpx

from legal_research.search.provider import BaseSourceAdapter, SourceTier
from legal_research.search.rate_limiter import DomainRateLimiter, get_rate_limiter
from legal_research.utils.api_retry import LEGAL_API_POLICY, APIRetryPolicy, retry_api_call
from legal_research.utils.config import APIConfig, get_settings
from legal_research.utils.logging import get_logger
from legal_research.utils.schemas import Record, RecordSet

logger = get_logger(__name__)

# Per-call upstream timeout of the search running in the current task
_call_timeout: ContextVar[float | None] = ContextVar("api_call_timeout", default=None)


class BaseLegalAPIClient(BaseSourceAdapter):
    """Base class for official API adapters.

    Subclasses implement ``_search_impl`` and optionally ``_fetch_impl``; the
    public ``search``/``fetch_one`` wrappers turn every failure into an empty
    RecordSet (or None) so a broken upstream never aborts a request.
    """

    tier = SourceTier.API
    retry_policy: APIRetryPolicy = LEGAL_API_POLICY

    def __init__(
        self,
        api_config: APIConfig | None = None,
        limiter: DomainRateLimiter | None = None,
        session: httpx.AsyncClient | None = None,
    ):
        """Initialize client.

        Args:
            api_config: API configuration (if None, loaded from settings)
            limiter: Rate limiter (if None, the process-wide limiter)
            session: Pre-built HTTP client (tests); built lazily otherwise
        """
        settings = get_settings()
        if api_config is None:
            api_config = settings.get_api_config(self.name)

        self.base_url = api_config.base_url.rstrip("/")
        self.timeout = api_config.timeout_seconds
        self._limiter = limiter
        self._session = session

        default_headers = {"User-Agent": settings.crawler.user_agent}
        if api_config.headers:
            default_headers.update(api_config.headers)
        if api_config.token_env:
            token = os.environ.get(api_config.token_env)
            if token:
                default_headers["Authorization"] = f"Token {token}"
        self.default_headers = default_headers

    @property
    def limiter(self) -> DomainRateLimiter:
        if self._limiter is None:
            self._limiter = get_rate_limiter()
        return self._limiter

    async def _get_session(self) -> httpx.AsyncClient:
        """Get HTTP session (lazy initialization)."""
        if self._session is None:
            self._session = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.default_headers,
                follow_redirects=True,
            )
        return self._session

    async def _request(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        operation: str,
    ) -> httpx.Response:
        """Rate-limited GET with retry; every attempt takes its own limiter slot.

        The search timeout covers the HTTP exchange of one attempt only.
        """
        session = await self._get_session()
        url = f"{self.base_url}{path}"

        async def _get() -> httpx.Response:
            await self.limiter.acquire(self.name)
            response = await asyncio.wait_for(
                session.get(url, params=params), timeout=_call_timeout.get()
            )
            response.raise_for_status()
            return response

        return await retry_api_call(
            _get,
            policy=self.retry_policy,
            operation_name=f"{self.name}.{operation}",
        )

    async def _get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        operation: str,
    ) -> dict[str, Any]:
        response = await self._request(path, params, operation=operation)
        return cast(dict[str, Any], response.json())

    async def search(
        self,
        query: str,
        filters: dict[str, str],
        *,
        page: int = 1,
        limit: int = 20,
        timeout: float | None = None,
    ) -> RecordSet:
        token = _call_timeout.set(timeout)
        try:
            records = await self._search_impl(query, filters, page=page, limit=limit)
        except Exception as e:
            logger.error(
                "API search failed",
                api=self.name,
                query=query,
                error_type=type(e).__name__,
                error=str(e),
            )
            return RecordSet.failure(self.name, f"{type(e).__name__}: {e}")
        finally:
            _call_timeout.reset(token)

        logger.debug("API search completed", api=self.name, query=query, count=len(records))
        return RecordSet.success(self.name, records)

    async def fetch_one(self, record_id: str) -> Record | None:
        if not self.owns_id(record_id):
            return None
        try:
            return await self._fetch_impl(self.strip_prefix(record_id))
        except Exception as e:
            logger.warning(
                "API fetch failed",
                api=self.name,
                record_id=record_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

    @abstractmethod
    async def _search_impl(
        self,
        query: str,
        filters: dict[str, str],
        *,
        page: int,
        limit: int,
    ) -> list[Record]:
        """Run the native search and normalize the response."""
        pass

    async def _fetch_impl(self, native_id: str) -> Record | None:
        return None

    async def close(self) -> None:
        """Close the session."""
        if self._session is not None:
            await self._session.aclose()
            self._session = None
            logger.debug("API client closed", api=self.name)
