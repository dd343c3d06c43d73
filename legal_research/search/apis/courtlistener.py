"""
CourtListener REST v3 client.

Case-law search, single opinion lookup and the people (judges) directory.
"""

from typing import Any

from bs4 import BeautifulSoup
from pydantic import ValidationError

from legal_research.search.apis.base import BaseLegalAPIClient
from legal_research.utils.logging import get_logger
from legal_research.utils.schemas import Judge, Record

logger = get_logger(__name__)

SITE_URL = "https://www.courtlistener.com"
SOURCE_NAME = "CourtListener"


def _absolute(url: str | None) -> str | None:
    if url and url.startswith("/"):
        return f"{SITE_URL}{url}"
    return url


def _join(value: Any) -> str | None:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value if v) or None
    return value or None


class CourtListenerClient(BaseLegalAPIClient):
    """CourtListener API client."""

    name = "courtlistener"
    id_prefix = "cl"
    source_labels = (SOURCE_NAME,)

    def _map_filters(self, filters: dict[str, str]) -> dict[str, str]:
        """Translate common filters to CourtListener search parameters."""
        params: dict[str, str] = {}
        for key, value in filters.items():
            if key == "source":
                continue
            if key == "year":
                params["filed_after"] = f"{value}-01-01"
                params["filed_before"] = f"{value}-12-31"
            else:
                # court and any native parameter pass through unchanged
                params[key] = value
        return params

    async def _search_impl(
        self,
        query: str,
        filters: dict[str, str],
        *,
        page: int,
        limit: int,
    ) -> list[Record]:
        params: dict[str, Any] = {"q": query, **self._map_filters(filters)}
        if page > 1:
            params["page"] = page

        data = await self._get_json("/search/", params, operation="search")

        records = []
        for item in data.get("results", [])[:limit]:
            record = self._parse_search_result(item)
            if record is not None:
                records.append(record)
        return records

    def _parse_search_result(self, item: dict[str, Any]) -> Record | None:
        try:
            return Record(
                id=f"cl-{item['id']}",
                title=(item.get("caseName") or "").strip(),
                content=item.get("snippet") or "",
                court=item.get("court_name") or item.get("court"),
                date=item.get("dateFiled"),
                url=_absolute(item.get("absolute_url")),
                source=SOURCE_NAME,
            )
        except (KeyError, ValidationError) as e:
            logger.debug("Skipping malformed CourtListener result", error=str(e))
            return None

    async def _fetch_impl(self, native_id: str) -> Record | None:
        data = await self._get_json(f"/opinions/{native_id}/", operation="opinion")

        content = data.get("plain_text") or ""
        if data.get("html_with_citations"):
            content = BeautifulSoup(data["html_with_citations"], "html.parser").get_text(
                " ", strip=True
            )

        return Record(
            id=f"cl-{native_id}",
            title=data.get("case_name") or f"CourtListener opinion {native_id}",
            content=content,
            court=data.get("court_name"),
            date=data.get("date_filed"),
            judges=_join(data.get("judges")),
            url=_absolute(data.get("absolute_url")),
            source=SOURCE_NAME,
        )

    async def find_judge(self, name: str) -> Judge | None:
        """Look a judge up in the people directory; first hit wins.

        Raises:
            APIRetryError, httpx.HTTPError: On upstream failure.
        """
        data = await self._get_json(
            "/people/", {"name_full__icontains": name}, operation="people"
        )
        results = data.get("results") or []
        if not results:
            return None

        person = results[0]
        positions = person.get("position_titles") or []
        return Judge(
            id=f"cl-{person['id']}",
            name=person.get("name_full") or name,
            position=str(positions[0]) if positions else "Unknown",
            court=str(person.get("court_name") or "Unknown"),
            appointed_by=str(person.get("appointer") or "Unknown"),
            biography=person.get("biography") or None,
            source=SOURCE_NAME,
        )
