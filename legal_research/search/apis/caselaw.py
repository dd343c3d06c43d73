"""
Caselaw Access Project v1 client.
"""

from typing import Any

from pydantic import ValidationError

from legal_research.search.apis.base import BaseLegalAPIClient
from legal_research.utils.logging import get_logger
from legal_research.utils.schemas import Record

logger = get_logger(__name__)

SOURCE_NAME = "Caselaw Access Project"


class CaselawClient(BaseLegalAPIClient):
    """Caselaw Access Project API client."""

    name = "caselaw"
    id_prefix = "cap"
    source_labels = (SOURCE_NAME, "cap")

    def _map_filters(self, filters: dict[str, str]) -> dict[str, str]:
        params: dict[str, str] = {}
        for key, value in filters.items():
            if key == "source":
                continue
            if key == "year":
                params["decision_date_min"] = f"{value}-01-01"
                params["decision_date_max"] = f"{value}-12-31"
            else:
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
        params: dict[str, Any] = {"search": query, "page_size": limit, **self._map_filters(filters)}
        data = await self._get_json("/cases/", params, operation="search")

        records = []
        for item in data.get("results", []):
            record = self._parse_case(item, full_text=False)
            if record is not None:
                records.append(record)
        return records

    def _parse_case(self, item: dict[str, Any], *, full_text: bool) -> Record | None:
        court = item.get("court") or {}
        casebody = (item.get("casebody") or {}).get("data") or {}

        if full_text:
            opinions = casebody.get("opinions") or [{}]
            content = opinions[0].get("text") or ""
        else:
            content = item.get("preview") or ""
            if isinstance(content, list):
                content = " ".join(content)

        judges = casebody.get("judges") or []
        try:
            return Record(
                id=f"cap-{item['id']}",
                title=(item.get("name") or item.get("name_abbreviation") or "").strip(),
                content=content,
                court=court.get("name") if isinstance(court, dict) else court,
                date=item.get("decision_date"),
                judges=", ".join(judges) if judges else None,
                url=item.get("frontend_url") or item.get("url"),
                source=SOURCE_NAME,
            )
        except (KeyError, ValidationError) as e:
            logger.debug("Skipping malformed Caselaw result", error=str(e))
            return None

    async def _fetch_impl(self, native_id: str) -> Record | None:
        data = await self._get_json(
            f"/cases/{native_id}/", {"full_case": "true"}, operation="case"
        )
        return self._parse_case(data, full_text=True)
