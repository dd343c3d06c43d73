"""
NCBI E-utilities (PubMed) client.

Search is two calls: esearch for matching PMIDs, then esummary for their
metadata. Single-article fetch uses efetch and parses the PubMed XML.
"""

from typing import Any
from xml.etree import ElementTree as ET

from pydantic import ValidationError

from legal_research.search.apis.base import BaseLegalAPIClient
from legal_research.utils.api_retry import PUBMED_API_POLICY
from legal_research.utils.logging import get_logger
from legal_research.utils.schemas import Record

logger = get_logger(__name__)

SOURCE_NAME = "PubMed"
ARTICLE_URL = "https://pubmed.ncbi.nlm.nih.gov/{pmid}/"


def _text(elem: ET.Element | None) -> str:
    """Full text of an element including inline markup (<i>, <sup>...)."""
    if elem is None:
        return ""
    return "".join(elem.itertext()).strip()


class PubMedClient(BaseLegalAPIClient):
    """PubMed E-utilities client, restricted to law-related literature."""

    name = "pubmed"
    id_prefix = "pm"
    source_labels = (SOURCE_NAME,)
    retry_policy = PUBMED_API_POLICY

    def _build_term(self, query: str, filters: dict[str, str]) -> str:
        term = f"{query} AND law[Title/Abstract]"
        if filters.get("year"):
            term += f" AND {filters['year']}[pdat]"
        return term

    async def _search_impl(
        self,
        query: str,
        filters: dict[str, str],
        *,
        page: int,
        limit: int,
    ) -> list[Record]:
        # Court filters cannot match journal articles
        if filters.get("court"):
            return []

        search_data = await self._get_json(
            "/esearch.fcgi",
            {
                "db": "pubmed",
                "term": self._build_term(query, filters),
                "retmode": "json",
                "retmax": limit,
            },
            operation="esearch",
        )
        ids = (search_data.get("esearchresult") or {}).get("idlist") or []
        if not ids:
            return []

        summary_data = await self._get_json(
            "/esummary.fcgi",
            {"db": "pubmed", "id": ",".join(ids), "retmode": "json"},
            operation="esummary",
        )
        result = summary_data.get("result") or {}

        records = []
        # esummary keys results by uid and lists the order in "uids"
        for uid in result.get("uids", ids):
            item = result.get(uid)
            if not isinstance(item, dict):
                continue
            record = self._parse_summary(item)
            if record is not None:
                records.append(record)
        return records

    def _parse_summary(self, item: dict[str, Any]) -> Record | None:
        uid = item.get("uid")
        if not uid:
            return None
        authors = ", ".join(a.get("name", "") for a in item.get("authors") or [] if a.get("name"))
        try:
            return Record(
                id=f"pm-{uid}",
                title=(item.get("title") or "").strip(),
                content=item.get("description") or "",
                authors=authors or None,
                date=item.get("pubdate"),
                url=ARTICLE_URL.format(pmid=uid),
                source=SOURCE_NAME,
            )
        except ValidationError as e:
            logger.debug("Skipping malformed PubMed summary", uid=uid, error=str(e))
            return None

    async def _fetch_impl(self, native_id: str) -> Record | None:
        response = await self._request(
            "/efetch.fcgi",
            {"db": "pubmed", "id": native_id, "retmode": "xml"},
            operation="efetch",
        )
        return self._parse_article_xml(native_id, response.text)

    def _parse_article_xml(self, pmid: str, xml_text: str) -> Record | None:
        """Parse an efetch PubmedArticleSet document.

        Returns:
            Record for the first article, None when the set is empty.
        """
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            logger.warning("Failed to parse PubMed XML", pmid=pmid, error=str(e))
            return None

        article = root.find(".//PubmedArticle/MedlineCitation/Article")
        if article is None:
            return None

        title = _text(article.find("ArticleTitle"))
        if not title:
            return None

        abstract_parts = []
        for part in article.findall("Abstract/AbstractText"):
            text = _text(part)
            if not text:
                continue
            label = part.get("Label")
            abstract_parts.append(f"{label}: {text}" if label else text)

        authors = []
        for author in article.findall("AuthorList/Author"):
            collective = _text(author.find("CollectiveName"))
            if collective:
                authors.append(collective)
                continue
            name = " ".join(
                p for p in (_text(author.find("ForeName")), _text(author.find("LastName"))) if p
            )
            if name:
                authors.append(name)

        pub_date = article.find("Journal/JournalIssue/PubDate")
        date = None
        if pub_date is not None:
            medline_date = _text(pub_date.find("MedlineDate"))
            parts = [_text(pub_date.find(tag)) for tag in ("Year", "Month", "Day")]
            date = " ".join(p for p in parts if p) or medline_date or None

        return Record(
            id=f"pm-{pmid}",
            title=title,
            content="\n".join(abstract_parts),
            authors=", ".join(authors) or None,
            date=date,
            url=ARTICLE_URL.format(pmid=pmid),
            source=SOURCE_NAME,
        )
