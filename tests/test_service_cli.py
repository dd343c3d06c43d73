"""
Tests for the research service wiring and the CLI.

Test Perspectives Table:
| Case ID | Input / Precondition | Perspective | Expected Result | Notes |
|---------|---------------------|-------------|-----------------|-------|
| TC-SV-N-01 | Default source lists | Normal | Store, APIs in order, scraper registered | - |
| TC-SV-N-02 | No upstreams, stored records | Normal | search/fetch_one served from store | Real SQLite |
| TC-SV-N-03 | Stored citation and judge | Normal | get_network / get_judge answer | - |
| TC-SV-N-04 | Injected database | Normal | close() leaves it open | - |
| TC-SV-B-01 | Unknown / disabled API names | Boundary | Skipped | - |
| TC-CLI-N-01 | search arguments | Normal | Parsed namespace | - |
| TC-CLI-N-02 | case command, record found | Normal | JSON printed, exit 0 | - |
| TC-CLI-B-01 | judge command, not found | Boundary | Exit 1 | - |
| TC-CLI-A-01 | citations depth 0 | Abnormal | Exit 2 | ValueError |
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

pytestmark = pytest.mark.integration

from legal_research.main import build_parser, run_command
from legal_research.research.service import LegalResearchService
from legal_research.search.provider import SourceTier
from legal_research.utils.config import APIConfig, SearchConfig, Settings
from legal_research.utils.schemas import CitationEdge, Judge


def _offline_settings(**search) -> Settings:
    return Settings(search=SearchConfig(apis=[], scrapers=[], **search))


# =============================================================================
# Service
# =============================================================================


class TestLegalResearchService:
    """Tests for LegalResearchService.create() and its operations."""

    @pytest.mark.asyncio
    async def test_default_wiring(self, test_database):
        """TC-SV-N-01: Every configured source is registered by tier."""
        # Given/When
        service = await LegalResearchService.create(Settings(), db=test_database)

        # Then
        try:
            assert service.registry.store is not None
            assert [a.name for a in service.registry.by_tier(SourceTier.API)] == [
                "courtlistener",
                "caselaw",
                "pubmed",
            ]
            assert [a.name for a in service.registry.by_tier(SourceTier.SCRAPER)] == [
                "stanford_law_review"
            ]
        finally:
            await service.close()

    @pytest.mark.asyncio
    async def test_unknown_and_disabled_apis_skipped(self, test_database):
        """TC-SV-B-01: Unknown names and disabled APIs are not registered."""
        # Given
        settings = Settings(search=SearchConfig(apis=["westlaw", "caselaw", "pubmed"], scrapers=[]))
        settings.apis["caselaw"] = APIConfig(base_url="https://api.case.law/v1", enabled=False)

        # When
        service = await LegalResearchService.create(settings, db=test_database)

        # Then
        try:
            assert service.registry.list_adapters() == ["store", "pubmed"]
        finally:
            await service.close()

    @pytest.mark.asyncio
    async def test_store_backed_operations(self, test_database, make_record):
        """TC-SV-N-02: With no upstreams, the store answers search and fetch."""
        # Given
        await test_database.upsert_records(
            [make_record("cl-1", "Miranda v. Arizona", court="Supreme Court")]
        )
        service = await LegalResearchService.create(_offline_settings(), db=test_database)

        # When
        try:
            page = await service.search("miranda", None, page=1, limit=5)
            record = await service.fetch_one("cl-1")
        finally:
            await service.close()

        # Then
        assert [r.id for r in page.results] == ["cl-1"]
        assert page.pagination.total == 1
        assert record is not None
        assert record.in_store

    @pytest.mark.asyncio
    async def test_citations_and_judges(self, test_database):
        """TC-SV-N-03: Citation and judge lookups read the store."""
        # Given
        await test_database.add_citation(CitationEdge(source_id="cap-2", target_id="cl-1"))
        await test_database.insert_judge(Judge(id="cl-42", name="Earl Warren", source="CourtListener"))
        service = await LegalResearchService.create(_offline_settings(), db=test_database)

        # When
        try:
            network = await service.get_network("cl-1", direction="cited")
            judge = await service.get_judge("warren")
        finally:
            await service.close()

        # Then
        assert [e.source_id for e in network.cited_by] == ["cap-2"]
        assert judge is not None
        assert judge.name == "Earl Warren"

    @pytest.mark.asyncio
    async def test_injected_database_left_open(self, test_database):
        """TC-SV-N-04: A caller-owned database survives close()."""
        # Given
        service = await LegalResearchService.create(_offline_settings(), db=test_database)

        # When
        await service.close()

        # Then
        assert await test_database.get_record("cl-1") is None


# =============================================================================
# CLI
# =============================================================================


class TestCli:
    """Tests for build_parser() and run_command()."""

    def test_parse_search(self):
        """TC-CLI-N-01: search options are parsed."""
        # Given/When
        args = build_parser().parse_args(
            ["search", "-q", "miranda", "-f", "court:scotus", "--page", "2", "--limit", "5"]
        )

        # Then
        assert args.command == "search"
        assert args.query == "miranda"
        assert args.filter == "court:scotus"
        assert (args.page, args.limit) == (2, 5)

    @pytest.mark.asyncio
    async def test_case_command(self, test_database, make_record, capsys):
        """TC-CLI-N-02: A found record is printed as JSON."""
        # Given
        await test_database.upsert_records([make_record("cl-1", "Miranda v. Arizona")])
        args = build_parser().parse_args(["case", "--id", "cl-1"])

        # When
        with (
            patch("legal_research.main.get_database", new=AsyncMock(return_value=test_database)),
            patch("legal_research.main.get_settings", return_value=_offline_settings()),
        ):
            code = await run_command(args)

        # Then
        assert code == 0
        printed = json.loads(capsys.readouterr().out)
        assert printed["id"] == "cl-1"
        assert "in_store" not in printed

    @pytest.mark.asyncio
    async def test_judge_not_found(self, test_database):
        """TC-CLI-B-01: Unknown judge exits with 1."""
        # Given
        args = build_parser().parse_args(["judge", "--name", "Nobody"])

        # When
        with (
            patch("legal_research.main.get_database", new=AsyncMock(return_value=test_database)),
            patch("legal_research.main.get_settings", return_value=_offline_settings()),
        ):
            code = await run_command(args)

        # Then
        assert code == 1

    @pytest.mark.asyncio
    async def test_invalid_depth(self, test_database):
        """TC-CLI-A-01: Invalid arguments exit with 2."""
        # Given
        args = build_parser().parse_args(["citations", "--id", "cl-1", "--depth", "0"])

        # When
        with (
            patch("legal_research.main.get_database", new=AsyncMock(return_value=test_database)),
            patch("legal_research.main.get_settings", return_value=_offline_settings()),
        ):
            code = await run_command(args)

        # Then
        assert code == 2
