"""
Pytest fixtures and configuration for legal research tests.

=============================================================================
Test Classification
=============================================================================

- @pytest.mark.unit: Single class/function, no external dependencies
  - All HTTP traffic mocked (httpx session replaced by AsyncMock)
  - Rate limiter sleeps replaced, no real waiting

- @pytest.mark.integration: Multiple components wired together
  - Real SQLite store in a temporary directory (aiosqlite)
  - External APIs and scraped sites still mocked

=============================================================================
Mock Strategy
=============================================================================

- Network: Prohibited. Adapters get a mocked session via patch.object(client,
  "_get_session") or the `session=` constructor argument.
- File I/O: Use tmp_path / temp_dir fixtures.
- Database: Temporary SQLite file via the test_database fixture.
"""

import os
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio

# Set test environment before importing anything else
os.environ["LEGAL_RESEARCH_CONFIG_DIR"] = str(Path(__file__).parent.parent / "config")
os.environ["LEGAL_RESEARCH_GENERAL__LOG_LEVEL"] = "DEBUG"

from legal_research.utils.schemas import Record  # noqa: E402


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_db_path(temp_dir: Path) -> Path:
    """Get path for temporary test database."""
    return temp_dir / "test_legal_research.db"


@pytest_asyncio.fixture
async def test_database(temp_db_path: Path):
    """Create a temporary test database.

    Saves and restores the global database singleton around the test.
    """
    from legal_research.storage import database as db_module
    from legal_research.storage.database import Database

    saved_global = db_module._db
    db_module._db = None

    db = Database(temp_db_path)
    await db.connect()
    await db.initialize_schema()

    yield db

    await db.close()

    db_module._db = saved_global


@pytest.fixture
def make_record() -> Callable[..., Record]:
    """Factory for Record instances with sensible defaults."""

    def _make(record_id: str = "cl-1", title: str = "Miranda v. Arizona", **kwargs: Any) -> Record:
        defaults: dict[str, Any] = {
            "content": "",
            "source": "CourtListener",
        }
        defaults.update(kwargs)
        return Record(id=record_id, title=title, **defaults)

    return _make


@pytest.fixture
def make_mock_response() -> Callable[..., MagicMock]:
    """Factory for mocked httpx.Response objects.

    A status >= 400 makes raise_for_status() raise httpx.HTTPStatusError.
    """

    def _make(
        json_data: Any = None,
        status: int = 200,
        text: str = "",
    ) -> MagicMock:
        response = MagicMock()
        response.status_code = status
        response.json.return_value = json_data if json_data is not None else {}
        response.text = text
        if status >= 400:
            request = httpx.Request("GET", "https://example.test/")
            real_response = httpx.Response(status, request=request)
            response.raise_for_status.side_effect = httpx.HTTPStatusError(
                f"HTTP {status}", request=request, response=real_response
            )
        else:
            response.raise_for_status.return_value = None
        return response

    return _make


@pytest.fixture
def instant_limiter() -> MagicMock:
    """Rate limiter stand-in whose acquire() returns immediately."""
    limiter = MagicMock()
    limiter.acquire = AsyncMock(return_value=None)
    return limiter


@pytest.fixture
def mock_session() -> AsyncMock:
    """httpx.AsyncClient stand-in; set .get.return_value / .side_effect per test."""
    session = AsyncMock(spec=httpx.AsyncClient)
    return session


# =============================================================================
# Singleton Reset Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset process-wide singletons between tests.

    Prevents asyncio locks from being bound to a stale event loop.
    """
    from legal_research.utils.config import get_settings

    get_settings.cache_clear()
    yield

    from legal_research.crawler.robots import reset_robots_cache
    from legal_research.search.rate_limiter import reset_rate_limiter
    from legal_research.storage import database as db_module

    reset_rate_limiter()
    reset_robots_cache()
    db_module._db = None
    get_settings.cache_clear()
