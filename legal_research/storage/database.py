"""
Database management for the legal research store.
Handles the SQLite connection, schema and the record/citation/judge operations
the aggregation pipeline consumes.
"""

import asyncio
from pathlib import Path
from typing import Any, Protocol

import aiosqlite

from legal_research.utils.config import get_settings
from legal_research.utils.logging import get_logger
from legal_research.utils.schemas import CitationEdge, Judge, Record

logger = get_logger(__name__)

_RECORD_COLUMNS = ("id", "title", "content", "court", "authors", "date", "url", "source", "judges")


class RecordStore(Protocol):
    """Operations the pipeline needs from the persistent store."""

    async def search_records(
        self,
        query: str,
        filters: dict[str, str] | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> list[Record]: ...

    async def get_record(self, record_id: str) -> Record | None: ...

    async def upsert_records(self, records: list[Record]) -> int: ...

    async def existing_ids(self, ids: list[str]) -> set[str]: ...

    async def get_citation_edges(
        self,
        source_id: str | None = None,
        target_id: str | None = None,
    ) -> list[CitationEdge]: ...

    async def add_citation(self, edge: CitationEdge) -> None: ...

    async def find_judge(self, name: str) -> Judge | None: ...

    async def insert_judge(self, judge: Judge) -> None: ...


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class Database:
    """Async SQLite database manager."""

    def __init__(self, db_path: str | Path | None = None):
        """Initialize database manager.

        Args:
            db_path: Path to SQLite database file. If None, uses settings.
        """
        if db_path is None:
            settings = get_settings()
            db_path = settings.storage.database_path

        self.db_path = Path(db_path)
        self._connection: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        """Connect to the database."""
        if self._connection is not None:
            return

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(
            self.db_path,
            isolation_level=None,  # Auto-commit mode
        )

        await self._connection.execute("PRAGMA journal_mode = WAL")
        await self._connection.execute("PRAGMA synchronous = NORMAL")

        self._connection.row_factory = aiosqlite.Row

        logger.info("Database connected", path=str(self.db_path))

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("Database connection closed")

    async def initialize_schema(self) -> None:
        """Initialize database schema from SQL file."""
        schema_path = Path(__file__).parent / "schema.sql"

        if not schema_path.exists():
            raise FileNotFoundError(f"Schema file not found: {schema_path}")

        schema_sql = schema_path.read_text(encoding="utf-8")

        async with self._lock:
            await self._require_connection().executescript(schema_sql)

        logger.info("Database schema initialized")

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("Database is not connected")
        return self._connection

    async def execute(
        self,
        sql: str,
        parameters: tuple | dict | None = None,
    ) -> aiosqlite.Cursor:
        """Execute a SQL statement.

        Args:
            sql: SQL statement to execute.
            parameters: Optional parameters for the statement.

        Returns:
            Cursor with results.
        """
        async with self._lock:
            connection = self._require_connection()
            if parameters:
                return await connection.execute(sql, parameters)
            return await connection.execute(sql)

    async def execute_many(
        self,
        sql: str,
        parameters: list[tuple | dict],
    ) -> None:
        async with self._lock:
            await self._require_connection().executemany(sql, parameters)

    async def fetch_one(
        self,
        sql: str,
        parameters: tuple | dict | None = None,
    ) -> dict[str, Any] | None:
        cursor = await self.execute(sql, parameters)
        row = await cursor.fetchone()
        return dict(row) if row else None

    async def fetch_all(
        self,
        sql: str,
        parameters: tuple | dict | None = None,
    ) -> list[dict[str, Any]]:
        cursor = await self.execute(sql, parameters)
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    # =========================================================================
    # Records
    # =========================================================================

    async def search_records(
        self,
        query: str,
        filters: dict[str, str] | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> list[Record]:
        """Substring search on title and content, paginated in SQL.

        Supported filters: ``court`` (substring), ``year`` (date prefix),
        ``source`` (exact, case-insensitive). Other keys are ignored.

        Args:
            query: Substring to look for (case-insensitive).
            filters: Parsed filter mapping.
            page: 1-indexed page.
            limit: Page size.

        Returns:
            Matching records, flagged as already in the store.
        """
        filters = filters or {}
        pattern = f"%{_escape_like(query)}%"
        clauses = ["(title LIKE ? ESCAPE '\\' OR content LIKE ? ESCAPE '\\')"]
        params: list[Any] = [pattern, pattern]

        if filters.get("court"):
            clauses.append("court LIKE ? ESCAPE '\\'")
            params.append(f"%{_escape_like(filters['court'])}%")
        if filters.get("year"):
            clauses.append("date LIKE ? ESCAPE '\\'")
            params.append(f"{_escape_like(filters['year'])}%")
        if filters.get("source"):
            clauses.append("source = ? COLLATE NOCASE")
            params.append(filters["source"])

        offset = max(page - 1, 0) * limit
        params.extend([limit, offset])

        rows = await self.fetch_all(
            f"SELECT {', '.join(_RECORD_COLUMNS)} FROM legal_cases "
            f"WHERE {' AND '.join(clauses)} ORDER BY created_at, id LIMIT ? OFFSET ?",
            tuple(params),
        )
        return [Record(**row, in_store=True) for row in rows]

    async def get_record(self, record_id: str) -> Record | None:
        row = await self.fetch_one(
            f"SELECT {', '.join(_RECORD_COLUMNS)} FROM legal_cases WHERE id = ?",
            (record_id,),
        )
        if row is None:
            return None
        return Record(**row, in_store=True)

    async def upsert_records(self, records: list[Record]) -> int:
        """Insert records, replacing the stored copy when the id exists.

        Returns:
            Number of rows written.
        """
        if not records:
            return 0

        columns = ", ".join(_RECORD_COLUMNS)
        placeholders = ", ".join("?" for _ in _RECORD_COLUMNS)
        updates = ", ".join(f"{col} = excluded.{col}" for col in _RECORD_COLUMNS if col != "id")
        sql = (
            f"INSERT INTO legal_cases ({columns}) VALUES ({placeholders}) "
            f"ON CONFLICT(id) DO UPDATE SET {updates}, "
            "updated_at = strftime('%Y-%m-%dT%H:%M:%SZ', 'now')"
        )
        rows = [tuple(record.to_row()[col] for col in _RECORD_COLUMNS) for record in records]
        await self.execute_many(sql, rows)
        return len(rows)

    async def existing_ids(self, ids: list[str]) -> set[str]:
        if not ids:
            return set()
        placeholders = ", ".join("?" for _ in ids)
        rows = await self.fetch_all(
            f"SELECT id FROM legal_cases WHERE id IN ({placeholders})",
            tuple(ids),
        )
        return {row["id"] for row in rows}

    # =========================================================================
    # Citations
    # =========================================================================

    async def get_citation_edges(
        self,
        source_id: str | None = None,
        target_id: str | None = None,
    ) -> list[CitationEdge]:
        """Look up citation edges by either endpoint.

        Raises:
            ValueError: If neither endpoint is given.
        """
        if source_id is None and target_id is None:
            raise ValueError("source_id or target_id is required")

        clauses = []
        params: list[str] = []
        if source_id is not None:
            clauses.append("source_id = ?")
            params.append(source_id)
        if target_id is not None:
            clauses.append("target_id = ?")
            params.append(target_id)

        rows = await self.fetch_all(
            "SELECT source_id, source_title, target_id, target_title, citation_text "
            f"FROM citations WHERE {' AND '.join(clauses)} ORDER BY id",
            tuple(params),
        )
        return [CitationEdge(**row) for row in rows]

    async def add_citation(self, edge: CitationEdge) -> None:
        await self.execute(
            "INSERT OR REPLACE INTO citations "
            "(source_id, source_title, target_id, target_title, citation_text) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                edge.source_id,
                edge.source_title,
                edge.target_id,
                edge.target_title,
                edge.citation_text,
            ),
        )

    # =========================================================================
    # Judges
    # =========================================================================

    async def find_judge(self, name: str) -> Judge | None:
        """Case-insensitive substring match on judge name (first by name)."""
        row = await self.fetch_one(
            "SELECT id, name, position, court, appointed_by, biography, source "
            "FROM judges WHERE name LIKE ? ESCAPE '\\' ORDER BY name LIMIT 1",
            (f"%{_escape_like(name)}%",),
        )
        return Judge(**row) if row else None

    async def insert_judge(self, judge: Judge) -> None:
        await self.execute(
            "INSERT OR REPLACE INTO judges "
            "(id, name, position, court, appointed_by, biography, source) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                judge.id,
                judge.name,
                judge.position,
                judge.court,
                judge.appointed_by,
                judge.biography,
                judge.source,
            ),
        )


# Global database instance
_db: Database | None = None


async def get_database() -> Database:
    """Get the global database instance.

    Returns:
        Database instance.
    """
    global _db
    if _db is None:
        _db = Database()
        await _db.connect()
        await _db.initialize_schema()
    return _db


async def close_database() -> None:
    """Close the global database instance."""
    global _db
    if _db is not None:
        await _db.close()
        _db = None
