"""Persistent record store and background persistence."""

from legal_research.storage.database import (
    Database,
    RecordStore,
    close_database,
    get_database,
)
from legal_research.storage.sink import PersistenceSink

__all__ = [
    "Database",
    "PersistenceSink",
    "RecordStore",
    "close_database",
    "get_database",
]
