# database/__init__.py
from __future__ import annotations

from pathlib import Path

from ..config import DB_PATH
from ..utils.loggers import get_logger
from .store import MemoryStore, RecordStore, SqliteStore


def get_store(db_path: str | Path | None = None) -> SqliteStore:
    """
    Open the SQLite-backed record store (default: config.DB_PATH).
    Pass ":memory:" for a throwaway database.
    Schema and version row are applied idempotently on open.
    """
    get_logger().debug("opening record store at %s", DB_PATH if db_path is None else db_path)
    return SqliteStore(DB_PATH if db_path is None else db_path)


__all__ = [
    "get_store",
    "RecordStore",
    "MemoryStore",
    "SqliteStore",
]
