"""
Keyed record store: the persistence boundary for every collection.

Each collection holds JSON-serializable dict records with a string `id` plus
`createdAt`/`updatedAt` timestamps. Two backends share one contract:

  - MemoryStore: dict-backed, used by tests and throwaway sessions.
  - SqliteStore: one `records` table, JSON bodies, insertion order by `seq`.

Conventions:
  - `list()` returns records in insertion order.
  - `get()` returns None for a missing id; `require()` raises NotFoundError.
  - Returned records are copies; mutate and `put()` them back.
  - Writes inside `transaction()` are all-or-nothing. Nested use joins the
    outer transaction.
  - Backend failures surface as StorageError.
"""
from __future__ import annotations

import copy
import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from ..constants import TABLE_RECORDS, SCHEMA_VERSION
from ..errors import NotFoundError, StorageError
from ..utils.helpers import new_id, now_iso
from . import schema as schema_module
from .versioning import get_current_version, set_current_version

_log = logging.getLogger(__name__)


class RecordStore(ABC):
    # ---- contract -----------------------------------------------------------

    @abstractmethod
    def list(self, collection: str) -> list[dict]:
        ...

    @abstractmethod
    def get(self, collection: str, record_id: str) -> Optional[dict]:
        ...

    @abstractmethod
    def put(self, collection: str, record_id: str, record: dict) -> dict:
        """Insert or replace the record stored under `record_id`."""

    @abstractmethod
    def append(self, collection: str, record: dict) -> dict:
        """Insert a new record; assigns `id` when missing. Duplicate ids fail."""

    @abstractmethod
    def remove(self, collection: str, record_id: str) -> bool:
        """Delete a record; returns False if it was not there."""

    @abstractmethod
    def transaction(self):
        """Context manager grouping writes into one all-or-nothing unit."""

    # ---- shared helpers -----------------------------------------------------

    def require(self, collection: str, record_id: str) -> dict:
        rec = self.get(collection, record_id)
        if rec is None:
            raise NotFoundError(collection, record_id)
        return rec

    @staticmethod
    def _stamp(record: dict, record_id: str | None = None) -> dict:
        rec = copy.deepcopy(dict(record))
        if record_id is not None:
            rec["id"] = str(record_id)
        elif not rec.get("id"):
            rec["id"] = new_id()
        else:
            rec["id"] = str(rec["id"])
        ts = now_iso()
        rec.setdefault("createdAt", ts)
        rec["updatedAt"] = ts
        return rec

    @staticmethod
    def _dumps(record: dict) -> str:
        try:
            return json.dumps(record, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Record is not JSON-serializable: {e}") from e


class MemoryStore(RecordStore):
    def __init__(self) -> None:
        self._data: dict[str, dict[str, dict]] = {}
        self._lock = threading.RLock()

    def list(self, collection: str) -> list[dict]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._data.get(collection, {}).values()]

    def get(self, collection: str, record_id: str) -> Optional[dict]:
        with self._lock:
            rec = self._data.get(collection, {}).get(str(record_id))
            return copy.deepcopy(rec) if rec is not None else None

    def put(self, collection: str, record_id: str, record: dict) -> dict:
        rec = self._stamp(record, record_id)
        self._dumps(rec)
        with self._lock:
            self._data.setdefault(collection, {})[rec["id"]] = rec
        return copy.deepcopy(rec)

    def append(self, collection: str, record: dict) -> dict:
        rec = self._stamp(record)
        self._dumps(rec)
        with self._lock:
            bucket = self._data.setdefault(collection, {})
            if rec["id"] in bucket:
                raise StorageError(f"Duplicate id '{rec['id']}' in {collection}.")
            bucket[rec["id"]] = rec
        return copy.deepcopy(rec)

    def remove(self, collection: str, record_id: str) -> bool:
        with self._lock:
            return self._data.get(collection, {}).pop(str(record_id), None) is not None

    @contextmanager
    def transaction(self) -> Iterator["MemoryStore"]:
        with self._lock:
            snapshot = copy.deepcopy(self._data)
            try:
                yield self
            except BaseException:
                self._data = snapshot
                raise


class SqliteStore(RecordStore):
    """
    Records live in a single table keyed by (collection, id).

    The connection runs in autocommit mode; `transaction()` issues an explicit
    BEGIN IMMEDIATE/COMMIT so a whole bill commit lands at once.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._depth = 0
        with self._guard("open"):
            self.conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
            self.conn.row_factory = sqlite3.Row
            if self.db_path != ":memory:":
                self.conn.execute("PRAGMA journal_mode = WAL;")
            schema_module.init_schema(self.conn)
            if get_current_version(self.conn) is None:
                set_current_version(self.conn, SCHEMA_VERSION)

    # --- internals -----------------------------------------------------------

    @contextmanager
    def _guard(self, op: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as e:
            _log.error("sqlite %s failed on %s: %s", op, self.db_path, e)
            raise StorageError(f"Storage {op} failed: {e}") from e

    @staticmethod
    def _loads(row: sqlite3.Row) -> dict:
        return json.loads(row["body"])

    # --- API -----------------------------------------------------------------

    def list(self, collection: str) -> list[dict]:
        with self._lock, self._guard("read"):
            rows = self.conn.execute(
                f"SELECT body FROM {TABLE_RECORDS} WHERE collection=? ORDER BY seq",
                (collection,),
            ).fetchall()
        return [self._loads(r) for r in rows]

    def get(self, collection: str, record_id: str) -> Optional[dict]:
        with self._lock, self._guard("read"):
            row = self.conn.execute(
                f"SELECT body FROM {TABLE_RECORDS} WHERE collection=? AND id=?",
                (collection, str(record_id)),
            ).fetchone()
        return self._loads(row) if row else None

    def put(self, collection: str, record_id: str, record: dict) -> dict:
        rec = self._stamp(record, record_id)
        body = self._dumps(rec)
        with self._lock, self._guard("write"):
            self.conn.execute(
                f"""
                INSERT INTO {TABLE_RECORDS}(collection, id, body) VALUES (?, ?, ?)
                ON CONFLICT(collection, id) DO UPDATE SET body = excluded.body
                """,
                (collection, rec["id"], body),
            )
        return rec

    def append(self, collection: str, record: dict) -> dict:
        rec = self._stamp(record)
        body = self._dumps(rec)
        with self._lock, self._guard("write"):
            self.conn.execute(
                f"INSERT INTO {TABLE_RECORDS}(collection, id, body) VALUES (?, ?, ?)",
                (collection, rec["id"], body),
            )
        return rec

    def remove(self, collection: str, record_id: str) -> bool:
        with self._lock, self._guard("delete"):
            cur = self.conn.execute(
                f"DELETE FROM {TABLE_RECORDS} WHERE collection=? AND id=?",
                (collection, str(record_id)),
            )
        return cur.rowcount > 0

    @contextmanager
    def transaction(self) -> Iterator["SqliteStore"]:
        with self._lock:
            outer = self._depth == 0
            if outer:
                with self._guard("begin"):
                    self.conn.execute("BEGIN IMMEDIATE")
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if outer:
                    with self._guard("rollback"):
                        self.conn.execute("ROLLBACK")
                raise
            self._depth -= 1
            if outer:
                with self._guard("commit"):
                    self.conn.execute("COMMIT")

    def close(self) -> None:
        with self._lock:
            self.conn.close()


__all__ = ["RecordStore", "MemoryStore", "SqliteStore"]
