"""Storage backends for profile and usage documents."""

from __future__ import annotations

import copy
import json
import sqlite3
import threading
from typing import Any, Dict, Optional, Protocol, Tuple

from quotaledger.errors import TransientStorageError


Document = Dict[str, Any]


class DocumentStore(Protocol):
    """
    Versioned document store interface.

    Every document carries a version that increases on each write. Version 0
    means the document does not exist.
    """

    def get(self, collection: str, doc_id: str) -> Tuple[Optional[Document], int]:
        ...

    def compare_and_set(
        self,
        collection: str,
        doc_id: str,
        data: Document,
        expected_version: int,
    ) -> bool:
        ...

    def close(self) -> None:
        ...


class InMemoryStorage:
    """In-memory storage backend (default)."""

    def __init__(self):
        self._docs: Dict[Tuple[str, str], Tuple[Document, int]] = {}
        self._lock = threading.Lock()

    def get(self, collection: str, doc_id: str) -> Tuple[Optional[Document], int]:
        with self._lock:
            entry = self._docs.get((collection, doc_id))
            if entry is None:
                return None, 0
            data, version = entry
            return copy.deepcopy(data), version

    def compare_and_set(
        self,
        collection: str,
        doc_id: str,
        data: Document,
        expected_version: int,
    ) -> bool:
        key = (collection, doc_id)
        with self._lock:
            current = self._docs.get(key)
            current_version = current[1] if current else 0
            if current_version != expected_version:
                return False
            self._docs[key] = (copy.deepcopy(data), current_version + 1)
            return True

    def close(self) -> None:
        pass


class SQLiteStorage:
    """SQLite-backed storage backend."""

    def __init__(self, db_path: str = "quotaledger.db", timeout: float = 5.0):
        self._conn = sqlite3.connect(
            db_path,
            timeout=timeout,
            check_same_thread=False,
            isolation_level=None,
        )
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                doc_id TEXT NOT NULL,
                data TEXT NOT NULL,
                version INTEGER NOT NULL,
                PRIMARY KEY (collection, doc_id)
            )
            """
        )

    def get(self, collection: str, doc_id: str) -> Tuple[Optional[Document], int]:
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT data, version FROM documents WHERE collection = ? AND doc_id = ?",
                    (collection, doc_id),
                ).fetchone()
        except sqlite3.OperationalError as e:
            raise TransientStorageError(str(e)) from e
        if not row:
            return None, 0
        return json.loads(row["data"]), row["version"]

    def compare_and_set(
        self,
        collection: str,
        doc_id: str,
        data: Document,
        expected_version: int,
    ) -> bool:
        body = json.dumps(data, sort_keys=True)
        try:
            with self._lock:
                if expected_version == 0:
                    try:
                        self._conn.execute(
                            """
                            INSERT INTO documents (collection, doc_id, data, version)
                            VALUES (?, ?, ?, 1)
                            """,
                            (collection, doc_id, body),
                        )
                    except sqlite3.IntegrityError:
                        return False
                    return True

                cur = self._conn.execute(
                    """
                    UPDATE documents SET data = ?, version = version + 1
                    WHERE collection = ? AND doc_id = ? AND version = ?
                    """,
                    (body, collection, doc_id, expected_version),
                )
                return cur.rowcount == 1
        except sqlite3.OperationalError as e:
            raise TransientStorageError(str(e)) from e

    def close(self) -> None:
        self._conn.close()
