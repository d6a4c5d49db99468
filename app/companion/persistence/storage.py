"""
Purpose: durable key-value storage behind the session stores.
Values are JSON-compatible (lists/dicts of primitives).

What is inside:
- InMemoryStorage: dict + lock; state lives as long as the process.
- SQLiteStorage: one table (key TEXT PRIMARY KEY, value TEXT as JSON).
- build_storage(settings): picks a backend from configuration.

Every backend failure surfaces as StorageFailure.
"""

from __future__ import annotations
import copy
import json
import logging
import sqlite3
import threading
from typing import Any, Optional

from ..errors import StorageFailure

logger = logging.getLogger(__name__)


class InMemoryStorage:
    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            value = self._data.get(key)
            return copy.deepcopy(value)

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)


class SQLiteStorage:
    _SCHEMA = "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"

    def __init__(self, path: str) -> None:
        self.path = path
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.execute(self._SCHEMA)
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageFailure(f"Failed to open storage at {path!r}: {e}") from e
        logger.info("SQLite storage ready at %s", path)

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.path, timeout=10)

    def get(self, key: str) -> Optional[Any]:
        try:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT value FROM kv WHERE key = ?", (key,)
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageFailure(f"Read failed for {key!r}: {e}") from e
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except ValueError as e:
            raise StorageFailure(f"Corrupt value for {key!r}: {e}") from e

    def put(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageFailure(f"Value for {key!r} is not serializable: {e}") from e
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.execute(
                        "INSERT INTO kv (key, value) VALUES (?, ?) "
                        "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                        (key, payload),
                    )
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageFailure(f"Write failed for {key!r}: {e}") from e


def build_storage(settings) -> InMemoryStorage | SQLiteStorage:
    backend = (settings.storage_backend or "memory").lower()
    if backend == "sqlite":
        return SQLiteStorage(settings.storage_path)
    if backend != "memory":
        logger.warning("Unknown STORAGE_BACKEND=%r, using in-memory storage", backend)
    return InMemoryStorage()
