# =============================================================================
# Multimodal Vision Demo - Local Result Cache
# =============================================================================
# Read-through / write-through cache of analysis results, keyed by the
# derived cache key.  Values are the JSON-serialized success responses.
#
# The cache sits on a KeyValueStore: a synchronous string-to-string store
# with get/set/delete.  SqliteStore persists entries in a local file between
# runs; MemoryStore is the in-process substitute used in tests.  Store and
# serialization failures never reach the caller: reads degrade to a miss and
# writes are best-effort.
# =============================================================================

import logging
import sqlite3
from abc import ABC, abstractmethod
from typing import Dict, Optional

from shared.schemas import AnalysisResult

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Synchronous string key-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...


class MemoryStore(KeyValueStore):
    """Dictionary-backed store; contents are lost with the process."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SqliteStore(KeyValueStore):
    """
    Persistent store backed by a single SQLite table.

    Args:
        db_path: Path of the SQLite database file (":memory:" for a
                 throwaway database).
    """

    def __init__(self, db_path: str):
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS entries ("
            "  key TEXT PRIMARY KEY,"
            "  value TEXT NOT NULL"
            ")"
        )
        self._conn.commit()
        logger.debug("Opened result store: %s", db_path)

    def get(self, key: str) -> Optional[str]:
        row = self._conn.execute(
            "SELECT value FROM entries WHERE key = ?", (key,)
        ).fetchone()
        return row[0] if row is not None else None

    def set(self, key: str, value: str) -> None:
        with self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO entries (key, value) VALUES (?, ?)",
                (key, value),
            )

    def delete(self, key: str) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM entries WHERE key = ?", (key,))

    def close(self) -> None:
        """Close the underlying database connection."""
        self._conn.close()


class ResultCache:
    """
    Cache of AnalysisResult documents over a KeyValueStore.

    Args:
        store: Backing key-value store.
    """

    def __init__(self, store: KeyValueStore):
        self._store = store

    def get(self, key: str) -> Optional[AnalysisResult]:
        """
        Look up a cached result.

        Returns:
            The cached AnalysisResult, or None on a miss or any read or
            deserialization failure.
        """
        try:
            raw = self._store.get(key)
            if raw is None:
                logger.debug("Cache miss: %s", key)
                return None
            result = AnalysisResult.model_validate_json(raw)
        except Exception as exc:
            logger.warning("Failed to load from cache (%s): %s", key, exc)
            return None

        logger.debug("Cache hit: %s", key)
        return result

    def set(self, key: str, result: AnalysisResult) -> None:
        """Store a result; failures are logged and otherwise ignored."""
        try:
            self._store.set(key, result.model_dump_json(by_alias=True, exclude_none=True))
        except Exception as exc:
            logger.warning("Failed to cache result (%s): %s", key, exc)

    def remove(self, key: str) -> None:
        """Drop a cached result; failures are logged and otherwise ignored."""
        try:
            self._store.delete(key)
        except Exception as exc:
            logger.warning("Failed to clear cached result (%s): %s", key, exc)
