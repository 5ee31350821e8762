"""
Persistent key/value stores for raw payloads

Every backend exposes open/get/put and raises StorageError on failure.
Values are JSON objects; keys live in a single namespace.
"""

import json
import os
import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from .config import CacheConfig
from .exceptions import StorageError


# Schema version - increment when schema changes
SCHEMA_VERSION = 1


def cache_key(region: str, prefix: str = "railway_data_") -> str:
    """Store key for a region"""
    return f"{prefix}{region}"


class PersistentStore:
    """Base class for persistent stores"""

    def open(self) -> "PersistentStore":
        """Prepare the store for use. Safe to call repeatedly."""
        return self

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def put(self, key: str, value: Dict[str, Any]) -> bool:
        raise NotImplementedError

    def close(self) -> None:
        pass


class MemoryStore(PersistentStore):
    """Dict-backed store for tests and hosts without disk access"""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def put(self, key: str, value: Dict[str, Any]) -> bool:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key} is not JSON serializable: {e}") from e
        return True


class JSONFileStore(PersistentStore):
    """One JSON file per key inside a directory"""

    def __init__(self, directory: str):
        self.directory = directory

    def open(self) -> "JSONFileStore":
        try:
            os.makedirs(self.directory, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create cache directory {self.directory}: {e}") from e
        return self

    def _path(self, key: str) -> str:
        safe = "".join(c if c.isalnum() or c in "-_." else "_" for c in key)
        return os.path.join(self.directory, f"{safe}.json")

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def put(self, key: str, value: Dict[str, Any]) -> bool:
        self.open()
        path = self._path(key)
        tmp_path = f"{path}.tmp"
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(value, f, ensure_ascii=False)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {path}: {e}") from e
        return True


class SQLiteStore(PersistentStore):
    """Single-table SQLite key/value store, one transaction per call"""

    def __init__(self, path: str, table: str = "cities"):
        if not table.isidentifier():
            raise ValueError(f"Invalid table name: {table!r}")
        self.path = path
        self.table = table
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def open(self) -> "SQLiteStore":
        # Concurrent first calls from worker threads must share one connection
        with self._lock:
            if self._conn is not None:
                return self
            try:
                if self.path != ":memory:":
                    Path(self.path).parent.mkdir(parents=True, exist_ok=True)
                # Calls arrive from worker threads via asyncio.to_thread
                conn = sqlite3.connect(self.path, check_same_thread=False)
                with conn:
                    conn.execute(
                        f"CREATE TABLE IF NOT EXISTS {self.table} "
                        "(key TEXT PRIMARY KEY, value TEXT NOT NULL)"
                    )
                    conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            except (OSError, sqlite3.Error) as e:
                raise StorageError(f"Cannot open cache database {self.path}: {e}") from e
            self._conn = conn
        logger.debug(f"Opened cache database {self.path}")
        return self

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        conn = self.open()._conn
        try:
            with self._lock:
                row = conn.execute(
                    f"SELECT value FROM {self.table} WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read {key}: {e}") from e
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except ValueError as e:
            raise StorageError(f"Corrupt cache entry {key}: {e}") from e

    def put(self, key: str, value: Dict[str, Any]) -> bool:
        conn = self.open()._conn
        try:
            encoded = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key} is not JSON serializable: {e}") from e
        try:
            with self._lock, conn:
                conn.execute(
                    f"INSERT OR REPLACE INTO {self.table} (key, value) VALUES (?, ?)",
                    (key, encoded),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write {key}: {e}") from e
        return True

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None


def create_store(cache_config: CacheConfig) -> PersistentStore:
    """Build the store selected by cache_config.backend"""
    if cache_config.backend == "sqlite":
        return SQLiteStore(cache_config.path, table=cache_config.table)
    if cache_config.backend == "json":
        return JSONFileStore(cache_config.path)
    if cache_config.backend == "memory":
        return MemoryStore()
    raise ValueError(f"Unknown cache backend: {cache_config.backend}")
