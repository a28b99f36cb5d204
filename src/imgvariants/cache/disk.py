"""Persistent variant store backed by SQLite."""

from __future__ import annotations

import hashlib
import logging
import sqlite3
import threading
import time
from pathlib import Path

from imgvariants.errors.exceptions import CacheReadError, CacheWriteError

logger = logging.getLogger(__name__)

_DEFAULT_MAX_SIZE_MB = 5000
_DB_FILENAME = "variants.db"


class DiskCache:
    """SQLite-backed key → bytes store with integrity digests and LRU eviction.

    Reads and writes may come from worker threads; a lock serializes access
    to the single connection.
    """

    def __init__(
        self,
        cache_dir: Path,
        max_size_mb: float = _DEFAULT_MAX_SIZE_MB,
    ) -> None:
        self._db_path = Path(cache_dir) / _DB_FILENAME
        self._max_size_bytes = int(max_size_mb * 1024 * 1024)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        try:
            self._create_table()
        except sqlite3.Error as e:
            self._conn.close()
            raise CacheReadError(
                f"Cannot open cache database {self._db_path}: {e}", original=e
            ) from e

    @property
    def path(self) -> Path:
        return self._db_path

    def get(self, key: str) -> bytes | None:
        """Return the stored bytes, None if absent.

        Raises CacheReadError when the row cannot be read or its digest no
        longer matches its data.
        """
        with self._lock:
            try:
                row = self._conn.execute(
                    "SELECT data, digest FROM cache WHERE key = ?", (key,)
                ).fetchone()
                if row is None:
                    return None
                # Update last_accessed for LRU
                self._conn.execute(
                    "UPDATE cache SET last_accessed = ? WHERE key = ?",
                    (time.time(), key),
                )
                self._conn.commit()
            except sqlite3.Error as e:
                raise CacheReadError(f"Cannot read cache entry: {e}", key=key, original=e) from e

        try:
            data = bytes(row["data"])
        except TypeError as e:
            raise CacheReadError(f"Malformed cache entry: {e}", key=key, original=e) from e
        if hashlib.sha256(data).hexdigest() != row["digest"]:
            raise CacheReadError("Cache entry failed integrity check", key=key)
        return data

    def set(self, key: str, data: bytes) -> None:
        now = time.time()
        with self._lock:
            try:
                self._evict_if_needed(len(data))
                self._conn.execute(
                    """INSERT OR REPLACE INTO cache
                       (key, data, digest, size_bytes, created_at, last_accessed)
                       VALUES (?, ?, ?, ?, ?, ?)""",
                    (key, data, hashlib.sha256(data).hexdigest(), len(data), now, now),
                )
                self._conn.commit()
            except sqlite3.Error as e:
                raise CacheWriteError(f"Cannot write cache entry: {e}", key=key, original=e) from e

    def clear(self) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM cache")
            self._conn.commit()

    @property
    def entry_count(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) FROM cache").fetchone()
        return row[0]

    @property
    def size_mb(self) -> float:
        with self._lock:
            row = self._conn.execute(
                "SELECT COALESCE(SUM(size_bytes), 0) FROM cache"
            ).fetchone()
        return row[0] / (1024 * 1024)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _create_table(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS cache (
                key TEXT PRIMARY KEY,
                data BLOB,
                digest TEXT,
                size_bytes INTEGER,
                created_at REAL,
                last_accessed REAL
            )
        """)
        self._conn.commit()

    def _evict_if_needed(self, new_entry_size: int) -> None:
        while True:
            row = self._conn.execute(
                "SELECT COALESCE(SUM(size_bytes), 0) FROM cache"
            ).fetchone()
            current_size = row[0]
            if current_size + new_entry_size <= self._max_size_bytes:
                break
            # Remove oldest accessed
            oldest = self._conn.execute(
                "SELECT key FROM cache ORDER BY last_accessed ASC LIMIT 1"
            ).fetchone()
            if oldest is None:
                break
            logger.debug("Evicting cache entry %s", oldest[0])
            self._conn.execute("DELETE FROM cache WHERE key = ?", (oldest[0],))
        self._conn.commit()
