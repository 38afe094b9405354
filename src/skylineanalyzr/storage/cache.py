"""Response caches for the data access layer.

Two interchangeable backends keyed by string with per-entry TTLs:

- MemoryCache: process-local dict, thread-safe, lazy expiry
- SQLiteCache: persisted in SQLite for JSON-serializable payloads, so
  cached responses survive restarts

Expiry is lazy: a ``get`` on an expired entry deletes it and misses.
``set`` additionally prunes every expired entry.
"""

import json
import logging
import re
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

# Default TTL (15 minutes)
DEFAULT_TTL_MS = 15 * 60 * 1000

# Default cache directory
DEFAULT_CACHE_DIR = Path.home() / ".skylineanalyzr" / "cache"


def monotonic_ms() -> float:
    return time.monotonic() * 1000


def wall_clock_ms() -> float:
    return time.time() * 1000


class CacheEntry:
    """Cache entry with TTL support."""

    __slots__ = ("data", "created_at", "ttl_ms")

    def __init__(self, data: Any, created_at: float, ttl_ms: float):
        self.data = data
        self.created_at = created_at
        self.ttl_ms = ttl_ms

    def is_expired(self, now: float) -> bool:
        return now - self.created_at > self.ttl_ms


class MemoryCache:
    """In-memory TTL cache.

    Example:
        cache = MemoryCache()
        cache.set("fred:TTLCONS", payload, ttl_ms=30 * 60 * 1000)
        cache.get("fred:TTLCONS")  # payload until the TTL passes
    """

    def __init__(
        self,
        default_ttl_ms: float = DEFAULT_TTL_MS,
        clock: Callable[[], float] = monotonic_ms,
    ):
        """Initialize the cache.

        Args:
            default_ttl_ms: TTL used when ``set`` is called without one
            clock: Millisecond clock; injectable for tests
        """
        self.default_ttl_ms = default_ttl_ms
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            return entry.data

    def set(self, key: str, value: Any, ttl_ms: Optional[float] = None) -> None:
        with self._lock:
            now = self._clock()
            self._prune(now)
            ttl = self.default_ttl_ms if ttl_ms is None else ttl_ms
            self._entries[key] = CacheEntry(value, now, ttl)

    def delete(self, key: str) -> bool:
        """Drop one entry. Returns True if it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def _prune(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def invalidate_pattern(self, pattern: str) -> int:
        """Drop every key matching the regular expression.

        Returns:
            Number of entries removed
        """
        regex = re.compile(pattern)
        with self._lock:
            matched = [k for k in self._entries if regex.search(k)]
            for key in matched:
                del self._entries[key]
        if matched:
            logger.debug(f"Invalidated {len(matched)} cache entries matching {pattern!r}")
        return len(matched)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.debug("Cache cleared")

    def size(self) -> int:
        """Number of stored entries, expired ones included until touched."""
        with self._lock:
            return len(self._entries)


class SQLiteCache:
    """SQLite-backed TTL cache for JSON-serializable payloads.

    Same interface as MemoryCache. Values go through ``json.dumps`` on the
    way in and come back as plain JSON types.

    Example:
        cache = SQLiteCache(cache_dir=Path(".cache"))
        cache.set("nyc:64uk-42ks:{}", rows, ttl_ms=15 * 60 * 1000)
        print(cache.get_stats())
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        default_ttl_ms: float = DEFAULT_TTL_MS,
        db_name: str = "responses.db",
        clock: Callable[[], float] = wall_clock_ms,
    ):
        """Initialize the response cache.

        Args:
            cache_dir: Directory for the cache database.
                      Defaults to ~/.skylineanalyzr/cache/
            default_ttl_ms: TTL used when ``set`` is called without one
            db_name: Name of the SQLite database file
            clock: Millisecond wall clock; injectable for tests
        """
        self.cache_dir = Path(cache_dir) if cache_dir else DEFAULT_CACHE_DIR
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.db_path = self.cache_dir / db_name
        self.default_ttl_ms = default_ttl_ms
        self._clock = clock
        self._lock = threading.Lock()

        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS responses (
                    key TEXT PRIMARY KEY,
                    data JSON NOT NULL,
                    stored_at REAL NOT NULL,
                    expires_at REAL NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_expires ON responses(expires_at)"
            )
            conn.commit()

    def get(self, key: str) -> Optional[Any]:
        now = self._clock()
        with self._lock, sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT data, expires_at FROM responses WHERE key = ?",
                (key,),
            ).fetchone()
            if row is None:
                return None
            if row[1] < now:
                conn.execute("DELETE FROM responses WHERE key = ?", (key,))
                conn.commit()
                return None
        return json.loads(row[0])

    def set(self, key: str, value: Any, ttl_ms: Optional[float] = None) -> None:
        now = self._clock()
        ttl = self.default_ttl_ms if ttl_ms is None else ttl_ms
        data = json.dumps(value, default=str)
        with self._lock, sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM responses WHERE expires_at < ?", (now,))
            conn.execute(
                """
                INSERT OR REPLACE INTO responses (key, data, stored_at, expires_at)
                VALUES (?, ?, ?, ?)
                """,
                (key, data, now, now + ttl),
            )
            conn.commit()

    def delete(self, key: str) -> bool:
        with self._lock, sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("DELETE FROM responses WHERE key = ?", (key,))
            conn.commit()
            return cursor.rowcount > 0

    def invalidate_pattern(self, pattern: str) -> int:
        regex = re.compile(pattern)
        with self._lock, sqlite3.connect(self.db_path) as conn:
            keys = [row[0] for row in conn.execute("SELECT key FROM responses")]
            matched = [(k,) for k in keys if regex.search(k)]
            conn.executemany("DELETE FROM responses WHERE key = ?", matched)
            conn.commit()
        return len(matched)

    def prune_expired(self) -> int:
        """Remove expired entries from the cache.

        Returns:
            Number of entries deleted
        """
        with self._lock, sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "DELETE FROM responses WHERE expires_at < ?",
                (self._clock(),),
            )
            conn.commit()
            deleted = cursor.rowcount

        if deleted > 0:
            logger.info(f"Pruned {deleted} expired cache entries")
        return deleted

    def clear(self) -> None:
        with self._lock, sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM responses")
            conn.commit()

    def size(self) -> int:
        with self._lock, sqlite3.connect(self.db_path) as conn:
            return conn.execute("SELECT COUNT(*) FROM responses").fetchone()[0]

    def get_stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dict with entry counts and storage size
        """
        now = self._clock()
        with sqlite3.connect(self.db_path) as conn:
            total = conn.execute("SELECT COUNT(*) FROM responses").fetchone()[0]
            active = conn.execute(
                "SELECT COUNT(*) FROM responses WHERE expires_at >= ?",
                (now,),
            ).fetchone()[0]

        size_bytes = self.db_path.stat().st_size if self.db_path.exists() else 0

        return {
            "total_entries": total,
            "active_entries": active,
            "expired_entries": total - active,
            "storage_bytes": size_bytes,
            "storage_mb": round(size_bytes / (1024 * 1024), 2),
        }
