"""Storage modules for cached source responses.

This package provides the in-memory and SQLite response caches used by the
source clients to avoid redundant API calls.
"""

from .cache import MemoryCache, SQLiteCache

__all__ = ["MemoryCache", "SQLiteCache"]
