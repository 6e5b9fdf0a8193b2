"""Persistent origin-cache provider implementations.

    SQLiteOriginCacheProvider -- local SQLite file via aiosqlite, one row per
    lower-cased artist name, 30-day validity window by default.
"""

from originmap.providers.cache.sqlite_origin_cache import SQLiteOriginCacheProvider

__all__ = ["SQLiteOriginCacheProvider"]
