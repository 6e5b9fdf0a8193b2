"""SQLite-backed artist-origin cache.

Persists resolved artist origins to a local SQLite database at
``data/origin_cache.db``.  Uses ``aiosqlite`` for async I/O and opens a
connection per operation; every call hits the store directly.

Entries older than the validity window are never returned, which makes
stale rows indistinguishable from missing ones for callers.  Timestamps are
stored as fixed-width ISO-8601 UTC strings with microseconds so freshness
can be compared in SQL.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

import aiosqlite
import structlog

from originmap.interfaces.origin_cache_provider import IOriginCacheProvider
from originmap.models.origin import OriginCacheEntry
from originmap.utils.errors import CacheStoreError
from originmap.utils.text_normalizer import normalize_query_key

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/origin_cache.db")
_PROVIDER_NAME = "sqlite_origin_cache"
_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

# SQLite's default SQLITE_MAX_VARIABLE_NUMBER on older builds.
_MAX_IN_PARAMS = 999

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS artist_cache (
    artist_name_query  TEXT PRIMARY KEY,
    country_code       TEXT,
    mbid               TEXT,
    name_found         TEXT,
    last_fetched       TEXT NOT NULL
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_artist_cache_country ON artist_cache(country_code);",
]

_UPSERT_SQL = """\
INSERT INTO artist_cache (artist_name_query, country_code, mbid, name_found, last_fetched)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT(artist_name_query)
DO UPDATE SET country_code = excluded.country_code,
              mbid         = excluded.mbid,
              name_found   = excluded.name_found,
              last_fetched = excluded.last_fetched;
"""

_SELECT_ONE_SQL = """\
SELECT artist_name_query, country_code, mbid, name_found, last_fetched
FROM artist_cache
WHERE artist_name_query = ? AND last_fetched > ?;
"""

_SELECT_MANY_SQL = """\
SELECT artist_name_query, country_code, mbid, name_found, last_fetched
FROM artist_cache
WHERE artist_name_query IN ({placeholders}) AND last_fetched > ?;
"""

_DELETE_NEGATIVES_SQL = "DELETE FROM artist_cache WHERE country_code IS NULL;"

_COUNT_SQL = "SELECT COUNT(*) FROM artist_cache;"


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)  # noqa: UP017


def _parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, _TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)  # noqa: UP017


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


def _row_to_entry(row: aiosqlite.Row) -> OriginCacheEntry:
    return OriginCacheEntry(
        query_key=row["artist_name_query"],
        country_code=row["country_code"],
        mbid=row["mbid"],
        name_found=row["name_found"],
        last_fetched=_parse_timestamp(row["last_fetched"]),
    )


class SQLiteOriginCacheProvider(IOriginCacheProvider):
    """SQLite-backed artist-origin persistence.

    Parameters
    ----------
    db_path:
        Location of the database file; parent directories are created on
        :meth:`initialize`.
    validity_days:
        Age after which an entry is treated as absent.
    clock:
        Zero-argument callable returning the current UTC time.  Defaults to
        the system clock.
    """

    def __init__(
        self,
        db_path: str | Path = _DEFAULT_DB_PATH,
        validity_days: int = 30,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._db_path = Path(db_path)
        self._validity = timedelta(days=validity_days)
        self._clock = clock or _utcnow

    @property
    def validity(self) -> timedelta:
        return self._validity

    def _cutoff(self) -> str:
        return _format_timestamp(self._clock() - self._validity)

    async def initialize(self) -> None:
        """Create the artist_cache table and indices if they don't exist."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_CREATE_TABLE_SQL)
                for idx_sql in _CREATE_INDICES_SQL:
                    await db.execute(idx_sql)
                await db.commit()
        except (aiosqlite.Error, OSError) as exc:
            raise CacheStoreError(
                message=f"Failed to initialize origin cache: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        logger.info("origin_cache_initialized", path=str(self._db_path))

    async def get(self, key: str) -> OriginCacheEntry | None:
        query_key = normalize_query_key(key)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(_SELECT_ONE_SQL, (query_key, self._cutoff()))
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise CacheStoreError(
                message=f"Failed to read origin cache entry: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        if row is None:
            return None
        return _row_to_entry(row)

    async def get_batch(self, keys: list[str]) -> dict[str, OriginCacheEntry]:
        """Return fresh entries for *keys* using one ``IN`` query per chunk.

        Lists at or below SQLite's bound-parameter limit are served by a
        single statement.
        """
        query_keys = list(dict.fromkeys(normalize_query_key(k) for k in keys))
        if not query_keys:
            return {}

        cutoff = self._cutoff()
        chunk_size = _MAX_IN_PARAMS - 1  # one slot for the cutoff
        entries: dict[str, OriginCacheEntry] = {}
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                for start in range(0, len(query_keys), chunk_size):
                    chunk = query_keys[start:start + chunk_size]
                    sql = _SELECT_MANY_SQL.format(placeholders=", ".join("?" * len(chunk)))
                    cursor = await db.execute(sql, (*chunk, cutoff))
                    for row in await cursor.fetchall():
                        entry = _row_to_entry(row)
                        entries[entry.query_key] = entry
        except aiosqlite.Error as exc:
            raise CacheStoreError(
                message=f"Failed to batch-read origin cache: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        logger.debug("origin_cache_batch_read", requested=len(query_keys), hits=len(entries))
        return entries

    async def upsert(
        self,
        key: str,
        country_code: str | None,
        mbid: str | None,
        name_found: str | None,
    ) -> OriginCacheEntry:
        entry = OriginCacheEntry(
            query_key=normalize_query_key(key),
            country_code=country_code,
            mbid=mbid,
            name_found=name_found,
            last_fetched=self._clock(),
        )
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    _UPSERT_SQL,
                    (
                        entry.query_key,
                        entry.country_code,
                        entry.mbid,
                        entry.name_found,
                        _format_timestamp(entry.last_fetched),
                    ),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise CacheStoreError(
                message=f"Failed to write origin cache entry: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        logger.debug(
            "origin_cache_upserted",
            query_key=entry.query_key,
            country_code=entry.country_code,
        )
        return entry

    async def delete_negatives(self) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(_DELETE_NEGATIVES_SQL)
                deleted = cursor.rowcount
                await db.commit()
        except aiosqlite.Error as exc:
            raise CacheStoreError(
                message=f"Failed to delete negative entries: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        logger.info("origin_cache_negatives_deleted", count=deleted)
        return deleted

    async def count(self) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(_COUNT_SQL)
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise CacheStoreError(
                message=f"Failed to count origin cache entries: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc
        return int(row[0]) if row else 0

    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
        return _PROVIDER_NAME
