"""Artist-origin cache records and resolution results.

``OriginCacheEntry`` is the persisted row; ``ArtistOriginResult`` is what the
resolution path hands back to callers; ``CachedOrigin`` is the value shape of
the batch-lookup response.  The two wire-facing models use camelCase aliases
(``artistName``, ``nameFound``) because that is the established response
contract; Python code uses the snake_case attribute names.

A ``country`` of ``None`` on a cache entry is a *negative* result: the artist
was looked up and no country was found.  That is different from the entry
not existing at all.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class OriginSource(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Where an :class:`ArtistOriginResult` came from."""

    DB_CACHE = "db_cache"             # Fresh entry in the persistent cache
    API_FETCHED = "api_fetched"       # Upstream search matched a candidate
    API_NOT_FOUND = "api_not_found"   # Upstream returned no candidates
    API_NO_MATCH = "api_no_match"     # Candidates returned, none usable
    API_ERROR = "api_error"           # Lookup failed; not cached, retried next pass


class OriginCacheEntry(BaseModel):
    """A persisted artist-origin record keyed by the lower-cased query name."""

    model_config = ConfigDict(frozen=True)

    query_key: str
    country_code: str | None = None
    mbid: str | None = None
    name_found: str | None = None
    last_fetched: datetime

    def to_cached_origin(self) -> CachedOrigin:
        return CachedOrigin(country=self.country_code, mbid=self.mbid, name_found=self.name_found)


class CachedOrigin(BaseModel):
    """Batch-lookup value: ``{country, mbid, nameFound}``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    country: str | None = None
    mbid: str | None = None
    name_found: str | None = Field(default=None, alias="nameFound")


class ArtistOriginResult(BaseModel):
    """Outcome of resolving one artist name to a country."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    artist_name: str = Field(alias="artistName")
    country: str | None = None
    mbid: str | None = None
    name_found: str | None = Field(default=None, alias="nameFound")
    source: OriginSource
    message: str | None = None

    @property
    def query_key(self) -> str:
        return self.artist_name.lower()

    @classmethod
    def from_cache(cls, artist_name: str, cached: CachedOrigin) -> ArtistOriginResult:
        return cls(
            artist_name=artist_name,
            country=cached.country,
            mbid=cached.mbid,
            name_found=cached.name_found,
            source=OriginSource.DB_CACHE,
        )
