"""Single-artist origin lookup policy.

Given an artist name, search the metadata service, choose the best
candidate and extract a country for it.  Country extraction tries, in
order:

  1. the candidate's own ``country`` field (already an ISO code);
  2. the candidate's ``area``, walked up to a country if needed;
  3. the candidate's ``begin-area``, walked the same way;
  4. nothing -- the artist is a known negative.

Definitive outcomes (a country, or a clean "no country") are written to the
persistent cache.  Upstream failures are raised and never cached, so the
next pass retries them.
"""

from __future__ import annotations

import structlog

from originmap.interfaces.metadata_provider import IArtistMetadataProvider
from originmap.interfaces.origin_cache_provider import IOriginCacheProvider
from originmap.models.metadata import ArtistCandidate
from originmap.models.origin import ArtistOriginResult, OriginSource
from originmap.services.area_resolver import AreaHierarchyResolver
from originmap.utils.errors import CacheStoreError
from originmap.utils.logging import get_logger
from originmap.utils.text_normalizer import names_match

_NOT_FOUND_MESSAGE = "Artist not found on MusicBrainz"
_NO_MATCH_MESSAGE = "No suitable artist match on MusicBrainz"


def select_best_match(query: str, candidates: list[ArtistCandidate]) -> ArtistCandidate | None:
    """Pick the candidate to use for *query*.

    An exact case-insensitive name match wins; otherwise the highest
    ``score`` (first one on ties).  Candidates without an id or name are
    ignored.
    """
    usable = [c for c in candidates if c.is_usable]
    if not usable:
        return None

    for candidate in usable:
        if names_match(query, candidate.name or ""):
            return candidate

    return max(usable, key=lambda c: c.score)


class ArtistOriginService:
    """Resolves one artist name to an :class:`ArtistOriginResult`."""

    def __init__(
        self,
        metadata: IArtistMetadataProvider,
        area_resolver: AreaHierarchyResolver,
        cache: IOriginCacheProvider,
    ) -> None:
        self._metadata = metadata
        self._area_resolver = area_resolver
        self._cache = cache
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def extract_country(self, candidate: ArtistCandidate) -> str | None:
        """Return the upper-cased ISO code for *candidate*, or ``None``."""
        if candidate.country:
            return candidate.country.upper()

        if candidate.area is not None:
            country = await self._area_resolver.resolve_country(candidate.area)
            if country:
                return country.upper()

        if candidate.begin_area is not None:
            country = await self._area_resolver.resolve_country(candidate.begin_area)
            if country:
                return country.upper()

        return None

    async def search_artist(self, name: str) -> ArtistOriginResult:
        """Look *name* up upstream without touching the cache.

        Raises
        ------
        MetadataLookupError
            When the search call itself fails.
        """
        candidates = await self._metadata.search_artists(name)

        if not candidates:
            self._logger.info("artist_not_found", artist=name)
            return ArtistOriginResult(
                artist_name=name,
                source=OriginSource.API_NOT_FOUND,
                message=_NOT_FOUND_MESSAGE,
            )

        best = select_best_match(name, candidates)
        if best is None:
            self._logger.info("artist_no_match", artist=name, candidates=len(candidates))
            return ArtistOriginResult(
                artist_name=name,
                source=OriginSource.API_NO_MATCH,
                message=_NO_MATCH_MESSAGE,
            )

        country = await self.extract_country(best)
        self._logger.info(
            "artist_origin_fetched",
            artist=name,
            name_found=best.name,
            mbid=best.id,
            country=country,
        )
        return ArtistOriginResult(
            artist_name=name,
            country=country,
            mbid=best.id,
            name_found=best.name,
            source=OriginSource.API_FETCHED,
        )

    async def resolve(self, name: str) -> ArtistOriginResult:
        """Cache first, then upstream; persist definitive upstream outcomes.

        Raises
        ------
        MetadataLookupError
            Upstream failure; nothing is cached.
        CacheStoreError
            The cache could not be read or written.
        """
        entry = await self._cache.get(name)
        if entry is not None:
            self._logger.debug("origin_cache_hit", artist=name, country=entry.country_code)
            return ArtistOriginResult.from_cache(name, entry.to_cached_origin())

        result = await self.search_artist(name)
        await self._cache.upsert(name, result.country, result.mbid, result.name_found)
        return result

    async def resolve_uncached(self, name: str) -> ArtistOriginResult:
        """Upstream lookup followed by a cache write, skipping the cache read.

        Used for names the batch lookup already reported as misses.  A failed
        cache write is logged and the upstream result is still returned.
        """
        result = await self.search_artist(name)
        try:
            await self._cache.upsert(name, result.country, result.mbid, result.name_found)
        except CacheStoreError as exc:
            self._logger.warning("origin_cache_write_failed", artist=name, error=str(exc))
        return result

