"""Unit tests for best-match selection and ArtistOriginService."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from originmap.models.metadata import ArtistCandidate
from originmap.models.origin import OriginSource
from originmap.providers.cache.sqlite_origin_cache import SQLiteOriginCacheProvider
from originmap.services.area_resolver import AreaHierarchyResolver
from originmap.services.artist_origin import ArtistOriginService, select_best_match
from originmap.utils.errors import CacheStoreError, MetadataLookupError
from tests.factories import area_with_parent, country_area


def _candidate(**fields) -> ArtistCandidate:
    return ArtistCandidate.model_validate(fields)


def _service(metadata: MagicMock, cache) -> ArtistOriginService:  # noqa: ANN001
    return ArtistOriginService(
        metadata=metadata,
        area_resolver=AreaHierarchyResolver(metadata),
        cache=cache,
    )


# ======================================================================
# select_best_match
# ======================================================================


class TestSelectBestMatch:
    def test_exact_name_beats_higher_score(self) -> None:
        candidates = [
            _candidate(id="1", name="Daft Punk Tribute", score=100),
            _candidate(id="2", name="daft punk", score=80),
        ]
        assert select_best_match("Daft Punk", candidates).id == "2"

    def test_falls_back_to_highest_score(self) -> None:
        candidates = [
            _candidate(id="1", name="Roots Manuva", score=70),
            _candidate(id="2", name="The Roots Crew", score=95),
            _candidate(id="3", name="Roots", score=90),
        ]
        assert select_best_match("The Roots", candidates).id == "2"

    def test_tie_keeps_first(self) -> None:
        candidates = [
            _candidate(id="1", name="A", score=90),
            _candidate(id="2", name="B", score=90),
        ]
        assert select_best_match("C", candidates).id == "1"

    def test_unusable_candidates_ignored(self) -> None:
        candidates = [
            _candidate(name="Daft Punk", score=100),
            _candidate(id="2", score=99),
        ]
        assert select_best_match("Daft Punk", candidates) is None


# ======================================================================
# ArtistOriginService
# ======================================================================


class TestSearchArtist:
    @pytest.mark.asyncio
    async def test_country_field_used_directly(
        self, mock_metadata: MagicMock, mock_cache: MagicMock, daft_punk_candidate: ArtistCandidate
    ) -> None:
        mock_metadata.search_artists.return_value = [daft_punk_candidate]

        result = await _service(mock_metadata, mock_cache).search_artist("Daft Punk")

        assert result.country == "FR"
        assert result.source == OriginSource.API_FETCHED
        assert result.mbid == daft_punk_candidate.id
        assert result.name_found == "Daft Punk"
        mock_metadata.get_area.assert_not_called()

    @pytest.mark.asyncio
    async def test_country_via_area_hierarchy(self, mock_metadata: MagicMock, mock_cache: MagicMock) -> None:
        mock_metadata.search_artists.return_value = [
            _candidate(
                id="mbid-roots",
                name="The Roots",
                score=100,
                area={"id": "a-philly", "name": "Philadelphia", "type": "City"},
            )
        ]
        mock_metadata.get_area.side_effect = [
            area_with_parent(
                "a-philly",
                "Philadelphia",
                {"id": "a-pa", "name": "Pennsylvania", "type": "Subdivision"},
            ),
            area_with_parent(
                "a-pa",
                "Pennsylvania",
                {"id": "a-us", "name": "United States", "type": "Country", "iso-3166-1-codes": ["US"]},
                area_type="Subdivision",
            ),
        ]

        result = await _service(mock_metadata, mock_cache).search_artist("The Roots")

        assert result.country == "US"
        assert result.source == OriginSource.API_FETCHED

    @pytest.mark.asyncio
    async def test_begin_area_used_when_area_unresolved(
        self, mock_metadata: MagicMock, mock_cache: MagicMock
    ) -> None:
        mock_metadata.search_artists.return_value = [
            _candidate(
                id="m",
                name="Kraftwerk",
                begin_area={
                    "id": "a-de",
                    "name": "Germany",
                    "type": "Country",
                    "iso-3166-1-codes": ["DE"],
                },
            )
        ]

        result = await _service(mock_metadata, mock_cache).search_artist("Kraftwerk")

        assert result.country == "DE"

    @pytest.mark.asyncio
    async def test_begin_area_country_codes_come_from_lookup(
        self, mock_metadata: MagicMock, mock_cache: MagicMock
    ) -> None:
        mock_metadata.search_artists.return_value = [
            _candidate(id="m", name="Air", begin_area={"id": "a-fr", "name": "France", "type": "Country"})
        ]
        mock_metadata.get_area.return_value = country_area("France", "FR", "a-fr")

        result = await _service(mock_metadata, mock_cache).search_artist("Air")

        assert result.country == "FR"
        mock_metadata.get_area.assert_awaited_once_with("a-fr")

    @pytest.mark.asyncio
    async def test_no_country_anywhere(self, mock_metadata: MagicMock, mock_cache: MagicMock) -> None:
        mock_metadata.search_artists.return_value = [_candidate(id="m", name="Anon", score=100)]

        result = await _service(mock_metadata, mock_cache).search_artist("Anon")

        assert result.country is None
        assert result.source == OriginSource.API_FETCHED

    @pytest.mark.asyncio
    async def test_not_found(self, mock_metadata: MagicMock, mock_cache: MagicMock) -> None:
        result = await _service(mock_metadata, mock_cache).search_artist("Nobody")

        assert result.source == OriginSource.API_NOT_FOUND
        assert result.country is None
        assert result.message == "Artist not found on MusicBrainz"

    @pytest.mark.asyncio
    async def test_no_match(self, mock_metadata: MagicMock, mock_cache: MagicMock) -> None:
        mock_metadata.search_artists.return_value = [_candidate(score=50)]

        result = await _service(mock_metadata, mock_cache).search_artist("Ghost")

        assert result.source == OriginSource.API_NO_MATCH
        assert result.message == "No suitable artist match on MusicBrainz"


class TestResolve:
    @pytest.mark.asyncio
    async def test_writes_result_to_cache(
        self,
        mock_metadata: MagicMock,
        sqlite_cache: SQLiteOriginCacheProvider,
        daft_punk_candidate: ArtistCandidate,
    ) -> None:
        mock_metadata.search_artists.return_value = [daft_punk_candidate]
        service = _service(mock_metadata, sqlite_cache)

        first = await service.resolve("Daft Punk")
        second = await service.resolve("DAFT PUNK")

        assert first.source == OriginSource.API_FETCHED
        assert second.source == OriginSource.DB_CACHE
        assert second.country == "FR"
        assert second.artist_name == "DAFT PUNK"
        assert mock_metadata.search_artists.await_count == 1

    @pytest.mark.asyncio
    async def test_negative_result_is_cached(
        self, mock_metadata: MagicMock, sqlite_cache: SQLiteOriginCacheProvider
    ) -> None:
        service = _service(mock_metadata, sqlite_cache)

        await service.resolve("Nobody")
        cached = await service.resolve("Nobody")

        assert cached.source == OriginSource.DB_CACHE
        assert cached.country is None
        assert mock_metadata.search_artists.await_count == 1

    @pytest.mark.asyncio
    async def test_upstream_error_not_cached(
        self, mock_metadata: MagicMock, sqlite_cache: SQLiteOriginCacheProvider
    ) -> None:
        mock_metadata.search_artists.side_effect = MetadataLookupError("down", status_code=502)
        service = _service(mock_metadata, sqlite_cache)

        with pytest.raises(MetadataLookupError):
            await service.resolve("Daft Punk")

        assert await sqlite_cache.get("daft punk") is None
        assert await sqlite_cache.count() == 0


class TestResolveUncached:
    @pytest.mark.asyncio
    async def test_skips_cache_read(
        self, mock_metadata: MagicMock, mock_cache: MagicMock, daft_punk_candidate: ArtistCandidate
    ) -> None:
        mock_metadata.search_artists.return_value = [daft_punk_candidate]

        result = await _service(mock_metadata, mock_cache).resolve_uncached("Daft Punk")

        assert result.country == "FR"
        mock_cache.get.assert_not_called()
        mock_cache.upsert.assert_awaited_once_with("Daft Punk", "FR", daft_punk_candidate.id, "Daft Punk")

    @pytest.mark.asyncio
    async def test_cache_write_failure_still_returns_result(
        self, mock_metadata: MagicMock, mock_cache: MagicMock, daft_punk_candidate: ArtistCandidate
    ) -> None:
        mock_metadata.search_artists.return_value = [daft_punk_candidate]
        mock_cache.upsert = AsyncMock(side_effect=CacheStoreError("disk full"))

        result = await _service(mock_metadata, mock_cache).resolve_uncached("Daft Punk")

        assert result.country == "FR"
