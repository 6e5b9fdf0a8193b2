"""Unit tests for BatchLookupService."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from originmap.providers.cache.sqlite_origin_cache import SQLiteOriginCacheProvider
from originmap.services.batch_lookup import BatchLookupService
from originmap.utils.errors import CacheStoreError


class TestLookupMany:
    @pytest.mark.asyncio
    async def test_empty_input_skips_store(self, mock_cache: MagicMock) -> None:
        assert await BatchLookupService(mock_cache).lookup_many([]) == {}
        mock_cache.get_batch.assert_not_called()

    @pytest.mark.asyncio
    async def test_hits_keyed_by_lower_cased_name(self, sqlite_cache: SQLiteOriginCacheProvider) -> None:
        await sqlite_cache.upsert("daft punk", "FR", "mbid-1", "Daft Punk")
        await sqlite_cache.upsert("nobody", None, None, None)

        hits = await BatchLookupService(sqlite_cache).lookup_many(["Daft Punk", "Nobody", "Unseen"])

        assert set(hits) == {"daft punk", "nobody"}
        assert hits["daft punk"].country == "FR"
        assert hits["daft punk"].name_found == "Daft Punk"
        assert hits["nobody"].country is None

    @pytest.mark.asyncio
    async def test_misses_are_the_key_difference(self, sqlite_cache: SQLiteOriginCacheProvider) -> None:
        await sqlite_cache.upsert("a", "US", None, None)
        names = ["A", "b", "C"]

        hits = await BatchLookupService(sqlite_cache).lookup_many(names)

        misses = [n for n in names if n.lower() not in hits]
        assert misses == ["b", "C"]

    @pytest.mark.asyncio
    async def test_duplicates_sent_once(self, mock_cache: MagicMock) -> None:
        await BatchLookupService(mock_cache).lookup_many(["X", "x", "Y"])
        mock_cache.get_batch.assert_awaited_once_with(["x", "y"])

    @pytest.mark.asyncio
    async def test_store_failure_degrades_to_all_miss(self, mock_cache: MagicMock) -> None:
        mock_cache.get_batch = AsyncMock(side_effect=CacheStoreError("locked"))
        assert await BatchLookupService(mock_cache).lookup_many(["a", "b"]) == {}

    @pytest.mark.asyncio
    async def test_unexpected_failure_degrades_to_all_miss(self, mock_cache: MagicMock) -> None:
        mock_cache.get_batch = AsyncMock(side_effect=RuntimeError("driver bug"))
        assert await BatchLookupService(mock_cache).lookup_many(["a"]) == {}

    @pytest.mark.asyncio
    async def test_strict_mode_reraises(self, mock_cache: MagicMock) -> None:
        mock_cache.get_batch = AsyncMock(side_effect=CacheStoreError("locked"))
        with pytest.raises(CacheStoreError):
            await BatchLookupService(mock_cache).lookup_many(["a"], strict=True)

    @pytest.mark.asyncio
    async def test_strict_mode_wraps_unexpected_errors(self, mock_cache: MagicMock) -> None:
        mock_cache.get_batch = AsyncMock(side_effect=RuntimeError("driver bug"))
        with pytest.raises(CacheStoreError):
            await BatchLookupService(mock_cache).lookup_many(["a"], strict=True)
