"""Shared pytest fixtures for the originmap test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from originmap.config.settings import Settings
from originmap.interfaces.metadata_provider import IArtistMetadataProvider
from originmap.interfaces.origin_cache_provider import IOriginCacheProvider
from originmap.models.metadata import ArtistCandidate
from originmap.providers.cache.sqlite_origin_cache import SQLiteOriginCacheProvider
from tests.factories import FakeClock

# ---------------------------------------------------------------------------
# Settings / clock
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    """Settings with zero delays so provider tests never sleep for real."""
    return Settings(
        musicbrainz_base_url="https://mb.test/ws/2",
        musicbrainz_app_name="originmap-test",
        musicbrainz_app_version="0.0.1",
        musicbrainz_contact="test@example.com",
        musicbrainz_search_delay=0.0,
        musicbrainz_area_delay=0.0,
        spotify_api_base_url="https://spotify.test/v1",
        spotify_retry_backoff=0.3,
        spotify_batch_pause=0.0,
        admin_api_token="",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc))  # noqa: UP017


# ---------------------------------------------------------------------------
# Cache fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def sqlite_cache(tmp_path: Path, clock: FakeClock) -> SQLiteOriginCacheProvider:
    """Initialised SQLite cache in a temp directory driven by the fake clock."""
    cache = SQLiteOriginCacheProvider(
        db_path=tmp_path / "origin_cache.db",
        validity_days=30,
        clock=clock,
    )
    await cache.initialize()
    return cache


@pytest.fixture
def mock_cache() -> IOriginCacheProvider:
    """Mock IOriginCacheProvider that misses on every read."""
    mock = MagicMock(spec=IOriginCacheProvider)
    mock.get_provider_name.return_value = "mock-cache"
    mock.initialize = AsyncMock(return_value=None)
    mock.get = AsyncMock(return_value=None)
    mock.get_batch = AsyncMock(return_value={})
    mock.upsert = AsyncMock()
    mock.delete_negatives = AsyncMock(return_value=0)
    mock.count = AsyncMock(return_value=0)
    return mock


# ---------------------------------------------------------------------------
# Metadata provider fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_metadata() -> IArtistMetadataProvider:
    """Mock IArtistMetadataProvider with no candidates by default.

    Override ``search_artists.return_value`` and ``get_area.side_effect``
    per test.
    """
    mock = MagicMock(spec=IArtistMetadataProvider)
    mock.get_provider_name.return_value = "mock-musicbrainz"
    mock.search_artists = AsyncMock(return_value=[])
    mock.get_area = AsyncMock()
    return mock


@pytest.fixture
def daft_punk_candidate() -> ArtistCandidate:
    return ArtistCandidate.model_validate(
        {
            "id": "056e4f3e-d505-4dad-8ec1-d04f521cbb56",
            "name": "Daft Punk",
            "score": 100,
            "country": "FR",
            "area": {
                "id": "08310658-51eb-3801-80de-5a0739207115",
                "name": "France",
                "type": "Country",
            },
        }
    )
