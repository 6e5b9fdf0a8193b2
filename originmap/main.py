"""originmap FastAPI application entry point.

Wires together providers, services and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging before the application object is built.

# ─── COMPONENT GRAPH ──────────────────────────────────────────────────
#
#   httpx.AsyncClient ──┬── MusicBrainzProvider ── AreaHierarchyResolver
#                       │            └───────────────┐
#                       └── SpotifyLibraryProvider   ▼
#   SQLiteOriginCacheProvider ──────────────► ArtistOriginService
#            └── BatchLookupService                  │
#                       └──────────┬─────────────────┘
#                                  ▼
#                      OriginResolutionPipeline
#                                  ▼
#            ResolutionSessionManager ── ProgressTracker ── /ws/progress
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, WebSocket

from originmap import __version__
from originmap.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from originmap.api.routes import router as api_router
from originmap.api.websocket import websocket_progress
from originmap.config.loader import load_config
from originmap.config.settings import Settings
from originmap.pipeline.orchestrator import OriginResolutionPipeline, ResolutionSessionManager
from originmap.pipeline.progress_tracker import ProgressTracker
from originmap.providers.cache.sqlite_origin_cache import SQLiteOriginCacheProvider
from originmap.providers.library.spotify_provider import SpotifyLibraryProvider
from originmap.providers.metadata.musicbrainz_provider import MusicBrainzProvider
from originmap.services.area_resolver import AreaHierarchyResolver
from originmap.services.artist_origin import ArtistOriginService
from originmap.services.batch_lookup import BatchLookupService
from originmap.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Component construction
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings, app_config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Construct every provider and service.

    Returns a flat dict of named components to be stored on ``app.state``.
    Nothing here performs I/O; the cache schema is created in the lifespan.
    """
    app_config = app_config or {}
    spotify_config = app_config.get("spotify", {})

    http_client = httpx.AsyncClient(
        timeout=30.0,
        headers={"Accept": "application/json"},
        follow_redirects=True,
    )

    # -- Providers --
    origin_cache = SQLiteOriginCacheProvider(
        db_path=app_settings.origin_cache_db_path,
        validity_days=app_settings.origin_cache_validity_days,
    )
    metadata_provider = MusicBrainzProvider(http_client=http_client, settings=app_settings)
    track_fields = spotify_config.get("track_fields")
    if track_fields:
        library_provider = SpotifyLibraryProvider(
            http_client=http_client,
            settings=app_settings,
            track_fields=track_fields,
        )
    else:
        library_provider = SpotifyLibraryProvider(http_client=http_client, settings=app_settings)

    # -- Services --
    area_resolver = AreaHierarchyResolver(
        metadata=metadata_provider,
        max_depth=app_settings.area_max_depth,
    )
    origin_service = ArtistOriginService(
        metadata=metadata_provider,
        area_resolver=area_resolver,
        cache=origin_cache,
    )
    batch_lookup = BatchLookupService(cache=origin_cache)

    # -- Pipeline --
    progress_tracker = ProgressTracker()
    pipeline = OriginResolutionPipeline(batch_lookup=batch_lookup, origin_service=origin_service)
    session_manager = ResolutionSessionManager(
        pipeline=pipeline,
        progress_tracker=progress_tracker,
        max_sessions=app_settings.resolution_max_sessions,
    )

    provider_registry: dict[str, bool] = {
        metadata_provider.get_provider_name(): True,
        library_provider.get_provider_name(): True,
    }

    return {
        "settings": app_settings,
        "http_client": http_client,
        "origin_cache": origin_cache,
        "metadata_provider": metadata_provider,
        "library_provider": library_provider,
        "area_resolver": area_resolver,
        "origin_service": origin_service,
        "batch_lookup": batch_lookup,
        "progress_tracker": progress_tracker,
        "pipeline": pipeline,
        "session_manager": session_manager,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["origin_cache"].initialize()

    _logger.info(
        "app_startup",
        version=__version__,
        environment=settings.app_env,
        cache_db=settings.origin_cache_db_path,
        cache_validity_days=settings.origin_cache_validity_days,
    )

    yield

    # -- Shutdown: stop background passes, then close the shared client --
    session_manager: ResolutionSessionManager = components["session_manager"]
    await session_manager.close()

    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="originmap API",
        version=__version__,
        description=(
            "Resolve the country of origin of every artist in a listener's "
            "library through MusicBrainz, cache the answers, and aggregate "
            "songs per country."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=config.get("cors", {}).get("allowed_origins"))

    # -- API routes --
    application.include_router(api_router)

    # -- WebSocket --
    @application.websocket("/ws/progress/{session_id}")
    async def ws_progress(websocket: WebSocket, session_id: str) -> None:
        await websocket_progress(websocket, session_id)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "originmap.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
