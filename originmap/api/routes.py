"""FastAPI API routes for originmap.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern; ``main.py`` populates the state
at startup.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                                   Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/artists/origin?artistName=         GET     Resolve one artist
# /api/v1/artists/origins/batch              POST    Cached origins for many
# /api/v1/admin/clear-unknowns               POST    Purge negative entries
# /api/v1/sessions/{sid}/tracks              POST    Activate a track list
# /api/v1/sessions/{sid}                     DELETE  Forget a session
# /api/v1/sessions/{sid}/status              GET     Resolution progress
# /api/v1/sessions/{sid}/origins             GET     Resolved name → country
# /api/v1/sessions/{sid}/countries           GET     Songs per country
# /api/v1/sessions/{sid}/countries/details   GET     Drill-down per country
# /api/v1/sessions/{sid}/unknowns            GET     Unresolved artists
# /api/v1/spotify/liked-songs                GET     Listener's saved tracks
# /api/v1/spotify/playlists                  GET     Listener's playlists
# /api/v1/spotify/playlist-tracks            GET     Tracks of one playlist
# /api/v1/health                             GET     Health check
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from pydantic import ValidationError

from originmap import __version__
from originmap.api.auth import AccessTokenDep, AdminTokenDep
from originmap.api.schemas import (
    ActivateTracksRequest,
    BatchOriginsRequest,
    ClearUnknownsResponse,
    CountryCountsResponse,
    HealthResponse,
    PlaylistsResponse,
    SessionStatusResponse,
    TracksResponse,
)
from originmap.interfaces.library_provider import ILibraryProvider
from originmap.interfaces.origin_cache_provider import IOriginCacheProvider
from originmap.models.origin import ArtistOriginResult, CachedOrigin
from originmap.models.resolution import CountryDetails, ResolutionState, UnknownsReport
from originmap.pipeline.orchestrator import ResolutionSessionManager
from originmap.services.artist_origin import ArtistOriginService
from originmap.services.batch_lookup import BatchLookupService
from originmap.utils.errors import (
    LibraryFetchError,
    MetadataLookupError,
    ResolutionError,
    ResolutionNotReadyError,
)
from originmap.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_origin_cache(request: Request) -> IOriginCacheProvider:
    """Return the persistent origin cache from application state."""
    return request.app.state.origin_cache


def _get_batch_lookup(request: Request) -> BatchLookupService:
    return request.app.state.batch_lookup


def _get_origin_service(request: Request) -> ArtistOriginService:
    return request.app.state.origin_service


def _get_session_manager(request: Request) -> ResolutionSessionManager:
    return request.app.state.session_manager


def _get_library(request: Request) -> ILibraryProvider:
    return request.app.state.library_provider


OriginCacheDep = Annotated[IOriginCacheProvider, Depends(_get_origin_cache)]
BatchLookupDep = Annotated[BatchLookupService, Depends(_get_batch_lookup)]
OriginServiceDep = Annotated[ArtistOriginService, Depends(_get_origin_service)]
SessionManagerDep = Annotated[ResolutionSessionManager, Depends(_get_session_manager)]
LibraryDep = Annotated[ILibraryProvider, Depends(_get_library)]


def _status_response(state: ResolutionState) -> SessionStatusResponse:
    return SessionStatusResponse(
        session_id=state.session_id,
        generation=state.generation,
        phase=state.phase.value,
        resolved=state.resolved,
        total=state.total,
        progress=round(state.progress_percent, 1),
        errors=state.errors,
        started_at=state.started_at,
        completed_at=state.completed_at,
    )


def _require_session(manager: ResolutionSessionManager, session_id: str) -> ResolutionState:
    state = manager.get_state(session_id)
    if state is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return state


def _library_http_error(exc: LibraryFetchError) -> HTTPException:
    status_code = exc.status_code if exc.status_code and exc.status_code >= 400 else 500
    return HTTPException(status_code=status_code, detail=exc.message)


# ---------------------------------------------------------------------------
# Artist origins
# ---------------------------------------------------------------------------


@router.get(
    "/artists/origin",
    response_model=ArtistOriginResult,
    summary="Resolve one artist's country of origin",
)
async def get_artist_origin(
    origin_service: OriginServiceDep,
    artist_name: Annotated[str | None, Query(alias="artistName")] = None,
) -> ArtistOriginResult:
    """Cache first, then MusicBrainz.  Upstream HTTP errors keep their status."""
    if not artist_name:
        raise HTTPException(status_code=400, detail="artistName query parameter is required")

    try:
        return await origin_service.resolve(artist_name)
    except MetadataLookupError as exc:
        _logger.warning(
            "artist_origin_lookup_failed",
            artist=artist_name,
            status_code=exc.status_code,
            error=exc.message,
        )
        if exc.status_code and exc.status_code >= 400:
            raise HTTPException(
                status_code=exc.status_code,
                detail=f"Failed to fetch data from MusicBrainz: {exc.message}",
            ) from exc
        raise HTTPException(
            status_code=500,
            detail="Internal server error processing MusicBrainz request",
        ) from exc


@router.post(
    "/artists/origins/batch",
    response_model=dict[str, CachedOrigin],
    summary="Cached origins for many artists",
)
async def batch_artist_origins(
    request: Request,
    batch_lookup: BatchLookupDep,
) -> dict[str, CachedOrigin]:
    """Return fresh cache entries keyed by lower-cased name; misses are omitted."""
    try:
        payload = await request.json()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Request body must be JSON") from exc

    try:
        body = BatchOriginsRequest.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=400,
            detail="artistNames must be an array of strings",
        ) from exc

    if not body.artist_names:
        return {}

    return await batch_lookup.lookup_many(body.artist_names, strict=True)


@router.post(
    "/admin/clear-unknowns",
    response_model=ClearUnknownsResponse,
    summary="Delete every cached negative result",
)
async def clear_unknowns(
    _token: AdminTokenDep,
    origin_cache: OriginCacheDep,
) -> ClearUnknownsResponse:
    count = await origin_cache.delete_negatives()
    _logger.info("unknowns_cleared", count=count)
    return ClearUnknownsResponse(
        message=f"Cleared {count} unknown artists. Reload your playlist to re-scan them.",
        count=count,
    )


# ---------------------------------------------------------------------------
# Resolution sessions
# ---------------------------------------------------------------------------


@router.post(
    "/sessions/{session_id}/tracks",
    response_model=SessionStatusResponse,
    status_code=202,
    summary="Activate a track list and start resolving its artists",
)
async def activate_tracks(
    session_id: str,
    body: ActivateTracksRequest,
    manager: SessionManagerDep,
) -> SessionStatusResponse:
    state = await manager.activate(session_id, body.tracks)
    return _status_response(state)


@router.get(
    "/sessions/{session_id}/status",
    response_model=SessionStatusResponse,
    summary="Resolution progress",
)
async def get_session_status(session_id: str, manager: SessionManagerDep) -> SessionStatusResponse:
    return _status_response(_require_session(manager, session_id))


@router.get("/sessions/{session_id}/origins", summary="Resolved artist origins so far")
async def get_session_origins(session_id: str, manager: SessionManagerDep) -> dict[str, Any]:
    state = _require_session(manager, session_id)
    return {
        "session_id": session_id,
        "phase": state.phase.value,
        "origins": state.resolved_map,
    }


@router.delete(
    "/sessions/{session_id}",
    status_code=204,
    summary="Forget a session and cancel its resolution pass",
)
async def delete_session(session_id: str, manager: SessionManagerDep) -> Response:
    if not await manager.discard(session_id):
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return Response(status_code=204)


@router.get(
    "/sessions/{session_id}/countries",
    response_model=CountryCountsResponse,
    summary="Songs per country (available once resolution is DONE)",
)
async def get_session_countries(session_id: str, manager: SessionManagerDep) -> CountryCountsResponse:
    try:
        counts = manager.get_country_counts(session_id)
    except ResolutionNotReadyError as exc:
        raise HTTPException(status_code=409, detail=exc.message) from exc
    except ResolutionError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc
    return CountryCountsResponse(
        session_id=session_id,
        counts=counts,
        total_songs=sum(counts.values()),
    )


@router.get(
    "/sessions/{session_id}/countries/details",
    response_model=CountryDetails,
    summary="Artists and songs for one or more countries",
)
async def get_session_country_details(
    session_id: str,
    manager: SessionManagerDep,
    iso: Annotated[list[str] | None, Query()] = None,
) -> CountryDetails:
    if not iso:
        raise HTTPException(status_code=400, detail="At least one iso query parameter is required")
    try:
        return manager.get_country_details(session_id, iso)
    except ResolutionNotReadyError as exc:
        raise HTTPException(status_code=409, detail=exc.message) from exc
    except ResolutionError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc


@router.get(
    "/sessions/{session_id}/unknowns",
    response_model=UnknownsReport,
    summary="Tracks whose artist origin is unknown",
)
async def get_session_unknowns(session_id: str, manager: SessionManagerDep) -> UnknownsReport:
    try:
        return manager.get_unknowns(session_id)
    except ResolutionNotReadyError as exc:
        raise HTTPException(status_code=409, detail=exc.message) from exc
    except ResolutionError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc


# ---------------------------------------------------------------------------
# Streaming library
# ---------------------------------------------------------------------------


@router.get("/spotify/liked-songs", response_model=TracksResponse, summary="Saved tracks")
async def get_liked_songs(token: AccessTokenDep, library: LibraryDep) -> TracksResponse:
    try:
        tracks = await library.get_liked_tracks(token)
    except LibraryFetchError as exc:
        raise _library_http_error(exc) from exc
    return TracksResponse(tracks=tracks, total=len(tracks))


@router.get("/spotify/playlists", response_model=PlaylistsResponse, summary="Playlists")
async def get_playlists(token: AccessTokenDep, library: LibraryDep) -> PlaylistsResponse:
    try:
        playlists = await library.get_playlists(token)
    except LibraryFetchError as exc:
        raise _library_http_error(exc) from exc
    return PlaylistsResponse(playlists=playlists, total=len(playlists))


@router.get("/spotify/playlist-tracks", response_model=TracksResponse, summary="Playlist tracks")
async def get_playlist_tracks(
    token: AccessTokenDep,
    library: LibraryDep,
    playlist_id: Annotated[str | None, Query()] = None,
) -> TracksResponse:
    if not playlist_id:
        raise HTTPException(status_code=400, detail="playlist_id query parameter is required")
    try:
        tracks = await library.get_playlist_tracks(token, playlist_id)
    except LibraryFetchError as exc:
        raise _library_http_error(exc) from exc
    return TracksResponse(tracks=tracks, total=len(tracks))


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    origin_cache = getattr(request.app.state, "origin_cache", None)
    if origin_cache is not None:
        try:
            providers["origin_cache_entries"] = await origin_cache.count()
            providers["origin_cache"] = True
        except Exception:
            providers["origin_cache"] = False

    status = "healthy" if providers.get("origin_cache", False) else "degraded"
    return HealthResponse(status=status, version=__version__, providers=providers)
