"""Pydantic request/response schemas for the originmap API.

Wire names follow the established camelCase contract (``artistNames``,
``nameFound``); Python attributes stay snake_case.  Domain models that are
already wire-shaped (``ArtistOriginResult``, ``UnknownsReport``,
``CountryDetails``) are returned directly rather than duplicated here.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from originmap.models.track import Playlist, Track


class BatchOriginsRequest(BaseModel):
    """Body of ``POST /artists/origins/batch``."""

    model_config = ConfigDict(populate_by_name=True)

    artist_names: list[str] = Field(alias="artistNames")


class ClearUnknownsResponse(BaseModel):
    message: str
    count: int


class ActivateTracksRequest(BaseModel):
    """A track list to make active for a session."""

    tracks: list[Track] = Field(default_factory=list)


class SessionStatusResponse(BaseModel):
    """Progress snapshot for a resolution session."""

    session_id: str
    generation: int
    phase: str
    resolved: int
    total: int
    progress: float = Field(ge=0.0, le=100.0)
    errors: list[str] = Field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None


class CountryCountsResponse(BaseModel):
    session_id: str
    counts: dict[str, int]
    total_songs: int


class TracksResponse(BaseModel):
    tracks: list[Track]
    total: int


class PlaylistsResponse(BaseModel):
    playlists: list[Playlist]
    total: int


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
