"""Streaming-library shapes: tracks, playlist items and playlists.

These mirror the lean field selection requested from the Spotify Web API
(``items(added_at,track(id,name,uri,artists(name)))``).  Only the *first*
artist of a track is used for origin resolution; the remaining artists are
kept so the shapes round-trip to the client unchanged.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TrackArtist(BaseModel):
    """A credited artist on a track."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str


class Track(BaseModel):
    """A single track.  Local files have no ``id`` or ``uri``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str | None = None
    name: str = ""
    uri: str | None = None
    artists: list[TrackArtist] = Field(default_factory=list)


class TrackItem(BaseModel):
    """A library/playlist entry wrapping a track.

    ``track`` is ``None`` for removed or unavailable tracks; callers skip
    those items.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    added_at: str | None = None
    track: Track | None = None


class PlaylistTracksRef(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    total: int = 0


class Playlist(BaseModel):
    """A user playlist as listed by ``/me/playlists``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str = ""
    tracks: PlaylistTracksRef = Field(default_factory=PlaylistTracksRef)

    @property
    def track_count(self) -> int:
        return self.tracks.total
