"""Resolution session state and the reports derived from it.

Defines the state machine that one track-list activation moves through
(``IDLE -> BATCH_LOOKUP -> INDIVIDUAL_FETCH -> DONE``), the step objects the
resolution generator yields, and the immutable per-session snapshot the
session manager folds those steps into.  State transitions produce new
:class:`ResolutionState` instances via ``model_copy(update={...})``.

The report models (:class:`UnknownsReport`, :class:`CountryDetails`) are
only built once a session has reached ``DONE``; reading them from a
partially-resolved map would undercount.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from originmap.models.origin import ArtistOriginResult
from originmap.models.track import Track


class ResolutionPhase(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Phases of one resolution pass over a track list."""

    IDLE = "IDLE"                           # Nothing activated yet
    BATCH_LOOKUP = "BATCH_LOOKUP"           # Single cache round-trip for all names
    INDIVIDUAL_FETCH = "INDIVIDUAL_FETCH"   # Sequential upstream lookups for misses
    DONE = "DONE"                           # Resolved map is complete
    CANCELLED = "CANCELLED"                 # Superseded by a newer activation


@dataclass(frozen=True)
class ResolutionStep:
    """One unit of progress yielded by the resolution generator.

    ``results`` holds only the artists settled by *this* step; ``resolved``
    and ``total`` are running counters over the whole pass.
    """

    phase: ResolutionPhase
    results: list[ArtistOriginResult] = field(default_factory=list)
    resolved: int = 0
    total: int = 0
    error: str | None = None


class ResolutionState(BaseModel):
    """Snapshot of a session's resolution pass.

    Immutable; the session manager replaces it wholesale on every step.
    ``resolved_map`` is keyed by lower-cased artist name and holds
    ``None`` for artists whose origin could not be determined.
    """

    model_config = ConfigDict(frozen=True)

    session_id: str
    generation: int = 0
    phase: ResolutionPhase = ResolutionPhase.IDLE
    tracks: list[Track] = Field(default_factory=list)
    artist_names: list[str] = Field(default_factory=list)
    resolved_map: dict[str, str | None] = Field(default_factory=dict)
    results: list[ArtistOriginResult] = Field(default_factory=list)
    resolved: int = 0
    total: int = 0
    errors: list[str] = Field(default_factory=list)
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    completed_at: datetime | None = None

    @property
    def progress_percent(self) -> float:
        if self.phase == ResolutionPhase.DONE:
            return 100.0
        if self.total == 0:
            return 0.0
        return min(100.0, self.resolved / self.total * 100.0)


class UnknownTrack(BaseModel):
    """A track whose first artist has no known origin."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    artist_name: str = Field(alias="artistName")
    track_name: str = Field(alias="trackName")
    uri: str | None = None


class UnknownArtist(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    artist_name: str = Field(alias="artistName")
    track_count: int = Field(alias="trackCount")


class UnknownsReport(BaseModel):
    """Unresolved artists grouped with counts, plus the flat sorted track list."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    artists: list[UnknownArtist] = Field(default_factory=list)
    tracks: list[UnknownTrack] = Field(default_factory=list)

    @property
    def total_tracks(self) -> int:
        return len(self.tracks)


class ArtistDetail(BaseModel):
    """One artist within a country, with the songs counted for it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    artist_name: str = Field(alias="artistName")
    songs: list[str] = Field(default_factory=list)


class CountryDetails(BaseModel):
    """Drill-down for one or more selected countries."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    iso_codes: list[str] = Field(alias="isoCodes")
    song_count: int = Field(alias="songCount")
    artists: list[ArtistDetail] = Field(default_factory=list)
    track_uris: list[str] = Field(default_factory=list, alias="trackUris")
