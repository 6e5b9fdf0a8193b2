"""Domain models for originmap — re-exports all public model classes."""

from originmap.models.metadata import AreaNode, AreaRelation, ArtistCandidate
from originmap.models.origin import (
    ArtistOriginResult,
    CachedOrigin,
    OriginCacheEntry,
    OriginSource,
)
from originmap.models.resolution import (
    ArtistDetail,
    CountryDetails,
    ResolutionPhase,
    ResolutionState,
    ResolutionStep,
    UnknownArtist,
    UnknownsReport,
    UnknownTrack,
)
from originmap.models.track import Playlist, PlaylistTracksRef, Track, TrackArtist, TrackItem

__all__ = [
    "AreaNode",
    "AreaRelation",
    "ArtistCandidate",
    "ArtistDetail",
    "ArtistOriginResult",
    "CachedOrigin",
    "CountryDetails",
    "OriginCacheEntry",
    "OriginSource",
    "Playlist",
    "PlaylistTracksRef",
    "ResolutionPhase",
    "ResolutionState",
    "ResolutionStep",
    "Track",
    "TrackArtist",
    "TrackItem",
    "UnknownArtist",
    "UnknownTrack",
    "UnknownsReport",
]
