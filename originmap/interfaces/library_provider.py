"""Abstract base class for streaming-library providers.

Defines the contract for reading a listener's saved tracks and playlists.
Authentication happens elsewhere; every call receives an already-valid
access token.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from originmap.models.track import Playlist, Track


class ILibraryProvider(ABC):
    """Contract for listener-library access."""

    @abstractmethod
    async def get_liked_tracks(self, token: str) -> list[Track]:
        """Return every saved ("liked") track for the token's owner.

        Pages that still fail after retries are dropped, so the result may
        be partial.
        """

    @abstractmethod
    async def get_playlist_tracks(self, token: str, playlist_id: str) -> list[Track]:
        """Return every track of *playlist_id*, skipping unavailable items."""

    @abstractmethod
    async def get_playlists(self, token: str) -> list[Playlist]:
        """Return all playlists owned or followed by the token's owner."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in logs and errors."""
