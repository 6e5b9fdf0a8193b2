"""Streaming-library provider implementations.

    SpotifyLibraryProvider -- Spotify Web API (bearer token per call).
    Retries 429s, fans out page fetches in small batches.
"""

from originmap.providers.library.spotify_provider import SpotifyLibraryProvider

__all__ = ["SpotifyLibraryProvider"]
