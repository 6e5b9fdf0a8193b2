"""Artist-metadata provider implementations.

    MusicBrainzProvider -- MusicBrainz JSON web service (no API key, but a
    User-Agent is mandatory). Rate limit: 1 req/sec.
"""

from originmap.providers.metadata.musicbrainz_provider import MusicBrainzProvider

__all__ = ["MusicBrainzProvider"]
