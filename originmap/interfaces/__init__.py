"""Public interface definitions for all external collaborators.

Every external service originmap talks to is reached through the abstract
base classes in this package.  Concrete adapters live in
``originmap/providers/`` and are wired together in ``originmap/main.py``.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementation (in originmap/providers/)
    ─────────────────────────────────────────────────────────────────────
    IOriginCacheProvider       →  SQLiteOriginCacheProvider
    IArtistMetadataProvider    →  MusicBrainzProvider
    ILibraryProvider           →  SpotifyLibraryProvider
"""

from originmap.interfaces.library_provider import ILibraryProvider
from originmap.interfaces.metadata_provider import IArtistMetadataProvider
from originmap.interfaces.origin_cache_provider import IOriginCacheProvider

__all__ = [
    "IArtistMetadataProvider",
    "ILibraryProvider",
    "IOriginCacheProvider",
]
