"""Abstract base class for persistent artist-origin caches.

Defines the contract for storing resolved artist origins keyed by the
lower-cased query name.  A stored entry with ``country_code=None`` is a
*negative* result and is returned like any other entry; only entries older
than the validity window are treated as absent.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from originmap.models.origin import OriginCacheEntry


class IOriginCacheProvider(ABC):
    """Contract for artist-origin persistence.

    Implementations must lower-case keys themselves so callers may pass
    display names.  Any storage failure is raised as
    :class:`~originmap.utils.errors.CacheStoreError`.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create the backing store if it does not already exist."""

    @abstractmethod
    async def get(self, key: str) -> OriginCacheEntry | None:
        """Return the fresh entry for *key*, or ``None`` when absent or stale.

        Parameters
        ----------
        key:
            Artist name; compared case-insensitively.
        """

    @abstractmethod
    async def get_batch(self, keys: list[str]) -> dict[str, OriginCacheEntry]:
        """Return fresh entries for every key in *keys* in one round-trip.

        Parameters
        ----------
        keys:
            Artist names; compared case-insensitively.

        Returns
        -------
        dict[str, OriginCacheEntry]
            Lower-cased key to entry.  Missing and stale keys are omitted.
        """

    @abstractmethod
    async def upsert(
        self,
        key: str,
        country_code: str | None,
        mbid: str | None,
        name_found: str | None,
    ) -> OriginCacheEntry:
        """Insert or replace the entry for *key*, stamping it with the current time."""

    @abstractmethod
    async def delete_negatives(self) -> int:
        """Delete every entry with no country regardless of age.

        Returns
        -------
        int
            Number of entries removed.
        """

    @abstractmethod
    async def count(self) -> int:
        """Return the total number of stored entries (fresh or stale)."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
