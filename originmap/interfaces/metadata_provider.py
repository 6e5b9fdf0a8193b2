"""Abstract base class for artist-metadata service providers.

Defines the contract for the external service that maps artist names to
candidate records and exposes the geographic area graph those records point
into.  The adapter pattern keeps the resolution policy in
:mod:`originmap.services` independent of the transport.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from originmap.models.metadata import AreaNode, ArtistCandidate


class IArtistMetadataProvider(ABC):
    """Contract for artist search and area lookup.

    Implementations are responsible for the upstream's rate-limit etiquette
    (inter-request delays, identifying headers).  Failures are raised as
    :class:`~originmap.utils.errors.MetadataLookupError`.
    """

    @abstractmethod
    async def search_artists(self, name: str) -> list[ArtistCandidate]:
        """Search for artists matching *name*.

        Returns
        -------
        list[ArtistCandidate]
            Upstream-ranked candidates; empty when nothing matched.
        """

    @abstractmethod
    async def get_area(self, area_id: str) -> AreaNode:
        """Fetch one area node together with its area relations."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in logs and errors."""
