"""Area hierarchy resolver: walks city -> region -> country.

Many artists are attached to a city or subdivision rather than a country.
The resolver follows ``part of`` relations with direction ``backward``
(pointing at the containing area) until it reaches an area of type
``Country`` that carries an ISO 3166-1 code.

The walk is bounded by ``max_depth`` area fetches.  Exceeding the bound,
reaching a node without a parent relation, or any fetch failure all
resolve to ``None`` ("unknown").  No retries happen at this layer.
"""

from __future__ import annotations

import structlog

from originmap.interfaces.metadata_provider import IArtistMetadataProvider
from originmap.models.metadata import AreaNode
from originmap.utils.errors import MetadataLookupError
from originmap.utils.logging import get_logger

_DEFAULT_MAX_DEPTH = 5


class AreaHierarchyResolver:
    """Resolves an area to its country's ISO code by walking the area graph."""

    def __init__(self, metadata: IArtistMetadataProvider, max_depth: int = _DEFAULT_MAX_DEPTH) -> None:
        self._metadata = metadata
        self._max_depth = max_depth
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def max_depth(self) -> int:
        return self._max_depth

    async def resolve_country(self, area: AreaNode | None, depth: int = 0) -> str | None:
        """Return the upper-cased ISO code of the country containing *area*.

        Parameters
        ----------
        area:
            The starting area, as embedded in an artist record.
        depth:
            Number of hops already taken; callers start at 0.

        Returns
        -------
        str | None
            ``"US"``-style code, or ``None`` when no country is reachable.
        """
        if area is None:
            return None

        if area.country_code:
            return area.country_code

        if depth >= self._max_depth:
            self._logger.debug("area_depth_exceeded", area_id=area.id, depth=depth)
            return None

        if not area.id:
            return None

        try:
            node = await self._metadata.get_area(area.id)
        except MetadataLookupError as exc:
            self._logger.warning(
                "area_fetch_failed",
                area_id=area.id,
                depth=depth,
                status_code=exc.status_code,
                error=str(exc),
            )
            return None
        except Exception as exc:
            self._logger.warning("area_fetch_failed", area_id=area.id, depth=depth, error=str(exc))
            return None

        # Embedded areas carry no ISO codes; the fetched node does.
        if node.country_code:
            self._logger.debug("area_resolved", area_id=area.id, country=node.country_code, depth=depth)
            return node.country_code

        relation = node.parent_relation()
        if relation is None or relation.area is None:
            self._logger.debug("area_has_no_parent", area_id=area.id, area_name=node.name)
            return None

        parent = relation.area
        if parent.country_code:
            self._logger.debug(
                "area_resolved",
                area_id=area.id,
                country=parent.country_code,
                depth=depth,
            )
            return parent.country_code

        return await self.resolve_country(parent, depth + 1)
