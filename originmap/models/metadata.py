"""Upstream artist-metadata shapes (MusicBrainz JSON web service).

These models parse the subset of the MusicBrainz ``/artist`` search and
``/area`` lookup responses that origin resolution reads.  Hyphenated upstream
keys (``begin-area``, ``iso-3166-1-codes``) are mapped through aliases and
everything else in the payload is ignored.

Area nodes are transient: they are walked during hierarchy resolution and
never stored.  Only the final country, keyed by artist, is cached.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

AREA_TYPE_COUNTRY = "Country"
RELATION_PART_OF = "part of"
DIRECTION_BACKWARD = "backward"


class AreaRelation(BaseModel):
    """An edge in the area graph, e.g. ``Philadelphia --part of--> Pennsylvania``.

    ``direction="backward"`` means the related ``area`` contains the area the
    relation was fetched from.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str | None = None
    direction: str | None = None
    area: AreaNode | None = None

    @property
    def points_to_parent(self) -> bool:
        return self.type == RELATION_PART_OF and self.direction == DIRECTION_BACKWARD


class AreaNode(BaseModel):
    """A geographic area (country, subdivision, city, district, ...)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = None
    name: str | None = None
    type: str | None = None
    iso_codes: list[str] = Field(default_factory=list, alias="iso-3166-1-codes")
    relations: list[AreaRelation] = Field(default_factory=list)

    @property
    def country_code(self) -> str | None:
        """ISO code when this node is itself a country carrying one."""
        if self.type == AREA_TYPE_COUNTRY and self.iso_codes:
            return self.iso_codes[0].upper()
        return None

    def parent_relation(self) -> AreaRelation | None:
        """First ``part of`` relation pointing at the containing area."""
        for relation in self.relations:
            if relation.points_to_parent and relation.area is not None:
                return relation
        return None


class ArtistCandidate(BaseModel):
    """One artist returned by an upstream name search.

    ``id`` and ``name`` are optional so malformed upstream records still
    parse; :attr:`is_usable` tells whether a candidate can be matched.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = None
    name: str | None = None
    score: int = 0
    country: str | None = None
    area: AreaNode | None = None
    begin_area: AreaNode | None = Field(default=None, alias="begin-area")

    @property
    def is_usable(self) -> bool:
        return bool(self.id) and bool(self.name)


AreaRelation.model_rebuild()
