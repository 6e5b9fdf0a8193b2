"""Origin-resolution services.

- **batch_lookup** -- one-query fast path over the persistent cache.
- **area_resolver** -- walks city/region areas up to a country.
- **artist_origin** -- best-match selection and per-artist lookup policy.
- **aggregation** -- pure folds of resolved origins over a track list.
"""

from originmap.services.aggregation import (
    aggregate,
    build_unknowns_report,
    country_details,
    first_artist_name,
    unique_first_artists,
)
from originmap.services.area_resolver import AreaHierarchyResolver
from originmap.services.artist_origin import ArtistOriginService, select_best_match
from originmap.services.batch_lookup import BatchLookupService

__all__ = [
    "AreaHierarchyResolver",
    "ArtistOriginService",
    "BatchLookupService",
    "aggregate",
    "build_unknowns_report",
    "country_details",
    "first_artist_name",
    "select_best_match",
    "unique_first_artists",
]
