"""Utility modules for originmap.

- **errors** -- exception hierarchy rooted at OriginMapError.
- **logging** -- structlog setup (console in development, JSON in production).
- **concurrency** -- batched fan-out used by the streaming library client.
- **text_normalizer** -- artist-name key normalisation shared by every cache
  and map lookup.
"""

from originmap.utils.concurrency import batched_gather
from originmap.utils.errors import (
    CacheStoreError,
    ConfigurationError,
    LibraryFetchError,
    MetadataLookupError,
    OriginMapError,
    RateLimitError,
    ResolutionError,
    ResolutionNotReadyError,
)
from originmap.utils.logging import configure_logging, get_logger
from originmap.utils.text_normalizer import names_match, normalize_query_key

__all__ = [
    "CacheStoreError",
    "ConfigurationError",
    "LibraryFetchError",
    "MetadataLookupError",
    "OriginMapError",
    "RateLimitError",
    "ResolutionError",
    "ResolutionNotReadyError",
    "batched_gather",
    "configure_logging",
    "get_logger",
    "names_match",
    "normalize_query_key",
]
