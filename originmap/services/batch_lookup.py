"""Batch cache lookup: the fast path of origin resolution.

Answers "which of these artists do we already know?" with a single query
against the persistent origin cache.  Everything not returned is a miss
for the caller to resolve individually.  A store failure degrades to "all
miss" instead of blocking resolution.
"""

from __future__ import annotations

import structlog

from originmap.interfaces.origin_cache_provider import IOriginCacheProvider
from originmap.models.origin import CachedOrigin
from originmap.utils.errors import CacheStoreError
from originmap.utils.logging import get_logger
from originmap.utils.text_normalizer import normalize_query_key


class BatchLookupService:
    """Single round-trip lookup of many artist names."""

    def __init__(self, cache: IOriginCacheProvider) -> None:
        self._cache = cache
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def lookup_many(self, names: list[str], strict: bool = False) -> dict[str, CachedOrigin]:
        """Return fresh cache hits for *names*, keyed by lower-cased name.

        Parameters
        ----------
        names:
            Artist display names.  Lower-cased and de-duplicated here.
        strict:
            Re-raise :class:`CacheStoreError` instead of degrading to an
            empty result.  The HTTP batch endpoint reports store outages.

        Returns
        -------
        dict[str, CachedOrigin]
            A subset of the lower-cased input.  Negative entries are
            included with ``country=None``.  Empty when the store fails.
        """
        keys = list(dict.fromkeys(normalize_query_key(n) for n in names if n))
        if not keys:
            return {}

        try:
            entries = await self._cache.get_batch(keys)
        except CacheStoreError as exc:
            self._logger.warning("batch_lookup_failed", requested=len(keys), error=str(exc))
            if strict:
                raise
            return {}
        except Exception as exc:
            self._logger.warning(
                "batch_lookup_failed",
                requested=len(keys),
                error=str(exc),
                error_type=type(exc).__name__,
            )
            if strict:
                raise CacheStoreError(message=f"Batch lookup failed: {exc}") from exc
            return {}

        hits = {key: entry.to_cached_origin() for key, entry in entries.items()}
        self._logger.info("batch_lookup_completed", requested=len(keys), hits=len(hits))
        return hits
