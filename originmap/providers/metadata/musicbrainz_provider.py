"""MusicBrainz provider implementing IArtistMetadataProvider.

Talks to the MusicBrainz JSON web service (``/ws/2``) through an injected
``httpx.AsyncClient``.  Two calls are used:

- ``GET /artist/?query=artist:<name>&limit=5&fmt=json`` -- name search
- ``GET /area/<id>?inc=area-rels&fmt=json`` -- one area plus its relations

MusicBrainz allows roughly one request per second per client and bans
clients that burst.  Every search sleeps ``musicbrainz_search_delay``
(1.1 s) and every area fetch sleeps ``musicbrainz_area_delay`` (0.5 s)
*before* the request, unconditionally.  No retries happen here; a failed
call raises and the caller decides what that means.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from originmap.config.settings import Settings
from originmap.interfaces.metadata_provider import IArtistMetadataProvider
from originmap.models.metadata import AreaNode, ArtistCandidate
from originmap.utils.errors import MetadataLookupError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_PROVIDER_NAME = "musicbrainz"
_RATE_LIMIT_STATUSES = (429, 503)
_REQUEST_TIMEOUT = 30.0


class MusicBrainzProvider(IArtistMetadataProvider):
    """MusicBrainz artist-metadata provider with fixed pre-request delays.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient`` for testability and connection pooling.
    settings:
        Application settings supplying base URL, user-agent parts, delays
        and the search result limit.
    """

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings) -> None:
        self._http = http_client
        self._base_url = settings.musicbrainz_base_url.rstrip("/")
        self._search_delay = settings.musicbrainz_search_delay
        self._area_delay = settings.musicbrainz_area_delay
        self._search_limit = settings.musicbrainz_search_limit
        self._headers = {
            "User-Agent": settings.musicbrainz_user_agent,
            "Accept": "application/json",
        }
        logger.info(
            "musicbrainz_provider_initialized",
            base_url=self._base_url,
            user_agent=settings.musicbrainz_user_agent,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get_json(self, path: str, params: dict[str, Any], delay: float) -> dict[str, Any]:
        """Sleep *delay* seconds, then GET *path* and return the decoded body."""
        await asyncio.sleep(delay)
        url = f"{self._base_url}/{path}"

        try:
            response = await self._http.get(
                url,
                params=params,
                headers=self._headers,
                timeout=_REQUEST_TIMEOUT,
            )
        except httpx.HTTPError as exc:
            logger.warning("musicbrainz_request_failed", url=url, error=str(exc))
            raise MetadataLookupError(
                message=f"Request to {url} failed: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        if response.status_code in _RATE_LIMIT_STATUSES:
            logger.warning("musicbrainz_rate_limited", url=url, status=response.status_code)
            raise RateLimitError(
                message=f"MusicBrainz throttled request to {url}",
                provider_name=_PROVIDER_NAME,
                status_code=response.status_code,
            )

        if response.status_code < 200 or response.status_code >= 300:
            logger.warning("musicbrainz_unexpected_status", url=url, status=response.status_code)
            raise MetadataLookupError(
                message=f"MusicBrainz returned HTTP {response.status_code} for {url}",
                provider_name=_PROVIDER_NAME,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise MetadataLookupError(
                message=f"MusicBrainz returned a non-JSON body for {url}",
                provider_name=_PROVIDER_NAME,
                status_code=response.status_code,
            ) from exc

        return data if isinstance(data, dict) else {}

    # ------------------------------------------------------------------
    # IArtistMetadataProvider implementation
    # ------------------------------------------------------------------

    async def search_artists(self, name: str) -> list[ArtistCandidate]:
        """Search MusicBrainz for artists matching *name*.

        Parameters
        ----------
        name:
            Artist display name; sent as the ``artist:`` field query.

        Returns
        -------
        list[ArtistCandidate]
            Up to ``musicbrainz_search_limit`` candidates in upstream order.
            A body without an ``artists`` array yields an empty list.
        """
        data = await self._get_json(
            "artist/",
            params={"query": f"artist:{name}", "limit": self._search_limit, "fmt": "json"},
            delay=self._search_delay,
        )

        raw_artists = data.get("artists")
        if not isinstance(raw_artists, list):
            logger.debug("musicbrainz_artist_search", query=name, result_count=0)
            return []

        candidates: list[ArtistCandidate] = []
        for raw in raw_artists:
            if not isinstance(raw, dict):
                continue
            try:
                candidates.append(ArtistCandidate.model_validate(raw))
            except ValidationError as exc:
                logger.debug("musicbrainz_candidate_skipped", query=name, error=str(exc))

        logger.debug("musicbrainz_artist_search", query=name, result_count=len(candidates))
        return candidates

    async def get_area(self, area_id: str) -> AreaNode:
        """Fetch area *area_id* with its area-to-area relations.

        Raises
        ------
        MetadataLookupError
            On any non-2xx status, transport failure or unparseable body.
        """
        data = await self._get_json(
            f"area/{area_id}",
            params={"inc": "area-rels", "fmt": "json"},
            delay=self._area_delay,
        )

        try:
            area = AreaNode.model_validate(data)
        except ValidationError as exc:
            raise MetadataLookupError(
                message=f"Unexpected area payload for {area_id}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        logger.debug(
            "musicbrainz_area_fetched",
            area_id=area_id,
            area_type=area.type,
            relation_count=len(area.relations),
        )
        return area

    def get_provider_name(self) -> str:
        """Return the provider identifier."""
        return _PROVIDER_NAME
