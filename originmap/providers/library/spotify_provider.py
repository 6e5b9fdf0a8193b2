"""Spotify Web API provider implementing ILibraryProvider.

Reads a listener's saved tracks, playlist tracks and playlist list through
an injected ``httpx.AsyncClient``.  Spotify tolerates short bursts but
answers sustained load with HTTP 429 and a ``Retry-After`` header, so:

- every request goes through :meth:`SpotifyLibraryProvider.fetch_with_retry`
  (honours ``Retry-After``, else exponential backoff from 0.3 s, at most
  3 retries, network errors retried the same way);
- the first page of a track listing is fetched alone and is mandatory;
- the remaining offsets are fetched concurrently in batches of at most 10
  with a short pause between batches; a page that still fails is dropped
  and the listing is returned partially.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from originmap.config.settings import Settings
from originmap.interfaces.library_provider import ILibraryProvider
from originmap.models.track import Playlist, Track, TrackItem
from originmap.utils.concurrency import batched_gather
from originmap.utils.errors import LibraryFetchError

logger = structlog.get_logger(logger_name=__name__)

_PROVIDER_NAME = "spotify"
_TRACK_FIELDS = "total,next,items(added_at,track(id,name,uri,artists(name)))"
_REQUEST_TIMEOUT = 30.0


class SpotifyLibraryProvider(ILibraryProvider):
    """Spotify listener-library provider with 429-aware retries.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient`` for testability and connection pooling.
    settings:
        Application settings supplying base URL, page size, retry and batch
        parameters.
    track_fields:
        Spotify ``fields`` selector for track listings.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: Settings,
        track_fields: str = _TRACK_FIELDS,
    ) -> None:
        self._http = http_client
        self._base_url = settings.spotify_api_base_url.rstrip("/")
        self._page_size = settings.spotify_page_size
        self._max_retries = settings.spotify_max_retries
        self._retry_backoff = settings.spotify_retry_backoff
        self._batch_size = settings.spotify_batch_size
        self._batch_pause = settings.spotify_batch_pause
        self._track_fields = track_fields

    # ------------------------------------------------------------------
    # Retry helper
    # ------------------------------------------------------------------

    async def fetch_with_retry(self, url: str, token: str) -> httpx.Response:
        """GET *url*, retrying HTTP 429 responses and transport errors.

        The wait before a retry is the ``Retry-After`` header (seconds) when
        present, otherwise the current backoff.  The backoff starts at
        ``spotify_retry_backoff`` and doubles after every retry.

        Returns
        -------
        httpx.Response
            The last response received.  A 429 is returned as-is once the
            retries are exhausted.

        Raises
        ------
        httpx.HTTPError
            When the final attempt fails at the transport level.
        """
        headers = {"Authorization": f"Bearer {token}"}
        backoff = self._retry_backoff
        retries_left = self._max_retries

        while True:
            try:
                response = await self._http.get(url, headers=headers, timeout=_REQUEST_TIMEOUT)
            except httpx.HTTPError as exc:
                if retries_left <= 0:
                    raise
                logger.warning(
                    "spotify_request_failed",
                    url=url,
                    error=str(exc),
                    retry_in_s=backoff,
                    retries_left=retries_left,
                )
                await asyncio.sleep(backoff)
                retries_left -= 1
                backoff *= 2
                continue

            if response.status_code == 429 and retries_left > 0:
                retry_after = _retry_after_seconds(response)
                wait = retry_after if retry_after is not None else backoff
                logger.warning(
                    "spotify_rate_limited",
                    url=url,
                    retry_in_s=wait,
                    retries_left=retries_left,
                )
                await asyncio.sleep(wait)
                retries_left -= 1
                backoff *= 2
                continue

            return response

    # ------------------------------------------------------------------
    # Page helpers
    # ------------------------------------------------------------------

    def _page_url(self, path: str, offset: int = 0) -> str:
        url = f"{self._base_url}{path}?limit={self._page_size}&fields={self._track_fields}"
        if offset:
            url += f"&offset={offset}"
        return url

    async def _fetch_first_page(self, url: str, token: str) -> dict[str, Any]:
        try:
            response = await self.fetch_with_retry(url, token)
        except httpx.HTTPError as exc:
            raise LibraryFetchError(
                message=f"Failed to fetch {url}: {exc}",
                provider_name=_PROVIDER_NAME,
            ) from exc

        if not _is_success(response):
            raise LibraryFetchError(
                message=f"Spotify returned HTTP {response.status_code} for {url}",
                provider_name=_PROVIDER_NAME,
                status_code=response.status_code,
            )
        return response.json()

    async def _fetch_optional_page(self, url: str, token: str) -> dict[str, Any] | None:
        response = await self.fetch_with_retry(url, token)
        if not _is_success(response):
            logger.warning("spotify_page_failed", url=url, status=response.status_code)
            return None
        return response.json()

    async def _fetch_all_items(self, path: str, token: str) -> list[TrackItem]:
        """Fetch every page of an offset-paginated track listing."""
        first_page = await self._fetch_first_page(self._page_url(path), token)
        pages: list[dict[str, Any] | None] = [first_page]

        total = int(first_page.get("total") or 0)
        if total > self._page_size:
            factories = [
                (lambda url=self._page_url(path, offset): self._fetch_optional_page(url, token))
                for offset in range(self._page_size, total, self._page_size)
            ]
            results = await batched_gather(
                factories,
                batch_size=self._batch_size,
                pause=self._batch_pause,
            )
            for result in results:
                if isinstance(result, BaseException):
                    logger.warning("spotify_page_dropped", path=path, error=str(result))
                    continue
                pages.append(result)

        items: list[TrackItem] = []
        for page in pages:
            if not page:
                continue
            items.extend(_parse_items(page.get("items") or []))

        logger.info("spotify_tracks_fetched", path=path, total=total, fetched=len(items))
        return items

    # ------------------------------------------------------------------
    # ILibraryProvider implementation
    # ------------------------------------------------------------------

    async def get_liked_tracks(self, token: str) -> list[Track]:
        items = await self._fetch_all_items("/me/tracks", token)
        return [item.track for item in items if item.track is not None]

    async def get_playlist_tracks(self, token: str, playlist_id: str) -> list[Track]:
        items = await self._fetch_all_items(f"/playlists/{playlist_id}/tracks", token)
        return [item.track for item in items if item.track is not None]

    async def get_playlists(self, token: str) -> list[Playlist]:
        """Follow ``next`` links until every playlist has been listed.

        Raises
        ------
        LibraryFetchError
            When any page cannot be fetched; the upstream status is attached.
        """
        playlists: list[Playlist] = []
        next_url: str | None = f"{self._base_url}/me/playlists?limit={self._page_size}"

        while next_url:
            data = await self._fetch_first_page(next_url, token)
            for raw in data.get("items") or []:
                if not isinstance(raw, dict):
                    continue
                try:
                    playlists.append(Playlist.model_validate(raw))
                except ValidationError as exc:
                    logger.debug("spotify_playlist_skipped", error=str(exc))
            next_url = data.get("next")

        logger.info("spotify_playlists_fetched", count=len(playlists))
        return playlists

    def get_provider_name(self) -> str:
        """Return the provider identifier."""
        return _PROVIDER_NAME


def _retry_after_seconds(response: httpx.Response) -> float | None:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return float(int(raw))
    except ValueError:
        return None


def _parse_items(raw_items: list[Any]) -> list[TrackItem]:
    items: list[TrackItem] = []
    for raw in raw_items:
        if not isinstance(raw, dict) or raw.get("track") is None:
            continue
        try:
            items.append(TrackItem.model_validate(raw))
        except ValidationError as exc:
            logger.debug("spotify_item_skipped", error=str(exc))
    return items


def _is_success(response: httpx.Response) -> bool:
    return 200 <= response.status_code < 300
