"""Exception hierarchy for originmap.

Every application error derives from :class:`OriginMapError`, which carries
an optional ``provider_name`` naming the external system involved
(``"sqlite_origin_cache"``, ``"musicbrainz"``, ``"spotify"``).

    OriginMapError
    +-- CacheStoreError          (persistent origin cache unreachable / failed)
    +-- MetadataLookupError      (artist search or area fetch failed upstream)
    |   +-- RateLimitError       (upstream answered 429 / 503)
    +-- LibraryFetchError        (streaming library page fetch failed)
    +-- ResolutionError          (resolution session misuse)
    |   +-- ResolutionNotReadyError
    +-- ConfigurationError       (startup / missing config)

Resolution treats ``MetadataLookupError`` as a per-artist failure: the
artist is recorded as unknown and the pass continues.
"""

from __future__ import annotations


class OriginMapError(Exception):
    """Base exception for all originmap errors.

    ``__str__`` prefixes the provider name in brackets, e.g.
    ``[musicbrainz] Artist search failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

class CacheStoreError(OriginMapError):
    """Raised when the persistent origin cache cannot be read or written."""

    def __init__(
        self,
        message: str = "Origin cache store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Upstream services
# ---------------------------------------------------------------------------

class MetadataLookupError(OriginMapError):
    """Raised when the artist metadata service fails a search or area fetch.

    ``status_code`` is the upstream HTTP status, or ``None`` for transport
    failures (DNS, timeouts, refused connections).
    """

    def __init__(
        self,
        message: str = "Artist metadata lookup failed",
        provider_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._status_code = status_code

    @property
    def status_code(self) -> int | None:
        return self._status_code


class RateLimitError(MetadataLookupError):
    """Raised when the metadata service rejects a call for exceeding its rate limit."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
        status_code: int | None = 429,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name, status_code=status_code)


class LibraryFetchError(OriginMapError):
    """Raised when the streaming library cannot return even its first page."""

    def __init__(
        self,
        message: str = "Streaming library fetch failed",
        provider_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._status_code = status_code

    @property
    def status_code(self) -> int | None:
        return self._status_code


# ---------------------------------------------------------------------------
# Resolution sessions / configuration
# ---------------------------------------------------------------------------

class ResolutionError(OriginMapError):
    """Raised when a resolution session is used incorrectly (unknown session, etc.)."""

    def __init__(
        self,
        message: str = "Origin resolution failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ResolutionNotReadyError(ResolutionError):
    """Raised when aggregated output is requested before resolution reached DONE."""

    def __init__(
        self,
        message: str = "Origin resolution has not finished for this track list",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(OriginMapError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
