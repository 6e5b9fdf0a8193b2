"""originmap API layer — routes, schemas, auth, WebSocket, and middleware."""

from originmap.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from originmap.api.routes import router
from originmap.api.schemas import (
    ActivateTracksRequest,
    BatchOriginsRequest,
    ClearUnknownsResponse,
    CountryCountsResponse,
    ErrorResponse,
    HealthResponse,
    PlaylistsResponse,
    SessionStatusResponse,
    TracksResponse,
)
from originmap.api.websocket import websocket_progress

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "websocket_progress",
    "ActivateTracksRequest",
    "BatchOriginsRequest",
    "ClearUnknownsResponse",
    "CountryCountsResponse",
    "ErrorResponse",
    "HealthResponse",
    "PlaylistsResponse",
    "SessionStatusResponse",
    "TracksResponse",
]
