"""WebSocket endpoint for real-time resolution progress updates.

Connects a client to one session via the ``ProgressTracker`` listener
mechanism.  Messages are JSON objects:

    {"session_id": "abc", "phase": "INDIVIDUAL_FETCH",
     "resolved": 12, "total": 40, "progress": 30.0, "message": "..."}

The current snapshot is sent immediately on connect, then one message per
progress update until the client disconnects.
"""

from __future__ import annotations

import contextlib
from typing import Any

import structlog
from fastapi import WebSocket, WebSocketDisconnect

from originmap.pipeline.progress_tracker import ProgressTracker
from originmap.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


async def websocket_progress(websocket: WebSocket, session_id: str) -> None:
    """Stream resolution progress for *session_id* to the client."""
    progress_tracker: ProgressTracker = websocket.app.state.progress_tracker

    await websocket.accept()
    _logger.info("websocket_connected", session_id=session_id)

    async def _on_progress(sid: str, status: dict[str, Any]) -> None:
        # The socket may already be gone; cleanup happens in ``finally``.
        with contextlib.suppress(Exception):
            await websocket.send_json({"session_id": sid, **status})

    progress_tracker.register_listener(session_id, _on_progress)

    try:
        status = progress_tracker.get_status(session_id)
        await websocket.send_json({"session_id": session_id, **status})

        while True:
            await websocket.receive_text()

    except WebSocketDisconnect:
        _logger.info("websocket_disconnected", session_id=session_id)

    finally:
        progress_tracker.unregister_listener(session_id, _on_progress)
        _logger.debug("websocket_listener_cleaned_up", session_id=session_id)
