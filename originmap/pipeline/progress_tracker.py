"""Resolution progress tracking with callback-based listener notification.

Tracks the current phase and resolved/total counters for each session and
broadcasts updates to registered listener callbacks.  Listeners are keyed
by session ID so several sessions can resolve concurrently without
cross-talk.

    SessionManager ──update()──→ ProgressTracker ──callback()──→ WebSocket handler

Listener errors are logged and skipped.  Both sync and async callbacks are
supported.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from originmap.models.resolution import ResolutionPhase
from originmap.utils.logging import get_logger


@dataclass
class _SessionStatus:
    """Internal snapshot of a single session's progress."""

    phase: ResolutionPhase = ResolutionPhase.IDLE
    resolved: int = 0
    total: int = 0
    message: str = ""

    @property
    def progress(self) -> float:
        if self.phase == ResolutionPhase.DONE:
            return 100.0
        if self.total <= 0:
            return 0.0
        return max(0.0, min(100.0, self.resolved / self.total * 100.0))

    def as_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "resolved": self.resolved,
            "total": self.total,
            "progress": round(self.progress, 1),
            "message": self.message,
        }


class ProgressTracker:
    """Tracks and broadcasts resolution progress via callbacks.

    Listeners are called as ``callback(session_id, status)`` where
    ``status`` is the dict returned by :meth:`get_status`.
    """

    def __init__(self) -> None:
        self._statuses: dict[str, _SessionStatus] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def update(
        self,
        session_id: str,
        phase: ResolutionPhase,
        resolved: int,
        total: int,
        message: str = "",
    ) -> None:
        """Record a progress update and notify all registered listeners.

        Parameters
        ----------
        session_id:
            The session to update.
        phase:
            The current resolution phase.
        resolved:
            Artists settled so far (cache hits plus individual lookups).
        total:
            Unique artists in the active track list.
        message:
            Human-readable status message.
        """
        status = _SessionStatus(phase=phase, resolved=resolved, total=total, message=message)
        self._statuses[session_id] = status

        self._logger.debug(
            "progress_update",
            session_id=session_id,
            phase=phase.value,
            resolved=resolved,
            total=total,
        )

        await self._notify_listeners(session_id, status.as_dict())

    def register_listener(self, session_id: str, callback: Callable) -> None:
        """Register a callback to receive progress updates for a session."""
        if session_id not in self._listeners:
            self._listeners[session_id] = []

        if callback not in self._listeners[session_id]:
            self._listeners[session_id].append(callback)
            self._logger.debug(
                "listener_registered",
                session_id=session_id,
                total_listeners=len(self._listeners[session_id]),
            )

    def unregister_listener(self, session_id: str, callback: Callable) -> None:
        """Remove a previously registered callback for a session."""
        listeners = self._listeners.get(session_id, [])
        if callback in listeners:
            listeners.remove(callback)
            self._logger.debug(
                "listener_unregistered",
                session_id=session_id,
                remaining_listeners=len(listeners),
            )
        if not listeners:
            self._listeners.pop(session_id, None)

    def get_status(self, session_id: str) -> dict[str, Any]:
        """Return ``{phase, resolved, total, progress, message}`` for a session.

        Untracked sessions report zeroed ``IDLE`` defaults.
        """
        status = self._statuses.get(session_id) or _SessionStatus()
        return status.as_dict()

    def forget(self, session_id: str) -> None:
        """Drop the recorded status for a session.  Listeners are left in place."""
        self._statuses.pop(session_id, None)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(self, session_id: str, status: dict[str, Any]) -> None:
        listeners = list(self._listeners.get(session_id, []))
        if not listeners:
            return

        for callback in listeners:
            try:
                result = callback(session_id, status)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    session_id=session_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
