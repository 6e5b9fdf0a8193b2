"""Origin resolution orchestrator.

Turns the first artists of a track list into a complete name -> country
map, using the tiered lookup:

    BATCH_LOOKUP      one cache query for every unique artist
    INDIVIDUAL_FETCH  one upstream lookup per miss, strictly one at a time
    DONE              resolved map complete; reports may be built

:class:`OriginResolutionPipeline` is the stateless part: an async generator
that yields a :class:`ResolutionStep` per unit of progress.
:class:`ResolutionSessionManager` owns per-session state.  It folds each
step into a new frozen :class:`ResolutionState` via ``model_copy`` and
broadcasts progress through the injected :class:`ProgressTracker`.

Activating a new track list for a session bumps its generation and cancels
the running pass.  Steps produced by a superseded pass are discarded, so a
slow lookup from the old list can never land in the new map.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from datetime import datetime, timezone

import structlog

from originmap.models.origin import ArtistOriginResult, OriginSource
from originmap.models.resolution import (
    CountryDetails,
    ResolutionPhase,
    ResolutionState,
    ResolutionStep,
    UnknownsReport,
)
from originmap.models.track import Track, TrackArtist
from originmap.pipeline.progress_tracker import ProgressTracker
from originmap.services.aggregation import (
    aggregate,
    build_unknowns_report,
    country_details,
    unique_first_artists,
)
from originmap.services.artist_origin import ArtistOriginService
from originmap.services.batch_lookup import BatchLookupService
from originmap.utils.errors import ResolutionError, ResolutionNotReadyError
from originmap.utils.logging import get_logger
from originmap.utils.text_normalizer import normalize_query_key

_DEFAULT_MAX_SESSIONS = 256


class OriginResolutionPipeline:
    """Stateless resolution pass over a list of artist names."""

    def __init__(self, batch_lookup: BatchLookupService, origin_service: ArtistOriginService) -> None:
        self._batch_lookup = batch_lookup
        self._origin_service = origin_service
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def iter_resolution(self, names: list[str]) -> AsyncIterator[ResolutionStep]:
        """Yield resolution steps for *names*.

        Yields one ``BATCH_LOOKUP`` step carrying every cache hit, then one
        ``INDIVIDUAL_FETCH`` step per miss, then a final ``DONE`` step.  A
        failed lookup yields a result with ``country=None`` and
        ``source=api_error`` plus the error text; the pass continues.
        """
        unique: dict[str, str] = {}
        for name in names:
            if name:
                unique.setdefault(normalize_query_key(name), name)
        total = len(unique)

        hits = await self._batch_lookup.lookup_many(list(unique.values()))
        hit_results = [
            ArtistOriginResult.from_cache(unique[key], cached)
            for key, cached in hits.items()
            if key in unique
        ]
        resolved = len(hit_results)
        misses = [display for key, display in unique.items() if key not in hits]

        self._logger.info(
            "batch_lookup_phase_completed",
            total=total,
            hits=resolved,
            misses=len(misses),
        )
        yield ResolutionStep(
            phase=ResolutionPhase.BATCH_LOOKUP,
            results=hit_results,
            resolved=resolved,
            total=total,
        )

        for name in misses:
            error: str | None = None
            try:
                result = await self._origin_service.resolve_uncached(name)
            except Exception as exc:
                error = f"{name}: {exc}"
                self._logger.warning("artist_resolution_failed", artist=name, error=str(exc))
                result = ArtistOriginResult(
                    artist_name=name,
                    source=OriginSource.API_ERROR,
                    message=str(exc),
                )
            resolved += 1
            yield ResolutionStep(
                phase=ResolutionPhase.INDIVIDUAL_FETCH,
                results=[result],
                resolved=resolved,
                total=total,
                error=error,
            )

        yield ResolutionStep(phase=ResolutionPhase.DONE, resolved=resolved, total=total)


class ResolutionSessionManager:
    """Owns the resolution state of every active session.

    One background task runs per session.  :meth:`activate` replaces both
    the state and the task; readers only ever see complete snapshots.

    At most *max_sessions* states are kept.  Once the limit is reached the
    least recently activated DONE or CANCELLED session is evicted; running
    sessions are never evicted.
    """

    def __init__(
        self,
        pipeline: OriginResolutionPipeline,
        progress_tracker: ProgressTracker,
        max_sessions: int = _DEFAULT_MAX_SESSIONS,
    ) -> None:
        self._pipeline = pipeline
        self._progress_tracker = progress_tracker
        self._max_sessions = max_sessions
        self._states: dict[str, ResolutionState] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    async def activate(self, session_id: str, tracks: list[Track]) -> ResolutionState:
        """Make *tracks* the active track list for *session_id*.

        Any in-flight pass for the session is cancelled.  Resolution runs
        in a background task; the returned state is the initial snapshot.
        """
        previous = self._states.get(session_id)
        generation = previous.generation + 1 if previous else 1

        old_task = self._tasks.pop(session_id, None)
        if old_task is not None and not old_task.done():
            old_task.cancel()
            self._logger.info(
                "resolution_superseded",
                session_id=session_id,
                old_generation=generation - 1,
            )

        state = self._initial_state(session_id, generation, tracks)
        # Re-insert so dict order tracks activation recency.
        self._states.pop(session_id, None)
        self._states[session_id] = state
        self._evict_finished(keep=session_id)
        await self._publish(state)

        if state.phase != ResolutionPhase.DONE:
            task = asyncio.create_task(
                self._run(session_id, generation, state.artist_names),
                name=f"resolution-{session_id}-{generation}",
            )
            self._tasks[session_id] = task
            task.add_done_callback(lambda t, sid=session_id: self._drop_task(sid, t))
        return state

    async def resolve(self, tracks: list[Track], session_id: str = "foreground") -> ResolutionState:
        """Run one full pass for *tracks* in the caller's task and return the final state."""
        previous = self._states.get(session_id)
        generation = previous.generation + 1 if previous else 1
        state = self._initial_state(session_id, generation, tracks)
        self._states[session_id] = state
        if state.phase != ResolutionPhase.DONE:
            await self._run(session_id, generation, state.artist_names)
        return self._states[session_id]

    async def resolve_names(self, names: list[str], session_id: str = "foreground") -> ResolutionState:
        """Convenience wrapper: one single-artist track per name."""
        tracks = [Track(name="", artists=[TrackArtist(name=name)]) for name in names]
        return await self.resolve(tracks, session_id=session_id)

    async def wait(self, session_id: str) -> ResolutionState:
        """Wait for the session's current pass to finish and return its state."""
        task = self._tasks.get(session_id)
        if task is not None:
            await asyncio.wait({task})
        return self._require_state(session_id)

    async def discard(self, session_id: str) -> bool:
        """Drop a session's state and progress, cancelling its pass if running.

        Returns ``False`` when the session is unknown.
        """
        task = self._tasks.pop(session_id, None)
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        state = self._states.pop(session_id, None)
        self._progress_tracker.forget(session_id)
        if state is not None:
            self._logger.info("session_discarded", session_id=session_id, generation=state.generation)
        return state is not None

    async def close(self) -> None:
        """Cancel every running pass and wait for them to unwind."""
        pending: list[asyncio.Task] = []
        for session_id, task in list(self._tasks.items()):
            if not task.done():
                task.cancel()
                pending.append(task)
                state = self._states.get(session_id)
                if state is not None:
                    self._states[session_id] = state.model_copy(
                        update={"phase": ResolutionPhase.CANCELLED}
                    )
        self._tasks.clear()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    @property
    def session_count(self) -> int:
        return len(self._states)

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def get_state(self, session_id: str) -> ResolutionState | None:
        return self._states.get(session_id)

    def get_country_counts(self, session_id: str) -> dict[str, int]:
        state = self._require_done(session_id)
        return aggregate(state.tracks, state.resolved_map)

    def get_unknowns(self, session_id: str) -> UnknownsReport:
        state = self._require_done(session_id)
        return build_unknowns_report(state.tracks, state.resolved_map)

    def get_country_details(self, session_id: str, iso_codes: list[str]) -> CountryDetails:
        state = self._require_done(session_id)
        return country_details(state.tracks, state.resolved_map, iso_codes)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require_state(self, session_id: str) -> ResolutionState:
        state = self._states.get(session_id)
        if state is None:
            raise ResolutionError(message=f"Unknown session: {session_id}")
        return state

    def _require_done(self, session_id: str) -> ResolutionState:
        state = self._require_state(session_id)
        if state.phase != ResolutionPhase.DONE:
            raise ResolutionNotReadyError(
                message=f"Resolution for session {session_id} is {state.phase.value}, not DONE"
            )
        return state

    @staticmethod
    def _initial_state(session_id: str, generation: int, tracks: list[Track]) -> ResolutionState:
        names = unique_first_artists(tracks)
        now = datetime.now(tz=timezone.utc)  # noqa: UP017
        if not names:
            return ResolutionState(
                session_id=session_id,
                generation=generation,
                phase=ResolutionPhase.DONE,
                tracks=list(tracks),
                started_at=now,
                completed_at=now,
            )
        return ResolutionState(
            session_id=session_id,
            generation=generation,
            phase=ResolutionPhase.BATCH_LOOKUP,
            tracks=list(tracks),
            artist_names=names,
            total=len(names),
            started_at=now,
        )

    def _drop_task(self, session_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(session_id) is task:
            del self._tasks[session_id]

    def _evict_finished(self, keep: str) -> None:
        finished = (ResolutionPhase.DONE, ResolutionPhase.CANCELLED)
        while len(self._states) > self._max_sessions:
            victim = next(
                (sid for sid, s in self._states.items() if sid != keep and s.phase in finished),
                None,
            )
            if victim is None:
                return
            del self._states[victim]
            self._progress_tracker.forget(victim)
            self._logger.debug("session_evicted", session_id=victim)

    def _is_current(self, session_id: str, generation: int) -> bool:
        state = self._states.get(session_id)
        return state is not None and state.generation == generation

    async def _run(self, session_id: str, generation: int, names: list[str]) -> None:
        self._logger.info(
            "resolution_started",
            session_id=session_id,
            generation=generation,
            artists=len(names),
        )
        try:
            async for step in self._pipeline.iter_resolution(names):
                if not self._is_current(session_id, generation):
                    self._logger.debug("stale_step_discarded", session_id=session_id, generation=generation)
                    return
                state = self._apply_step(self._states[session_id], step)
                self._states[session_id] = state
                await self._publish(state)
        except asyncio.CancelledError:
            self._logger.info("resolution_cancelled", session_id=session_id, generation=generation)
            raise
        except Exception as exc:
            self._logger.error(
                "resolution_failed",
                session_id=session_id,
                generation=generation,
                error=str(exc),
            )
            if self._is_current(session_id, generation):
                state = self._states[session_id]
                self._states[session_id] = state.model_copy(
                    update={
                        "phase": ResolutionPhase.CANCELLED,
                        "errors": [*state.errors, str(exc)],
                    }
                )
                await self._publish(self._states[session_id])
            return

        final = self._states.get(session_id)
        if final is not None and final.generation == generation:
            self._logger.info(
                "resolution_completed",
                session_id=session_id,
                generation=generation,
                resolved=final.resolved,
                unknown=sum(1 for c in final.resolved_map.values() if c is None),
                errors=len(final.errors),
            )

    @staticmethod
    def _apply_step(state: ResolutionState, step: ResolutionStep) -> ResolutionState:
        resolved_map = dict(state.resolved_map)
        for result in step.results:
            resolved_map[result.query_key] = result.country

        update: dict = {
            "phase": step.phase,
            "resolved_map": resolved_map,
            "results": [*state.results, *step.results],
            "resolved": step.resolved,
            "total": step.total,
        }
        if step.error:
            update["errors"] = [*state.errors, step.error]
        if step.phase == ResolutionPhase.DONE:
            update["completed_at"] = datetime.now(tz=timezone.utc)  # noqa: UP017
        return state.model_copy(update=update)

    async def _publish(self, state: ResolutionState) -> None:
        if state.phase == ResolutionPhase.BATCH_LOOKUP and state.resolved == 0:
            message = f"Checking cached origins for {state.total} artists..."
        elif state.phase == ResolutionPhase.DONE:
            message = f"Resolved {state.resolved}/{state.total} artists"
        elif state.phase == ResolutionPhase.CANCELLED:
            message = "Resolution cancelled"
        else:
            message = f"Retrieving artist origins ({state.resolved}/{state.total} artists)..."
        await self._progress_tracker.update(
            state.session_id,
            state.phase,
            state.resolved,
            state.total,
            message,
        )
