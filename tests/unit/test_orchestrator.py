"""Unit tests for OriginResolutionPipeline and ResolutionSessionManager."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from originmap.models.origin import ArtistOriginResult, CachedOrigin, OriginSource
from originmap.models.resolution import ResolutionPhase, ResolutionStep
from originmap.pipeline.orchestrator import OriginResolutionPipeline, ResolutionSessionManager
from originmap.pipeline.progress_tracker import ProgressTracker
from originmap.services.artist_origin import ArtistOriginService
from originmap.services.batch_lookup import BatchLookupService
from originmap.utils.errors import MetadataLookupError, ResolutionError, ResolutionNotReadyError
from tests.factories import make_track


def _fetched(name: str, country: str | None) -> ArtistOriginResult:
    return ArtistOriginResult(artist_name=name, country=country, source=OriginSource.API_FETCHED)


def _pipeline(
    hits: dict[str, CachedOrigin] | None = None,
    resolve_uncached: AsyncMock | None = None,
) -> tuple[OriginResolutionPipeline, MagicMock, MagicMock]:
    batch_lookup = MagicMock(spec=BatchLookupService)
    batch_lookup.lookup_many = AsyncMock(return_value=hits or {})
    origin_service = MagicMock(spec=ArtistOriginService)
    origin_service.resolve_uncached = resolve_uncached or AsyncMock(
        side_effect=lambda name: _fetched(name, None)
    )
    return OriginResolutionPipeline(batch_lookup, origin_service), batch_lookup, origin_service


async def _collect(pipeline: OriginResolutionPipeline, names: list[str]) -> list[ResolutionStep]:
    return [step async for step in pipeline.iter_resolution(names)]


# ======================================================================
# OriginResolutionPipeline
# ======================================================================


class TestIterResolution:
    @pytest.mark.asyncio
    async def test_batch_then_individual_then_done(self) -> None:
        pipeline, batch_lookup, origin_service = _pipeline(
            hits={"daft punk": CachedOrigin(country="FR")},
            resolve_uncached=AsyncMock(side_effect=[_fetched("Air", "FR"), _fetched("The Roots", "US")]),
        )

        steps = await _collect(pipeline, ["Daft Punk", "Air", "The Roots"])

        assert [s.phase for s in steps] == [
            ResolutionPhase.BATCH_LOOKUP,
            ResolutionPhase.INDIVIDUAL_FETCH,
            ResolutionPhase.INDIVIDUAL_FETCH,
            ResolutionPhase.DONE,
        ]
        assert [s.resolved for s in steps] == [1, 2, 3, 3]
        assert all(s.total == 3 for s in steps)
        assert steps[0].results[0].source == OriginSource.DB_CACHE
        assert steps[0].results[0].artist_name == "Daft Punk"
        assert [c.args[0] for c in origin_service.resolve_uncached.await_args_list] == ["Air", "The Roots"]
        batch_lookup.lookup_many.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_all_hits_skip_individual_fetch(self) -> None:
        pipeline, _, origin_service = _pipeline(
            hits={"a": CachedOrigin(country="US"), "b": CachedOrigin(country=None)},
        )

        steps = await _collect(pipeline, ["A", "B"])

        assert [s.phase for s in steps] == [ResolutionPhase.BATCH_LOOKUP, ResolutionPhase.DONE]
        origin_service.resolve_uncached.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate_names_resolved_once(self) -> None:
        pipeline, _, origin_service = _pipeline()

        steps = await _collect(pipeline, ["X", "x", "X"])

        assert steps[-1].total == 1
        assert origin_service.resolve_uncached.await_count == 1

    @pytest.mark.asyncio
    async def test_misses_resolved_sequentially(self) -> None:
        in_flight = 0
        max_in_flight = 0

        async def _slow(name: str) -> ArtistOriginResult:
            nonlocal in_flight, max_in_flight
            in_flight += 1
            max_in_flight = max(max_in_flight, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return _fetched(name, "US")

        pipeline, _, _ = _pipeline(resolve_uncached=AsyncMock(side_effect=_slow))
        await _collect(pipeline, ["a", "b", "c", "d"])

        assert max_in_flight == 1

    @pytest.mark.asyncio
    async def test_failure_marks_unknown_and_continues(self) -> None:
        pipeline, _, _ = _pipeline(
            resolve_uncached=AsyncMock(
                side_effect=[MetadataLookupError("HTTP 503", status_code=503), _fetched("B", "GB")]
            ),
        )

        steps = await _collect(pipeline, ["A", "B"])

        failed = steps[1]
        assert failed.results[0].source == OriginSource.API_ERROR
        assert failed.results[0].country is None
        assert failed.error is not None and failed.error.startswith("A: ")
        assert steps[2].results[0].country == "GB"
        assert steps[-1].phase == ResolutionPhase.DONE
        assert steps[-1].resolved == 2


# ======================================================================
# ResolutionSessionManager
# ======================================================================


class TestSessionManager:
    @pytest.mark.asyncio
    async def test_activate_resolves_in_background(self) -> None:
        pipeline, _, _ = _pipeline(
            hits={"x": CachedOrigin(country="US")},
            resolve_uncached=AsyncMock(side_effect=[_fetched("Y", "FR")]),
        )
        manager = ResolutionSessionManager(pipeline, ProgressTracker())
        tracks = [make_track("X", "s1"), make_track("X", "s2"), make_track("Y", "s3")]

        initial = await manager.activate("s", tracks)
        final = await manager.wait("s")

        assert initial.phase == ResolutionPhase.BATCH_LOOKUP
        assert initial.generation == 1
        assert final.phase == ResolutionPhase.DONE
        assert final.resolved_map == {"x": "US", "y": "FR"}
        assert final.completed_at is not None
        assert manager.get_country_counts("s") == {"US": 2, "FR": 1}

    @pytest.mark.asyncio
    async def test_unknowns_after_done(self) -> None:
        pipeline, _, _ = _pipeline(
            resolve_uncached=AsyncMock(side_effect=[_fetched("A", None), _fetched("B", "FR")]),
        )
        manager = ResolutionSessionManager(pipeline, ProgressTracker())
        tracks = [make_track("A", "s1"), make_track("A", "s2"), make_track("B", "s3")]

        await manager.activate("s", tracks)
        await manager.wait("s")

        assert manager.get_country_counts("s") == {"FR": 1}
        report = manager.get_unknowns("s")
        assert [(a.artist_name, a.track_count) for a in report.artists] == [("A", 2)]
        details = manager.get_country_details("s", ["FR"])
        assert details.song_count == 1

    @pytest.mark.asyncio
    async def test_empty_track_list_is_done_immediately(self) -> None:
        pipeline, batch_lookup, _ = _pipeline()
        manager = ResolutionSessionManager(pipeline, ProgressTracker())

        state = await manager.activate("s", [])

        assert state.phase == ResolutionPhase.DONE
        assert manager.get_country_counts("s") == {}
        batch_lookup.lookup_many.assert_not_called()

    @pytest.mark.asyncio
    async def test_reports_refused_before_done(self) -> None:
        gate = asyncio.Event()

        async def _blocked(name: str) -> ArtistOriginResult:
            await gate.wait()
            return _fetched(name, "US")

        pipeline, _, _ = _pipeline(resolve_uncached=AsyncMock(side_effect=_blocked))
        manager = ResolutionSessionManager(pipeline, ProgressTracker())

        await manager.activate("s", [make_track("A")])
        await asyncio.sleep(0)

        with pytest.raises(ResolutionNotReadyError):
            manager.get_country_counts("s")
        with pytest.raises(ResolutionNotReadyError):
            manager.get_unknowns("s")

        gate.set()
        final = await manager.wait("s")
        assert final.phase == ResolutionPhase.DONE
        assert manager.get_country_counts("s") == {"US": 1}

    @pytest.mark.asyncio
    async def test_new_activation_supersedes_running_pass(self) -> None:
        gate = asyncio.Event()

        async def _resolve(name: str) -> ArtistOriginResult:
            if name == "Old":
                await gate.wait()
                return _fetched(name, "GB")
            return _fetched(name, "JP")

        pipeline, _, _ = _pipeline(resolve_uncached=AsyncMock(side_effect=_resolve))
        manager = ResolutionSessionManager(pipeline, ProgressTracker())

        await manager.activate("s", [make_track("Old")])
        await asyncio.sleep(0)
        second = await manager.activate("s", [make_track("New")])
        gate.set()
        final = await manager.wait("s")

        assert second.generation == 2
        assert final.generation == 2
        assert final.phase == ResolutionPhase.DONE
        assert final.resolved_map == {"new": "JP"}

    @pytest.mark.asyncio
    async def test_unexpected_pipeline_error_cancels_pass(self) -> None:
        pipeline, batch_lookup, _ = _pipeline()
        batch_lookup.lookup_many = AsyncMock(side_effect=RuntimeError("boom"))
        manager = ResolutionSessionManager(pipeline, ProgressTracker())

        await manager.activate("s", [make_track("A")])
        final = await manager.wait("s")

        assert final.phase == ResolutionPhase.CANCELLED
        assert final.errors == ["boom"]

    @pytest.mark.asyncio
    async def test_resolve_names_runs_inline(self) -> None:
        pipeline, _, _ = _pipeline(resolve_uncached=AsyncMock(side_effect=[_fetched("Daft Punk", "FR")]))
        manager = ResolutionSessionManager(pipeline, ProgressTracker())

        state = await manager.resolve_names(["Daft Punk"])

        assert state.phase == ResolutionPhase.DONE
        assert state.resolved_map == {"daft punk": "FR"}
        assert state.results[0].source == OriginSource.API_FETCHED

    @pytest.mark.asyncio
    async def test_progress_is_published(self) -> None:
        pipeline, _, _ = _pipeline()
        tracker = ProgressTracker()
        updates: list[dict] = []
        tracker.register_listener("s", lambda sid, status: updates.append(status))
        manager = ResolutionSessionManager(pipeline, tracker)

        await manager.activate("s", [make_track("A"), make_track("B")])
        await manager.wait("s")

        assert updates[0]["phase"] == "BATCH_LOOKUP"
        assert updates[-1]["phase"] == "DONE"
        assert updates[-1]["progress"] == 100.0
        assert [u["resolved"] for u in updates if u["phase"] == "INDIVIDUAL_FETCH"] == [1, 2]

    @pytest.mark.asyncio
    async def test_close_cancels_running_passes(self) -> None:
        gate = asyncio.Event()

        async def _blocked(name: str) -> ArtistOriginResult:
            await gate.wait()
            return _fetched(name, "US")

        pipeline, _, _ = _pipeline(resolve_uncached=AsyncMock(side_effect=_blocked))
        manager = ResolutionSessionManager(pipeline, ProgressTracker())
        await manager.activate("s", [make_track("A")])
        await asyncio.sleep(0)

        await manager.close()
        await asyncio.sleep(0)

        assert manager.get_state("s").phase == ResolutionPhase.CANCELLED

    def test_unknown_session(self) -> None:
        pipeline, _, _ = _pipeline()
        manager = ResolutionSessionManager(pipeline, ProgressTracker())

        assert manager.get_state("missing") is None
        with pytest.raises(ResolutionError):
            manager.get_country_counts("missing")


# ======================================================================
# Session lifetime
# ======================================================================


class TestSessionLifetime:
    @pytest.mark.asyncio
    async def test_finished_task_is_released(self) -> None:
        pipeline, _, _ = _pipeline()
        manager = ResolutionSessionManager(pipeline, ProgressTracker())

        await manager.activate("s", [make_track("A")])
        await manager.wait("s")
        await asyncio.sleep(0)

        assert "s" not in manager._tasks
        assert manager.get_state("s").phase == ResolutionPhase.DONE

    @pytest.mark.asyncio
    async def test_oldest_finished_session_evicted(self) -> None:
        pipeline, _, _ = _pipeline()
        tracker = ProgressTracker()
        manager = ResolutionSessionManager(pipeline, tracker, max_sessions=2)

        for session_id in ("s1", "s2", "s3"):
            await manager.activate(session_id, [])

        assert manager.session_count == 2
        assert manager.get_state("s1") is None
        assert manager.get_state("s3") is not None
        assert tracker.get_status("s1")["phase"] == "IDLE"

    @pytest.mark.asyncio
    async def test_reactivation_refreshes_eviction_order(self) -> None:
        pipeline, _, _ = _pipeline()
        manager = ResolutionSessionManager(pipeline, ProgressTracker(), max_sessions=2)

        await manager.activate("s1", [])
        await manager.activate("s2", [])
        await manager.activate("s1", [])
        await manager.activate("s3", [])

        assert manager.get_state("s1") is not None
        assert manager.get_state("s2") is None

    @pytest.mark.asyncio
    async def test_running_sessions_are_never_evicted(self) -> None:
        gate = asyncio.Event()

        async def _blocked(name: str) -> ArtistOriginResult:
            await gate.wait()
            return _fetched(name, "US")

        pipeline, _, _ = _pipeline(resolve_uncached=AsyncMock(side_effect=_blocked))
        manager = ResolutionSessionManager(pipeline, ProgressTracker(), max_sessions=1)

        await manager.activate("running", [make_track("A")])
        await manager.activate("done", [])

        assert manager.session_count == 2
        assert manager.get_state("running") is not None

        gate.set()
        assert (await manager.wait("running")).phase == ResolutionPhase.DONE

    @pytest.mark.asyncio
    async def test_discard_cancels_and_forgets(self) -> None:
        gate = asyncio.Event()

        async def _blocked(name: str) -> ArtistOriginResult:
            await gate.wait()
            return _fetched(name, "US")

        pipeline, _, _ = _pipeline(resolve_uncached=AsyncMock(side_effect=_blocked))
        tracker = ProgressTracker()
        manager = ResolutionSessionManager(pipeline, tracker)
        await manager.activate("s", [make_track("A")])
        await asyncio.sleep(0)

        assert await manager.discard("s") is True

        assert manager.get_state("s") is None
        assert manager.session_count == 0
        assert tracker.get_status("s")["phase"] == "IDLE"
        assert await manager.discard("s") is False

    @pytest.mark.asyncio
    async def test_close_waits_for_cancelled_passes(self) -> None:
        gate = asyncio.Event()
        unwound: list[str] = []

        async def _blocked(name: str) -> ArtistOriginResult:
            try:
                await gate.wait()
            except asyncio.CancelledError:
                unwound.append(name)
                raise
            return _fetched(name, "US")

        pipeline, _, _ = _pipeline(resolve_uncached=AsyncMock(side_effect=_blocked))
        manager = ResolutionSessionManager(pipeline, ProgressTracker())
        await manager.activate("s", [make_track("A")])
        await asyncio.sleep(0)

        await manager.close()

        assert unwound == ["A"]
        assert manager.get_state("s").phase == ResolutionPhase.CANCELLED
