"""Tests for SessionController: the recording state machine and its timer.

The core invariant tested here: the elapsed-time ticker belongs to exactly
one session. Stopping cancels it before the call returns, and a callback from
an old session can never advance a new one.
"""

from __future__ import annotations

import pytest

from hikepal.core.errors import InvalidTransition, NotRecording
from hikepal.core.session import SessionController, SessionState, default_ticker_factory
from hikepal.models.geo import WaypointKind
from tests.conftest import START


@pytest.fixture
def controller(recorder, library, ticker_factory):
    return SessionController(
        recorder=recorder,
        position_source=lambda: START,
        library=library,
        ticker_factory=ticker_factory,
    )


class TestTransitions:
    def test_starts_idle(self, controller):
        assert controller.state == SessionState.IDLE
        assert controller.draft is None

    def test_start_seeds_recorder_and_starts_ticker(self, controller, ticker_factory, recorder):
        controller.start()
        assert controller.state == SessionState.RECORDING
        assert recorder.path == (START,)
        assert ticker_factory.current.running

    def test_stop_halts_ticker(self, controller, ticker_factory):
        controller.start()
        controller.stop()
        assert controller.state == SessionState.FINISHED
        assert ticker_factory.current.stopped
        assert controller.draft is not None

    def test_save_hands_track_to_library(self, controller, library):
        controller.start()
        controller.stop()
        track = controller.save("Evening Hike")
        assert controller.state == SessionState.IDLE
        assert library.list() == [track]

    def test_discard_drops_track(self, controller, library, recorder):
        controller.start()
        controller.stop()
        controller.discard()
        assert controller.state == SessionState.IDLE
        assert library.list() == []
        assert not recorder.active

    @pytest.mark.parametrize(
        "setup, action",
        [
            ([], "stop"),
            ([], "discard"),
            (["start"], "start"),
            (["start"], "discard"),
            (["start", "stop"], "start"),
            (["start", "stop"], "stop"),
        ],
    )
    def test_invalid_transitions_are_rejected(self, controller, setup, action):
        for step in setup:
            getattr(controller, step)()
        state_before = controller.state
        with pytest.raises(InvalidTransition):
            getattr(controller, action)()
        assert controller.state == state_before

    @pytest.mark.parametrize("setup", [[], ["start"]])
    def test_save_rejected_outside_finished(self, controller, library, setup):
        for step in setup:
            getattr(controller, step)()
        state_before = controller.state
        with pytest.raises(InvalidTransition):
            controller.save("Too early")
        assert controller.state == state_before
        assert library.list() == []

    def test_library_failure_does_not_lose_track(self, recorder, ticker_factory):
        class BrokenLibrary:
            def add(self, track):
                raise RuntimeError("disk full")

        controller = SessionController(recorder, lambda: START, BrokenLibrary(), ticker_factory)
        controller.start()
        controller.stop()
        track = controller.save("Kept")
        assert track.name == "Kept"
        assert controller.state == SessionState.IDLE

    def test_failed_ticker_start_leaves_session_idle(self, recorder, library):
        """Without a running event loop the real ticker cannot start."""
        controller = SessionController(
            recorder=recorder,
            position_source=lambda: START,
            library=library,
            ticker_factory=default_ticker_factory(1.0),
        )
        with pytest.raises(RuntimeError):
            controller.start()
        assert controller.state == SessionState.IDLE
        assert not recorder.active
        assert recorder.path == ()

    def test_start_retried_after_ticker_failure(self, recorder, library, ticker_factory):
        broken = True

        def factory(callback):
            ticker = ticker_factory(callback)
            if broken:
                def fail():
                    raise RuntimeError("no event loop")
                ticker.start = fail
            return ticker

        controller = SessionController(
            recorder=recorder,
            position_source=lambda: START,
            library=library,
            ticker_factory=factory,
        )
        with pytest.raises(RuntimeError):
            controller.start()
        broken = False
        controller.start()
        assert controller.state == SessionState.RECORDING
        assert ticker_factory.current.running
        ticker_factory.current.fire(2)
        assert controller.elapsed_seconds == 2


class TestElapsedTime:
    def test_elapsed_increments_per_tick(self, controller, ticker_factory):
        controller.start()
        for expected in range(1, 6):
            ticker_factory.current.fire()
            assert controller.elapsed_seconds == expected

    def test_elapsed_freezes_on_stop(self, controller, ticker_factory):
        controller.start()
        ticker_factory.current.fire(3)
        ticker = ticker_factory.current
        controller.stop()
        ticker.fire(5)
        controller.tick_elapsed()
        assert controller.elapsed_seconds == 3

    def test_one_ticker_per_session(self, controller, ticker_factory):
        controller.start()
        controller.stop()
        controller.discard()
        controller.start()
        assert len(ticker_factory.created) == 2
        assert ticker_factory.created[0].stopped
        assert ticker_factory.created[1].running

    def test_stale_ticker_callback_is_ignored(self, controller, ticker_factory):
        """A late callback from a previous session must not touch the new one."""
        controller.start()
        stale_callback = ticker_factory.created[0].callback
        controller.stop()
        controller.discard()
        controller.start()

        stale_callback()
        assert controller.elapsed_seconds == 0

        ticker_factory.current.fire()
        assert controller.elapsed_seconds == 1

    def test_elapsed_events_published(self, controller, ticker_factory):
        events = []
        controller.subscribe(events.append)
        controller.start()
        ticker_factory.current.fire(2)
        controller.stop()
        types = [e["type"] for e in events]
        assert types == ["session.started", "session.elapsed", "session.elapsed", "session.stopped"]
        assert events[-1]["data"]["elapsed_seconds"] == 2


class TestRecordingOperations:
    def test_record_position_requires_recording(self, controller):
        with pytest.raises(InvalidTransition):
            controller.record_position(START)

    def test_waypoint_uses_current_position(self, controller):
        controller.start()
        waypoint = controller.add_waypoint(WaypointKind.MARKER, "rockfall")
        assert waypoint.position == START
        assert waypoint.note == "rockfall"

    def test_waypoint_rejected_after_stop(self, controller):
        controller.start()
        controller.stop()
        with pytest.raises(NotRecording):
            controller.add_waypoint(WaypointKind.PHOTO)
