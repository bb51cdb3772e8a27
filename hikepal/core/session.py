import logging
from enum import Enum
from typing import Callable, Optional, Protocol

from hikepal.core.errors import InvalidTransition, NotRecording
from hikepal.core.recorder import PathRecorder
from hikepal.core.ticker import PeriodicTicker
from hikepal.models.geo import Coordinate, Track, Waypoint, WaypointKind
from hikepal.utils.events import Observable

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    FINISHED = "finished"  # stopped, pending save or discard


class Ticker(Protocol):
    def start(self) -> None: ...
    def stop(self) -> None: ...


TickerFactory = Callable[[Callable[[], None]], Ticker]


class TrackSink(Protocol):
    """History/library collaborator receiving saved tracks"""
    def add(self, track: Track) -> None: ...


def default_ticker_factory(interval: float = 1.0) -> TickerFactory:
    def factory(callback: Callable[[], None]) -> Ticker:
        return PeriodicTicker("session-elapsed", interval, callback)
    return factory


class SessionController(Observable):
    """
    Idle -> Recording -> Finished -> (save | discard) -> Idle

    Owns the elapsed-time ticker of the current session. There is a single
    ticker handle; it is cancelled before any transition out of Recording
    returns, so a new session can never receive a previous session's ticks.
    """

    def __init__(
        self,
        recorder: PathRecorder,
        position_source: Callable[[], Coordinate],
        library: TrackSink,
        ticker_factory: Optional[TickerFactory] = None
    ):
        super().__init__()
        self.recorder = recorder
        self.position_source = position_source
        self.library = library
        self.ticker_factory = ticker_factory or default_ticker_factory()
        self._state = SessionState.IDLE
        self._ticker: Optional[Ticker] = None
        self._generation = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state == SessionState.RECORDING

    @property
    def elapsed_seconds(self) -> int:
        return self.recorder.elapsed_seconds

    @property
    def draft(self) -> Optional[Track]:
        """Unsaved preview of the current session, if any"""
        if self._state == SessionState.IDLE:
            return None
        return self.recorder.snapshot()

    def _require(self, action: str, *allowed: SessionState):
        if self._state not in allowed:
            raise InvalidTransition(action, self._state.value)

    # --- Transitions ---

    def start(self):
        self._require("start", SessionState.IDLE)
        seed = self.position_source()
        self.recorder.start(seed)
        self._generation += 1
        ticker = self.ticker_factory(self._elapsed_callback(self._generation))
        try:
            ticker.start()
        except Exception:
            self.recorder.clear()
            raise
        self._replace_ticker(ticker)
        self._state = SessionState.RECORDING
        self._emit("session.started", {"latitude": seed.latitude, "longitude": seed.longitude})

    def stop(self):
        self._require("stop", SessionState.RECORDING)
        self._replace_ticker(None)
        self.recorder.halt()
        self._state = SessionState.FINISHED
        self._emit("session.stopped", self._summary())

    def save(self, name: str) -> Track:
        self._require("save", SessionState.FINISHED)
        track = self.recorder.finish(name)
        self._state = SessionState.IDLE
        try:
            self.library.add(track)
        except Exception:
            # The track is still returned to the caller
            logger.exception(f"Track library rejected track {track.id}")
        self._emit("session.saved", {"track_id": track.id, "name": track.name})
        return track

    def discard(self):
        self._require("discard", SessionState.FINISHED)
        self.recorder.clear()
        self._state = SessionState.IDLE
        self._emit("session.discarded", {})

    # --- Recording-time operations ---

    def record_position(self, coordinate: Coordinate):
        """Feed one simulator tick into the recorder"""
        self._require("record position", SessionState.RECORDING)
        self.recorder.on_tick(coordinate)

    def add_waypoint(
        self,
        kind: WaypointKind,
        note: Optional[str] = None,
        position: Optional[Coordinate] = None
    ) -> Waypoint:
        if self._state != SessionState.RECORDING:
            raise NotRecording("add waypoint")
        return self.recorder.add_waypoint(kind, position or self.position_source(), note)

    def tick_elapsed(self):
        if self._state != SessionState.RECORDING:
            return
        elapsed = self.recorder.tick_elapsed()
        self._emit("session.elapsed", {"elapsed_seconds": elapsed})

    # --- Internals ---

    def _elapsed_callback(self, generation: int) -> Callable[[], None]:
        def on_tick():
            if generation != self._generation:
                logger.warning(f"Dropped stale elapsed tick from session {generation}")
                return
            self.tick_elapsed()
        return on_tick

    def _replace_ticker(self, ticker: Optional[Ticker]):
        previous, self._ticker = self._ticker, ticker
        if previous is not None:
            previous.stop()

    def _summary(self) -> dict:
        return {
            "elapsed_seconds": self.recorder.elapsed_seconds,
            "points": len(self.recorder.path),
            "waypoints": len(self.recorder.waypoints),
            "distance_meters": self.recorder.distance_meters(),
        }
