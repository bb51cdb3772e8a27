import logging
from typing import Any, Dict, Optional

from hikepal.config import Settings, settings as default_settings
from hikepal.core.annotations import AnnotationSource, AnnotationStore, SupabaseAnnotationSource
from hikepal.core.emergency_alert import SafetyController
from hikepal.core.errors import LoadError, SourceUnreachable
from hikepal.core.history import TrackLibrary
from hikepal.core.recorder import PathRecorder
from hikepal.core.session import SessionController, TickerFactory, default_ticker_factory
from hikepal.core.simulator import PositionSimulator
from hikepal.core.telemetry import TelemetrySimulator
from hikepal.core.ticker import PeriodicTicker
from hikepal.models.geo import Coordinate, DistanceMethod
from hikepal.utils.events import Listener, Observable
from hikepal.utils.notifications import TeamChat, create_team_chat

logger = logging.getLogger(__name__)


class Companion:
    """
    Owns one instance of every core component and wires them together.

    The simulator tick is the only place the user's position is advanced and
    the only caller of ``SessionController.record_position``; the position is
    applied first so the recorded path never lags the rendered one.
    """

    def __init__(
        self,
        config: Settings = default_settings,
        simulator: Optional[PositionSimulator] = None,
        telemetry: Optional[TelemetrySimulator] = None,
        source: Optional[AnnotationSource] = None,
        library: Optional[TrackLibrary] = None,
        chat: Optional[TeamChat] = None,
        session_ticker_factory: Optional[TickerFactory] = None
    ):
        self.config = config
        self.simulator = simulator or PositionSimulator(
            Coordinate(config.USER_START_LAT, config.USER_START_LNG)
        )
        self.telemetry = telemetry or TelemetrySimulator()
        self.annotations = AnnotationStore(source or SupabaseAnnotationSource())
        self.library = library if library is not None else TrackLibrary()
        self.chat = chat if chat is not None else create_team_chat()
        self.recorder = PathRecorder(DistanceMethod(config.DISTANCE_METHOD))
        self.session = SessionController(
            recorder=self.recorder,
            position_source=lambda: self.simulator.user_position,
            library=self.library,
            ticker_factory=session_ticker_factory or default_ticker_factory(config.TICK_INTERVAL_SECONDS),
        )
        self.safety = SafetyController(
            position_source=lambda: self.simulator.user_position,
            telemetry=self.telemetry,
            chat=self.chat,
            emergency_number=config.EMERGENCY_NUMBER,
        )
        self.simulator_ticker = PeriodicTicker("simulator", config.TICK_INTERVAL_SECONDS, self.tick)
        self._last_load_error: Optional[str] = None

        # Ambient readings drift with session time, as on the wearable
        self.session.subscribe(self._on_session_event)

    # --- Lifecycle ---

    def start(self):
        self.simulator_ticker.start()
        logger.info("Companion simulation started")

    def shutdown(self):
        self.simulator_ticker.stop()
        if self.session.is_recording:
            self.session.stop()
        logger.info("Companion simulation stopped")

    # --- Tick handling ---

    def tick(self):
        recording = self.session.is_recording
        snapshot = self.simulator.tick(recording=recording)
        if recording:
            try:
                self.session.record_position(snapshot.user.coordinate)
            except Exception:
                logger.exception("Recording tick failed")

    def _on_session_event(self, event: Dict[str, Any]):
        if event["type"] == "session.elapsed":
            self.telemetry.advance()

    # --- Annotations ---

    async def refresh_annotations(self, raise_errors: bool = False) -> bool:
        """
        Reload annotations, posting a notice to the user on failure.

        The same failure kind is reported once until a load succeeds. With
        ``raise_errors`` the LoadError is re-raised after the notice.
        """
        try:
            annotations = await self.annotations.load()
        except LoadError as e:
            logger.error(f"Annotation load failed: {e}")
            if self._last_load_error != e.kind:
                self._last_load_error = e.kind
                self.chat.notice(self._load_error_notice(e))
            if raise_errors:
                raise
            return False

        self._last_load_error = None
        facilities = len(self.annotations.facilities())
        hazards = len(self.annotations.hazards())
        if annotations:
            self.chat.notice(
                f"✅ Data Sync Successful! Loaded {facilities} facilities "
                f"and {hazards} risk zones."
            )
        else:
            self.chat.notice("Connected to database, but no points found.")
        return True

    def _load_error_notice(self, error: LoadError) -> str:
        if isinstance(error, SourceUnreachable):
            return (
                "⚠️ Trail data is unavailable right now. Facilities and risk zones "
                "may be missing or out of date."
            )
        return "Error reading trail data. Please check the annotation source settings."

    # --- Read-only views for the map projection ---

    def subscribe(self, listener: Listener):
        """Subscribe to every state-change event of the core"""
        observables: list[Observable] = [self.simulator, self.session, self.safety, self.chat]
        unsubscribers = [o.subscribe(listener) for o in observables]

        def unsubscribe():
            for fn in unsubscribers:
                fn()

        return unsubscribe

    def snapshot(self) -> Dict[str, Any]:
        positions = self.simulator.snapshot()
        alert = self.safety.active_alert
        return {
            **positions.to_dict(),
            "session": {
                "state": self.session.state.value,
                "elapsed_seconds": self.session.elapsed_seconds,
                "path": [list(c.as_pair()) for c in self.recorder.path],
                "waypoints": [wp.to_record() for wp in self.recorder.waypoints],
            },
            "sos": alert.to_dict() if alert else None,
        }
