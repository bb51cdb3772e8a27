import logging
import random
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional

from hikepal.core.errors import TelemetryUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TelemetryReading:
    temperature_c: float = 24
    humidity_pct: float = 78
    altitude_m: int = 284
    heart_rate_bpm: int = 110
    battery_pct: float = 85
    calories: float = 320

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TelemetrySimulator:
    """
    Simulated wearable feeding ambient readings.

    ``advance`` drifts altitude, heart rate and calories once per elapsed
    second of a recording session.
    """

    def __init__(self, initial: Optional[TelemetryReading] = None, rng: Optional[random.Random] = None):
        self._reading = initial or TelemetryReading()
        self._rng = rng or random.Random()
        self.connected = True

    def read(self) -> TelemetryReading:
        if not self.connected:
            raise TelemetryUnavailable("Telemetry device disconnected")
        return self._reading

    def altitude(self) -> int:
        return self.read().altitude_m

    def advance(self) -> TelemetryReading:
        current = self._reading
        self._reading = replace(
            current,
            altitude_m=max(0, current.altitude_m + (1 if self._rng.random() > 0.5 else -1)),
            heart_rate_bpm=min(180, max(60, current.heart_rate_bpm + self._rng.randint(-2, 2))),
            calories=current.calories + 0.5,
        )
        return self._reading

    def set_connected(self, connected: bool):
        if connected != self.connected:
            logger.info(f"Telemetry device {'connected' if connected else 'disconnected'}")
        self.connected = connected
