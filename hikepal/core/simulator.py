import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Tuple

from hikepal.utils.events import Observable
from hikepal.models.geo import Coordinate, Position, Teammate

logger = logging.getLogger(__name__)

# Dragon's Back demo roster
DEFAULT_ROSTER: Tuple[Teammate, ...] = (
    Teammate("t1", "Alice", Coordinate(22.228, 114.242)),
    Teammate("t2", "Bob", Coordinate(22.227, 114.2415)),
)

# User walk: biased slightly north-east
USER_STEP = 0.0001
USER_LAT_BIAS = 0.3
USER_LNG_BIAS = 0.4

# Teammates: unbiased walk
TEAMMATE_STEP = 0.00015


@dataclass(frozen=True)
class SimulatorSnapshot:
    user: Position
    teammates: Tuple[Teammate, ...]
    tick: int

    def to_dict(self) -> Dict:
        return {
            "tick": self.tick,
            "user": {
                **self.user.coordinate.to_dict(),
                "updated_at": self.user.updated_at.isoformat(),
            },
            "teammates": [t.to_dict() for t in self.teammates],
        }


class PositionSimulator(Observable):
    """
    Stand-in for a positioning sensor.

    Owns the user position and the teammate set. Only ``tick`` advances them;
    everything handed out is an immutable snapshot.
    """

    def __init__(
        self,
        start: Coordinate,
        roster: Iterable[Teammate] = DEFAULT_ROSTER,
        rng: Optional[random.Random] = None
    ):
        super().__init__()
        self._rng = rng or random.Random()
        self._user = Position(start)
        self._teammates: Dict[str, Teammate] = {}
        for teammate in roster:
            if teammate.id in self._teammates:
                raise ValueError(f"Duplicate teammate id {teammate.id}")
            self._teammates[teammate.id] = teammate
        self._tick = 0

    @property
    def user_position(self) -> Coordinate:
        return self._user.coordinate

    @property
    def user(self) -> Position:
        return self._user

    @property
    def teammates(self) -> Tuple[Teammate, ...]:
        return tuple(self._teammates.values())

    @property
    def tick_count(self) -> int:
        return self._tick

    def snapshot(self) -> SimulatorSnapshot:
        return SimulatorSnapshot(self._user, self.teammates, self._tick)

    def tick(self, recording: bool) -> SimulatorSnapshot:
        """
        Advance one simulation step.

        The user only moves while recording; teammates always move. A failure
        in the user step is logged and does not stop the teammates.
        """
        self._tick += 1
        now = datetime.now(timezone.utc)

        if recording:
            try:
                self._user = Position(self._step_user(self._user.coordinate), now)
            except Exception:
                logger.exception("User position step failed")

        self._teammates = {
            teammate_id: self._step_teammate(teammate)
            for teammate_id, teammate in self._teammates.items()
        }

        snapshot = self.snapshot()
        self._emit("positions.updated", snapshot.to_dict())
        return snapshot

    def _step_user(self, current: Coordinate) -> Coordinate:
        dlat = (self._rng.random() - USER_LAT_BIAS) * USER_STEP
        dlng = (self._rng.random() - USER_LNG_BIAS) * USER_STEP
        return current.offset(dlat, dlng)

    def _step_teammate(self, teammate: Teammate) -> Teammate:
        dlat = (self._rng.random() - 0.5) * TEAMMATE_STEP
        dlng = (self._rng.random() - 0.5) * TEAMMATE_STEP
        return Teammate(
            id=teammate.id,
            display_name=teammate.display_name,
            position=teammate.position.offset(dlat, dlng),
            status=teammate.status,
        )

