import itertools
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from hikepal.core.errors import NotRecording
from hikepal.core.geofencing import path_length_meters
from hikepal.models.geo import (
    DEFAULT_WAYPOINT_NOTES,
    Coordinate,
    DistanceMethod,
    Track,
    Waypoint,
    WaypointKind,
)

logger = logging.getLogger(__name__)

# v1 path-length proxy: each recorded point counts as 5 m (0.005 km)
APPROXIMATE_METERS_PER_POINT = 5.0


class PathRecorder:
    """
    Mutable path/waypoint/elapsed-time aggregate for one recording session.

    ``active`` means a session exists (started, not yet finished or cleared).
    ``capturing`` means it still accepts ticks and waypoints; ``halt`` freezes
    it for review before ``finish``.
    """

    def __init__(self, distance_method: DistanceMethod = DistanceMethod.APPROXIMATE):
        self.distance_method = distance_method
        self._path: List[Coordinate] = []
        self._waypoints: List[Waypoint] = []
        self._elapsed = 0
        self._started_at: Optional[datetime] = None
        self._active = False
        self._capturing = False
        self._seq = itertools.count(1)

    @property
    def active(self) -> bool:
        return self._active

    @property
    def capturing(self) -> bool:
        return self._capturing

    @property
    def path(self) -> tuple:
        return tuple(self._path)

    @property
    def waypoints(self) -> tuple:
        return tuple(self._waypoints)

    @property
    def elapsed_seconds(self) -> int:
        return self._elapsed

    def start(self, seed: Coordinate):
        self._path = [seed]
        self._waypoints = []
        self._elapsed = 0
        self._started_at = datetime.now(timezone.utc)
        self._active = True
        self._capturing = True
        logger.info(f"Recording started at {seed.latitude:.5f}, {seed.longitude:.5f}")

    def on_tick(self, position: Coordinate):
        if not self._capturing:
            raise NotRecording("append position")
        self._path.append(position)

    def tick_elapsed(self) -> int:
        if not self._capturing:
            raise NotRecording("advance elapsed time")
        self._elapsed += 1
        return self._elapsed

    def add_waypoint(
        self,
        kind: WaypointKind,
        position: Coordinate,
        note: Optional[str] = None
    ) -> Waypoint:
        if not self._capturing:
            raise NotRecording("add waypoint")
        kind = WaypointKind(kind)
        waypoint = Waypoint(
            id=self._next_waypoint_id(),
            position=position,
            kind=kind,
            note=note if note is not None else DEFAULT_WAYPOINT_NOTES[kind],
        )
        self._waypoints.append(waypoint)
        return waypoint

    def halt(self):
        """Stop accepting ticks and waypoints; the draft stays available"""
        self._capturing = False

    def distance_meters(self, method: Optional[DistanceMethod] = None) -> float:
        """
        Recorded distance.

        APPROXIMATE (v1) is the legacy proxy ``len(path) * 5 m`` and is NOT a
        real distance. HAVERSINE (v2) sums great-circle segments. The two
        differ numerically; tracks record which one produced their summary.
        """
        method = DistanceMethod(method or self.distance_method)
        if method == DistanceMethod.HAVERSINE:
            return path_length_meters(self._path)
        return len(self._path) * APPROXIMATE_METERS_PER_POINT

    def snapshot(self, name: str = "") -> Track:
        if not self._active:
            raise NotRecording("snapshot track")
        return Track(
            id=str(uuid.uuid4()),
            name=name,
            started_at=self._started_at,
            ended_at=datetime.now(timezone.utc),
            path=tuple(self._path),
            waypoints=tuple(self._waypoints),
            duration_seconds=self._elapsed,
            distance_meters=self.distance_meters(),
            distance_method=self.distance_method,
        )

    def finish(self, name: str = "") -> Track:
        if not self._active:
            raise NotRecording("finish")
        track = self.snapshot(name)
        self.clear()
        logger.info(
            f"Recording finished: {len(track.path)} points, "
            f"{len(track.waypoints)} waypoints, {track.duration_label}"
        )
        return track

    def clear(self):
        self._path = []
        self._waypoints = []
        self._elapsed = 0
        self._started_at = None
        self._active = False
        self._capturing = False

    def _next_waypoint_id(self) -> str:
        # Millisecond timestamp plus sequence keeps ids unique and time-ordered
        return f"wp-{int(time.time() * 1000):013d}-{next(self._seq):04d}"
