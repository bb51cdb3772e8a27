from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def __post_init__(self):
        if not (-90 <= self.latitude <= 90):
            raise ValueError(f"Invalid latitude {self.latitude}: must be between -90 and 90")
        if not (-180 <= self.longitude <= 180):
            raise ValueError(f"Invalid longitude {self.longitude}: must be between -180 and 180")

    def offset(self, dlat: float, dlng: float) -> "Coordinate":
        """Shift by the given deltas, clamping latitude and wrapping longitude"""
        lat = max(-90.0, min(90.0, self.latitude + dlat))
        lng = (self.longitude + dlng + 180.0) % 360.0 - 180.0
        if lng == -180.0 and self.longitude + dlng > 0:
            lng = 180.0
        return Coordinate(lat, lng)

    def as_pair(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class Position:
    """A coordinate plus the time it was last advanced"""
    coordinate: Coordinate
    updated_at: datetime = field(default_factory=_utcnow)


class TeammateStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class Teammate:
    id: str
    display_name: str
    position: Coordinate
    status: TeammateStatus = TeammateStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "latitude": self.position.latitude,
            "longitude": self.position.longitude,
            "status": self.status.value,
        }


class WaypointKind(str, Enum):
    PHOTO = "photo"
    MARKER = "marker"


DEFAULT_WAYPOINT_NOTES = {
    WaypointKind.PHOTO: "Photo taken here",
    WaypointKind.MARKER: "Marked location",
}


@dataclass(frozen=True)
class Waypoint:
    id: str
    position: Coordinate
    kind: WaypointKind
    note: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "latitude": self.position.latitude,
            "longitude": self.position.longitude,
            "kind": self.kind.value,
            "note": self.note,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Waypoint":
        return cls(
            id=str(record["id"]),
            position=Coordinate(record["latitude"], record["longitude"]),
            kind=WaypointKind(record["kind"]),
            note=record.get("note"),
        )


# --- Annotations ---------------------------------------------------------

class FacilityType(str, Enum):
    WATER = "water"
    TOILET = "toilet"
    SHELTER = "shelter"
    MARKER = "marker"  # fallback for unrecognised source types


class HazardType(str, Enum):
    LANDSLIDE = "landslide"
    NO_SIGNAL = "no_signal"
    CLIFF = "cliff"
    OTHER = "other"


@dataclass(frozen=True)
class Facility:
    id: str
    position: Coordinate
    facility_type: FacilityType
    label: str

    kind = "facility"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "id": self.id,
            "latitude": self.position.latitude,
            "longitude": self.position.longitude,
            "facility_type": self.facility_type.value,
            "label": self.label,
        }


@dataclass(frozen=True)
class HazardZone:
    id: str
    position: Coordinate
    hazard_type: HazardType
    radius_meters: int
    message: str
    route_id: Optional[str] = None

    kind = "hazard"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "id": self.id,
            "latitude": self.position.latitude,
            "longitude": self.position.longitude,
            "hazard_type": self.hazard_type.value,
            "radius_meters": self.radius_meters,
            "message": self.message,
            "route_id": self.route_id,
        }


Annotation = Union[Facility, HazardZone]


# --- Tracks ---------------------------------------------------------------

class DistanceMethod(str, Enum):
    APPROXIMATE = "approximate"  # v1: point count x 5 m
    HAVERSINE = "haversine"      # v2: summed great-circle segments


def format_duration(seconds: int) -> str:
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"


@dataclass(frozen=True)
class Track:
    id: str
    name: str
    started_at: datetime
    ended_at: datetime
    path: Tuple[Coordinate, ...]
    waypoints: Tuple[Waypoint, ...]
    duration_seconds: int
    distance_meters: float
    distance_method: DistanceMethod = DistanceMethod.APPROXIMATE

    @property
    def duration_label(self) -> str:
        return format_duration(self.duration_seconds)

    @property
    def distance_label(self) -> str:
        return f"{self.distance_meters / 1000:.2f} km"

    def to_record(self) -> Dict[str, Any]:
        """Serialise to the persisted track layout"""
        return {
            "id": self.id,
            "name": self.name,
            "date": self.ended_at.isoformat(),
            "durationSeconds": self.duration_seconds,
            "distanceMeters": self.distance_meters,
            "path": [[c.latitude, c.longitude] for c in self.path],
            "waypoints": [wp.to_record() for wp in self.waypoints],
        }

    @classmethod
    def from_record(
        cls,
        record: Dict[str, Any],
        distance_method: DistanceMethod = DistanceMethod.APPROXIMATE
    ) -> "Track":
        date = datetime.fromisoformat(record["date"].replace("Z", "+00:00"))
        duration = int(record["durationSeconds"])
        return cls(
            id=str(record["id"]),
            name=record["name"],
            started_at=date - timedelta(seconds=duration),
            ended_at=date,
            path=tuple(Coordinate(lat, lng) for lat, lng in record["path"]),
            waypoints=tuple(Waypoint.from_record(wp) for wp in record["waypoints"]),
            duration_seconds=duration,
            distance_meters=float(record["distanceMeters"]),
            distance_method=distance_method,
        )


# --- Safety ---------------------------------------------------------------

class AlertStatus(str, Enum):
    ACTIVE = "active"
    NOTIFIED = "notified"
    CANCELLED = "cancelled"


@dataclass
class SafetyAlert:
    """SOS record. ``position``/``altitude_meters`` of None mean unknown."""
    triggered_at: datetime
    position: Optional[Coordinate]
    altitude_meters: Optional[int]
    acknowledged: bool = False
    status: AlertStatus = AlertStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == AlertStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "triggered_at": self.triggered_at.isoformat(),
            "latitude": self.position.latitude if self.position else None,
            "longitude": self.position.longitude if self.position else None,
            "altitude_meters": self.altitude_meters,
            "acknowledged": self.acknowledged,
            "status": self.status.value,
        }
