from sqlmodel import SQLModel, Field, Column, DateTime, JSON
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from hikepal.models.geo import DistanceMethod, Track

class TrackRecord(SQLModel, table=True):
    """Persisted track, stored in the serialised track layout"""
    
    id: str = Field(primary_key=True)
    name: str
    date: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    duration_seconds: int
    distance_meters: float
    distance_method: str = DistanceMethod.APPROXIMATE.value
    path: List[List[float]] = Field(default_factory=list, sa_column=Column(JSON))
    waypoints: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))

    @classmethod
    def from_track(cls, track: Track) -> "TrackRecord":
        record = track.to_record()
        return cls(
            id=record["id"],
            name=record["name"],
            date=track.ended_at,
            duration_seconds=record["durationSeconds"],
            distance_meters=record["distanceMeters"],
            distance_method=track.distance_method.value,
            path=record["path"],
            waypoints=record["waypoints"],
        )

    def to_track(self) -> Track:
        # SQLite drops the offset; dates are always written in UTC
        date = self.date if self.date.tzinfo else self.date.replace(tzinfo=timezone.utc)
        return Track.from_record(
            {
                "id": self.id,
                "name": self.name,
                "date": date.isoformat(),
                "durationSeconds": self.duration_seconds,
                "distanceMeters": self.distance_meters,
                "path": self.path,
                "waypoints": self.waypoints,
            },
            distance_method=DistanceMethod(self.distance_method),
        )

class TrackRead(SQLModel):
    id: str
    name: str
    date: datetime
    duration: str
    distance: str
    duration_seconds: int
    distance_meters: float
    distance_method: str
    point_count: int
    waypoint_count: int
    record: Optional[Dict[str, Any]] = None

    @classmethod
    def from_track(cls, track: Track, include_record: bool = False) -> "TrackRead":
        return cls(
            id=track.id,
            name=track.name,
            date=track.ended_at,
            duration=track.duration_label,
            distance=track.distance_label,
            duration_seconds=track.duration_seconds,
            distance_meters=track.distance_meters,
            distance_method=track.distance_method.value,
            point_count=len(track.path),
            waypoint_count=len(track.waypoints),
            record=track.to_record() if include_record else None,
        )
