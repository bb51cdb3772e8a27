from sqlmodel import SQLModel, Field
from typing import Any, Dict, Optional

from hikepal.models.geo import WaypointKind

class SaveTrackRequest(SQLModel):
    name: str = Field(default="My Hike", min_length=1, max_length=120)

class WaypointRequest(SQLModel):
    kind: WaypointKind = WaypointKind.MARKER
    note: Optional[str] = Field(default=None, max_length=500)

class SessionRead(SQLModel):
    state: str
    elapsed_seconds: int
    duration: str
    point_count: int
    waypoint_count: int
    distance_meters: float
    distance_method: str
    draft: Optional[Dict[str, Any]] = None
