from fastapi import APIRouter
from typing import Any

from hikepal.api.dependencies import CompanionDep
from hikepal.core.companion import Companion
from hikepal.models.geo import format_duration
from hikepal.models.session import SaveTrackRequest, SessionRead, WaypointRequest
from hikepal.models.track import TrackRead

router = APIRouter()

def _session_read(companion: Companion) -> SessionRead:
    session = companion.session
    recorder = companion.recorder
    draft = session.draft
    return SessionRead(
        state=session.state.value,
        elapsed_seconds=session.elapsed_seconds,
        duration=format_duration(session.elapsed_seconds),
        point_count=len(recorder.path),
        waypoint_count=len(recorder.waypoints),
        distance_meters=recorder.distance_meters() if recorder.active else 0.0,
        distance_method=recorder.distance_method.value,
        draft=draft.to_record() if draft else None
    )

@router.get("", response_model=SessionRead)
async def get_session(companion: CompanionDep) -> Any:
    return _session_read(companion)

@router.post("/start", response_model=SessionRead)
async def start_session(companion: CompanionDep) -> Any:
    companion.session.start()
    return _session_read(companion)

@router.post("/stop", response_model=SessionRead)
async def stop_session(companion: CompanionDep) -> Any:
    companion.session.stop()
    return _session_read(companion)

@router.post("/save", response_model=TrackRead)
async def save_session(companion: CompanionDep, request: SaveTrackRequest) -> Any:
    track = companion.session.save(request.name)
    return TrackRead.from_track(track, include_record=True)

@router.post("/discard", response_model=SessionRead)
async def discard_session(companion: CompanionDep) -> Any:
    companion.session.discard()
    return _session_read(companion)

@router.post("/waypoints")
async def add_waypoint(companion: CompanionDep, request: WaypointRequest) -> dict[str, Any]:
    waypoint = companion.session.add_waypoint(request.kind, request.note)
    return {
        "message": "Waypoint added",
        "waypoint": waypoint.to_record(),
        "waypoint_count": len(companion.recorder.waypoints)
    }
