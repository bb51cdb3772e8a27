from fastapi import APIRouter, HTTPException
from typing import Any, List

from hikepal.api.dependencies import CompanionDep
from hikepal.models.track import TrackRead

router = APIRouter()

@router.get("", response_model=List[TrackRead])
async def list_tracks(companion: CompanionDep) -> Any:
    return [TrackRead.from_track(t) for t in reversed(companion.library.list())]

@router.get("/{track_id}", response_model=TrackRead)
async def get_track(companion: CompanionDep, track_id: str) -> Any:
    track = companion.library.get(track_id)
    if track is None:
        raise HTTPException(status_code=404, detail="Track not found")
    return TrackRead.from_track(track, include_record=True)
