from fastapi import APIRouter, HTTPException, Query
from typing import Any

from hikepal.api.dependencies import CompanionDep
from hikepal.core.geofencing import validate_coordinates
from hikepal.models.geo import Coordinate

router = APIRouter()

@router.get("/snapshot")
async def get_snapshot(companion: CompanionDep) -> dict[str, Any]:
    return companion.snapshot()

@router.get("/annotations")
async def get_annotations(companion: CompanionDep) -> dict[str, Any]:
    store = companion.annotations
    return {
        "loaded": store.loaded,
        "facilities": [f.to_dict() for f in store.facilities()],
        "hazards": [h.to_dict() for h in store.hazards()]
    }

@router.post("/annotations/reload")
async def reload_annotations(companion: CompanionDep) -> dict[str, Any]:
    # LoadError is mapped to 503 by the app; the stale snapshot stays in place
    await companion.refresh_annotations(raise_errors=True)
    return {
        "message": "Annotations reloaded",
        "count": len(companion.annotations.current())
    }

@router.get("/hazards")
async def get_hazards_at(
    companion: CompanionDep,
    lat: float = Query(...),
    lng: float = Query(...),
    radius: float = Query(500, gt=0, le=10000)
) -> dict[str, Any]:
    validation = validate_coordinates(lat, lng)
    if not validation["valid"]:
        raise HTTPException(status_code=400, detail=validation["errors"])
    
    point = Coordinate(lat, lng)
    store = companion.annotations
    return {
        "inside": [h.to_dict() for h in store.hazards_at(point)],
        "nearby": [
            {**annotation.to_dict(), "distance": distance}
            for annotation, distance in store.nearby(point, radius)
        ]
    }
