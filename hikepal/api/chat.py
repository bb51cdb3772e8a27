from fastapi import APIRouter, Query
from typing import Any

from hikepal.api.dependencies import CompanionDep

router = APIRouter()

@router.get("/messages")
async def get_messages(
    companion: CompanionDep,
    limit: int = Query(50, ge=1, le=500)
) -> dict[str, Any]:
    messages = companion.chat.messages[-limit:]
    return {"messages": [m.to_dict() for m in messages]}
