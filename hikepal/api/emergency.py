from fastapi import APIRouter
from typing import Any

from hikepal.api.dependencies import CompanionDep

router = APIRouter()

@router.get("/sos")
async def get_sos(companion: CompanionDep) -> dict[str, Any]:
    alert = companion.safety.active_alert
    return {
        "active": alert is not None,
        "alert": alert.to_dict() if alert else None,
        "emergency_number": companion.safety.emergency_number
    }

@router.post("/sos")
async def trigger_sos(companion: CompanionDep) -> dict[str, Any]:
    alert = companion.safety.trigger()
    return {
        "message": "SOS active",
        "alert": alert.to_dict(),
        "emergency_number": companion.safety.emergency_number
    }

@router.post("/sos/notify")
async def notify_teammates(companion: CompanionDep) -> dict[str, Any]:
    message = companion.safety.notify_teammates()
    if message is None:
        return {"message": "No active SOS alert", "sent": False}
    
    last = companion.safety.last_alert
    return {
        "message": "Emergency alert sent to teammates",
        "sent": True,
        "chat_message": message.to_dict(),
        "alert": last.to_dict() if last else None
    }

@router.post("/sos/cancel")
async def cancel_sos(companion: CompanionDep) -> dict[str, Any]:
    was_active = companion.safety.active_alert is not None
    companion.safety.cancel()
    return {"message": "SOS cancelled" if was_active else "No active SOS alert", "cancelled": was_active}
