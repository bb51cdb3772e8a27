import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from hikepal.models.geo import AlertStatus, Coordinate, SafetyAlert
from hikepal.utils.events import Observable
from hikepal.utils.notifications import ChatChannel, Message, MessageSender

logger = logging.getLogger(__name__)


class AltitudeSource(Protocol):
    def altitude(self) -> int: ...


class SafetyController(Observable):
    """
    SOS overlay, independent of the recording session.

    Reads position and altitude but never changes them. Safety paths degrade
    instead of failing: anything unreadable is stored as unknown (None).
    """

    def __init__(
        self,
        position_source: Callable[[], Optional[Coordinate]],
        telemetry: AltitudeSource,
        chat: ChatChannel,
        emergency_number: str = "999"
    ):
        super().__init__()
        self.position_source = position_source
        self.telemetry = telemetry
        self.chat = chat
        self.emergency_number = emergency_number
        self._active: Optional[SafetyAlert] = None
        self.last_alert: Optional[SafetyAlert] = None

    @property
    def active_alert(self) -> Optional[SafetyAlert]:
        return self._active

    def trigger(self) -> SafetyAlert:
        if self._active is not None:
            return self._active

        alert = SafetyAlert(
            triggered_at=datetime.now(timezone.utc),
            position=self._read_position(),
            altitude_meters=self._read_altitude(),
        )
        self._active = alert
        self.last_alert = alert
        logger.warning(f"SOS triggered: {format_sos_message(alert.position, alert.altitude_meters)}")
        self._emit("sos.triggered", self._payload(alert))
        return alert

    def notify_teammates(self) -> Optional[Message]:
        alert = self._active
        if alert is None:
            logger.warning("SOS notify requested with no active alert")
            return None

        # Report where the user is now, not where they were at trigger time
        position = self._read_position()
        altitude = self._read_altitude()
        message = self.chat.send(Message(
            id=f"sos-{int(datetime.now(timezone.utc).timestamp() * 1000)}",
            sender=MessageSender.USER,
            text=format_sos_message(position, altitude),
        ))

        alert.acknowledged = True
        alert.status = AlertStatus.NOTIFIED
        self._active = None
        logger.warning(f"SOS sent to team: {message.text}")
        self._emit("sos.notified", self._payload(alert))
        return message

    def cancel(self):
        alert = self._active
        if alert is None:
            return
        alert.status = AlertStatus.CANCELLED
        self._active = None
        logger.info("SOS cancelled")
        self._emit("sos.cancelled", self._payload(alert))

    def _read_position(self) -> Optional[Coordinate]:
        try:
            return self.position_source()
        except Exception as e:
            logger.error(f"Position unavailable for SOS: {e}")
            return None

    def _read_altitude(self) -> Optional[int]:
        try:
            return self.telemetry.altitude()
        except Exception as e:
            logger.error(f"Altitude unavailable for SOS: {e}")
            return None

    def _payload(self, alert: SafetyAlert) -> dict:
        return {**alert.to_dict(), "emergency_number": self.emergency_number}


def format_sos_message(position: Optional[Coordinate], altitude: Optional[int]) -> str:
    where = (
        f"{position.latitude:.5f}, {position.longitude:.5f}"
        if position is not None else "unknown position"
    )
    height = f"{altitude}m" if altitude is not None else "unknown"
    return f"🚨 SOS! Emergency at {where}. Altitude: {height}."
