import asyncio
import aiohttp
import itertools
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from hikepal.config import settings
from hikepal.utils.events import Observable

logger = logging.getLogger(__name__)

class MessageSender(str, Enum):
    USER = "user"
    AI = "ai"
    TEAMMATE = "teammate"

@dataclass(frozen=True)
class Message:
    id: str
    sender: MessageSender
    text: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    sender_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sender": self.sender.value,
            "sender_name": self.sender_name,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }

class ChatChannel(ABC):
    """Outbound messaging collaborator"""

    @abstractmethod
    def send(self, message: Message) -> Message:
        pass

class WebhookRelay:
    """Forward team chat messages to an external webhook"""

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    async def relay(self, message: Message) -> bool:
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.url, json=message.to_dict()) as response:
                    if response.status >= 400:
                        response_text = await response.text()
                        logger.error(f"Webhook relay error: {response.status} - {response_text}")
                        return False
                    return True

        except asyncio.TimeoutError:
            logger.error("Webhook relay timeout")
            return False
        except aiohttp.ClientError as e:
            logger.error(f"Webhook relay failed: {e}")
            return False

class TeamChat(ChatChannel, Observable):
    """
    In-memory team chat log.

    Every sent message is kept, published to subscribers as ``chat.message``
    and, when a relay is configured and an event loop is running, forwarded
    to the webhook in the background.
    """

    def __init__(self, relay: Optional[WebhookRelay] = None):
        Observable.__init__(self)
        self.relay = relay
        self._messages: List[Message] = []
        self._seq = itertools.count(1)
        self._pending: Set[asyncio.Task] = set()

    @property
    def messages(self) -> tuple:
        return tuple(self._messages)

    def send(self, message: Message) -> Message:
        self._messages.append(message)
        self._emit("chat.message", message.to_dict())
        self._schedule_relay(message)
        return message

    def post(
        self,
        sender: MessageSender,
        text: str,
        sender_name: Optional[str] = None
    ) -> Message:
        return self.send(Message(
            id=self._next_id(),
            sender=MessageSender(sender),
            text=text,
            sender_name=sender_name
        ))

    def notice(self, text: str) -> Message:
        """System notice shown to the user in the assistant thread"""
        logger.info(f"Notice: {text}")
        return self.post(MessageSender.AI, text)

    def _next_id(self) -> str:
        return f"{int(time.time() * 1000)}-{next(self._seq)}"

    def _schedule_relay(self, message: Message):
        if self.relay is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running loop, message {message.id} not relayed")
            return
        task = loop.create_task(self.relay.relay(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

def create_team_chat() -> TeamChat:
    relay = WebhookRelay(settings.TEAM_WEBHOOK_URL) if settings.TEAM_WEBHOOK_URL else None
    return TeamChat(relay=relay)
