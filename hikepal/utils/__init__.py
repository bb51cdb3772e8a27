"""
Utility modules for the HikePal companion

This package contains collaborator services:
- notifications: team chat log and webhook relay
"""

from .notifications import (
    ChatChannel,
    Message,
    MessageSender,
    TeamChat,
    WebhookRelay,
    create_team_chat
)

__all__ = [
    "ChatChannel",
    "Message",
    "MessageSender",
    "TeamChat",
    "WebhookRelay",
    "create_team_chat"
]
