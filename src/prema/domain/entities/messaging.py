"""Messaging entities.

Messages and conversation summaries are ephemeral - fetched on demand, held only for
the lifetime of the screen that asked for them, and replaced wholesale on each fetch.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from prema.domain.entities.user import parse_timestamp


@dataclass
class Message:
    """A single 1:1 chat message."""

    id: int
    sender_id: int
    receiver_id: int
    content: str
    is_read: bool = False
    timestamp: datetime | None = None
    sender_name: str = ""
    receiver_name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        """Build a Message from the backend JSON payload."""
        return cls(
            id=int(data["id"]),
            sender_id=int(data["sender_id"]),
            receiver_id=int(data["receiver_id"]),
            content=data.get("content", ""),
            is_read=bool(data.get("is_read", False)),
            timestamp=parse_timestamp(data.get("timestamp")),
            sender_name=data.get("sender_name", ""),
            receiver_name=data.get("receiver_name", ""),
        )

    def is_unread_for(self, user_id: int) -> bool:
        """True if this message still needs a read receipt from user_id."""
        return not self.is_read and self.receiver_id == user_id


@dataclass
class ConversationSummary:
    """One row of the conversations list."""

    user_id: int
    user_name: str
    unread_count: int = 0
    last_message: str | None = None
    last_message_time: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationSummary":
        """Build a summary from the backend JSON payload."""
        return cls(
            user_id=int(data["user_id"]),
            user_name=data.get("user_name", ""),
            unread_count=int(data.get("unread_count") or 0),
            last_message=data.get("last_message"),
            last_message_time=parse_timestamp(data.get("last_message_time")),
        )
