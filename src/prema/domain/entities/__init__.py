"""Domain entities."""

from prema.domain.entities.discovery import (
    BrowsePage,
    Interaction,
    Match,
    UnmatchResult,
)
from prema.domain.entities.messaging import ConversationSummary, Message
from prema.domain.entities.session import SessionState
from prema.domain.entities.user import (
    PhotoUpload,
    RegistrationData,
    User,
    UserProfile,
    parse_timestamp,
)

__all__ = [
    "BrowsePage",
    "ConversationSummary",
    "Interaction",
    "Match",
    "Message",
    "PhotoUpload",
    "RegistrationData",
    "SessionState",
    "UnmatchResult",
    "User",
    "UserProfile",
    "parse_timestamp",
]
