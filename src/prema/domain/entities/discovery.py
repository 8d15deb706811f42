"""Discovery entities: browse pages, like/pass interactions and matches."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from prema.domain.entities.user import UserProfile, parse_timestamp


@dataclass
class BrowsePage:
    """One page of discovery candidates."""

    users: list[UserProfile] = field(default_factory=list)
    total: int = 0
    skip: int = 0
    limit: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BrowsePage":
        """Build a page from the backend JSON payload."""
        users = [UserProfile.from_dict(item) for item in data.get("users") or []]
        return cls(
            users=users,
            total=int(data.get("total") or 0),
            skip=int(data.get("skip") or 0),
            limit=int(data.get("limit") or 0),
        )


# Hey future me - is_match is THE flag of this whole app! When a like completes a pair
# (they liked us first), the backend sets it. Every caller of like_user() has to branch
# on it and show the match moment - never drop it on the floor.
@dataclass
class Interaction:
    """Result of a like or pass."""

    id: int
    user_id: int
    target_user_id: int
    interaction_type: str
    timestamp: datetime | None = None
    target_user_name: str = ""
    is_match: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Interaction":
        """Build an interaction record from the backend JSON payload."""
        return cls(
            id=int(data["id"]),
            user_id=int(data["user_id"]),
            target_user_id=int(data["target_user_id"]),
            interaction_type=data.get("interaction_type", ""),
            timestamp=parse_timestamp(data.get("timestamp")),
            target_user_name=data.get("target_user_name", ""),
            is_match=bool(data.get("is_match", False)),
        )


@dataclass
class Match:
    """A mutual match."""

    id: int
    name: str
    age: int
    bio: str | None = None
    photos: list[str] = field(default_factory=list)
    matched_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Match":
        """Build a match from the backend JSON payload."""
        return cls(
            id=int(data["id"]),
            name=data.get("name", ""),
            age=int(data.get("age") or 0),
            bio=data.get("bio"),
            photos=list(data.get("photos") or []),
            matched_at=parse_timestamp(data.get("matched_at")),
        )


@dataclass
class UnmatchResult:
    """Confirmation returned by the unmatch endpoint."""

    message: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UnmatchResult":
        """Build the confirmation from the backend JSON payload."""
        return cls(message=data.get("message", ""))
