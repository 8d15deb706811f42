"""User and candidate profile entities."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp from the backend.

    Returns None for missing or unparseable values instead of raising - the backend
    owns the format and a bad timestamp must never break a screen.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _as_float(value: Any) -> float | None:
    return float(value) if value is not None else None


# Hey future me, User is the LOGGED-IN account (what /auth/me returns). Only the
# SessionManager holds one - screens read it but mutate it through session methods
# so the in-memory copy and the backend never drift apart.
@dataclass
class User:
    """The authenticated user's account and profile."""

    id: int
    email: str
    name: str
    age: int
    gender: str
    is_active: bool = True
    bio: str | None = None
    seeking_gender: str | None = None
    location_latitude: float | None = None
    location_longitude: float | None = None
    photos: list[str] = field(default_factory=list)
    preferences: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        """Build a User from the backend JSON payload."""
        return cls(
            id=int(data["id"]),
            email=data.get("email", ""),
            name=data.get("name", ""),
            age=int(data.get("age") or 0),
            gender=data.get("gender", ""),
            is_active=bool(data.get("is_active", True)),
            bio=data.get("bio"),
            seeking_gender=data.get("seeking_gender"),
            location_latitude=_as_float(data.get("location_latitude")),
            location_longitude=_as_float(data.get("location_longitude")),
            photos=list(data.get("photos") or []),
            preferences=data.get("preferences"),
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
        )

    def with_photos(self, photos: list[str]) -> "User":
        """Return a copy with a replaced photo list."""
        values = asdict(self)
        values["photos"] = list(photos)
        return User(**values)


@dataclass
class UserProfile:
    """A candidate profile as shown in discovery, likes and profile views."""

    id: int
    name: str
    age: int
    gender: str = ""
    bio: str | None = None
    location_latitude: float | None = None
    location_longitude: float | None = None
    photos: list[str] = field(default_factory=list)
    distance_km: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserProfile":
        """Build a candidate from the backend JSON payload."""
        return cls(
            id=int(data["id"]),
            name=data.get("name", ""),
            age=int(data.get("age") or 0),
            gender=data.get("gender", ""),
            bio=data.get("bio"),
            location_latitude=_as_float(data.get("location_latitude")),
            location_longitude=_as_float(data.get("location_longitude")),
            photos=list(data.get("photos") or []),
            distance_km=_as_float(data.get("distance_km")),
        )


@dataclass
class PhotoUpload:
    """Response of the photo upload endpoint.

    Hey future me - the backend has answered in two shapes over time: the full fresh
    photo list ({"photos": [...]}) or just the new URL ({"url": "..."}). Keep both and
    let merged_into() decide.
    """

    photos: list[str] | None = None
    url: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PhotoUpload":
        """Build the upload result from the backend JSON payload."""
        photos = data.get("photos")
        return cls(
            photos=list(photos) if isinstance(photos, list) else None,
            url=data.get("url"),
        )

    def merged_into(self, current: list[str]) -> list[str]:
        """Photo list after this upload, given the list before it."""
        if self.photos is not None:
            return list(self.photos)
        if self.url:
            return [*current, self.url]
        return list(current)


@dataclass
class RegistrationData:
    """Sign-up form contents.

    email and password are reused verbatim for the automatic login after the account
    is created.
    """

    email: str
    password: str
    name: str
    age: int
    gender: str
    bio: str | None = None
    seeking_gender: str | None = None
    location_latitude: float | None = None
    location_longitude: float | None = None
    photos: list[str] | None = None
    preferences: dict[str, Any] | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON body for POST /auth/register (unset optionals left out)."""
        return {key: value for key, value in asdict(self).items() if value is not None}
