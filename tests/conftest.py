"""Shared fixtures for the Prema client tests."""

from collections.abc import Callable
from typing import Any

import pytest

from prema.config.settings import ApiSettings

BASE_URL = "https://api.prema.test"


@pytest.fixture
def api_settings() -> ApiSettings:
    """API settings pointing at a fake host."""
    return ApiSettings(base_url=BASE_URL, timeout=5.0)


@pytest.fixture
def user_payload() -> Callable[..., dict[str, Any]]:
    """Factory for /auth/me style payloads."""

    def _make(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": 1,
            "email": "asha@example.com",
            "name": "Asha",
            "age": 29,
            "gender": "female",
            "bio": "Chai and long walks",
            "seeking_gender": "male",
            "location_latitude": 19.076,
            "location_longitude": 72.8777,
            "photos": [],
            "preferences": None,
            "is_active": True,
            "created_at": "2025-01-05T10:00:00Z",
            "updated_at": None,
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture
def profile_payload() -> Callable[..., dict[str, Any]]:
    """Factory for discovery candidate payloads."""

    def _make(user_id: int, **overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": user_id,
            "name": f"Candidate {user_id}",
            "age": 30,
            "gender": "male",
            "bio": None,
            "photos": [f"/uploads/{user_id}.jpg"],
            "distance_km": 4.2,
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture
def interaction_payload() -> Callable[..., dict[str, Any]]:
    """Factory for like/pass responses."""

    def _make(target_user_id: int, is_match: bool = False, kind: str = "like") -> dict[str, Any]:
        return {
            "id": 500 + target_user_id,
            "user_id": 1,
            "target_user_id": target_user_id,
            "interaction_type": kind,
            "timestamp": "2025-02-01T12:00:00Z",
            "target_user_name": f"Candidate {target_user_id}",
            "is_match": is_match,
        }

    return _make


@pytest.fixture
def message_payload() -> Callable[..., dict[str, Any]]:
    """Factory for chat message payloads."""

    def _make(
        message_id: int,
        sender_id: int = 2,
        receiver_id: int = 1,
        is_read: bool = False,
        content: str = "hello",
    ) -> dict[str, Any]:
        return {
            "id": message_id,
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "content": content,
            "is_read": is_read,
            "timestamp": "2025-02-01T12:00:00Z",
            "sender_name": "Ravi" if sender_id == 2 else "Asha",
            "receiver_name": "Asha" if receiver_id == 1 else "Ravi",
        }

    return _make
