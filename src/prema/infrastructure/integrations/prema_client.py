"""Prema backend HTTP client.

Hey future me - this is the ONLY place that talks HTTP to the Prema backend. It is
stateless: no token, no cache, no retry. Authenticated calls take a RequestContext;
the shared connection pool never carries credentials.

Every method translates failures into ApiError with a display-ready message:
1. operation-specific status messages (only login uses one: 401)
2. the backend's structured "detail" field, verbatim
3. a static per-operation fallback string
Raw httpx exceptions never leave this module, and neither do the KeyError/TypeError of a
2xx body that doesn't have the expected shape.
"""

import logging
from collections.abc import Callable
from typing import Any

import httpx

from prema.config.settings import ApiSettings
from prema.domain.entities import (
    BrowsePage,
    ConversationSummary,
    Interaction,
    Match,
    Message,
    PhotoUpload,
    RegistrationData,
    UnmatchResult,
    User,
    UserProfile,
)
from prema.domain.exceptions import ApiError, ConfigurationError
from prema.domain.value_objects import BrowseFilters
from prema.infrastructure.integrations.http_pool import HttpClientPool
from prema.infrastructure.integrations.request_context import RequestContext

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
LOGIN_FAILED_MESSAGE = "Login failed. Please try again."

PayloadParser = Callable[[Any], Any]


def extract_error_detail(response: httpx.Response) -> str | None:
    """Pull the backend's human-readable error out of a failed response.

    FastAPI-style backends answer {"detail": "..."} for handled errors and
    {"detail": [{"msg": "...", ...}, ...]} for request validation errors.
    Returns None when there is nothing usable (HTML error pages, empty bodies).
    """
    try:
        body = response.json()
    except ValueError:
        return None

    if not isinstance(body, dict):
        return None

    detail = body.get("detail")
    if isinstance(detail, str) and detail.strip():
        return detail
    if isinstance(detail, list):
        messages = [
            str(item["msg"]) for item in detail if isinstance(item, dict) and item.get("msg")
        ]
        if messages:
            return "; ".join(messages)
    return None


def _list_of(build: Callable[[dict[str, Any]], Any]) -> PayloadParser:
    """Parser for endpoints that answer a JSON array; an empty body is an empty list."""

    def parse(data: Any) -> list[Any]:
        if not data:
            return []
        if not isinstance(data, list):
            raise TypeError(f"expected a list, got {type(data).__name__}")
        return [build(item) for item in data]

    return parse


class PremaApiClient:
    """HTTP client for the Prema REST API."""

    # Hey future me, like the other integration clients we DON'T create the HTTP client
    # in __init__. Tests inject an AsyncClient (ASGITransport / pytest-httpx); production
    # borrows the shared pool lazily in _get_client().
    def __init__(
        self,
        settings: ApiSettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the API client.

        Args:
            settings: Backend API settings
            http_client: Optional client to use instead of the shared pool

        Raises:
            ConfigurationError: If no base URL is configured
        """
        if not settings.base_url:
            raise ConfigurationError(
                "PREMA_API__BASE_URL is not configured. "
                "Set it to the backend URL, e.g. https://prema-dating-app.onrender.com"
            )
        self.settings = settings
        self._client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get the injected client or the shared pool client."""
        if self._client is not None:
            return self._client
        return await HttpClientPool.get_client(self.settings)

    # Hey future me - CENTRALIZED request + error translation! Every endpoint method goes
    # through here so the three-step message policy lives in exactly one place. We log the
    # failure with the real status/exception (for debugging) and raise ApiError with only
    # the display message (for the UI). "from e" keeps the httpx cause for tracebacks.
    async def _request(
        self,
        method: str,
        path: str,
        *,
        fallback: str,
        ctx: RequestContext | None = None,
        status_messages: dict[int, str] | None = None,
        parse: PayloadParser | None = None,
        **kwargs: Any,
    ) -> Any:
        """Perform one API call and return the decoded (and parsed) JSON body.

        Args:
            method: HTTP method
            path: Path below the base URL (leading slash)
            fallback: Display message when nothing better is known
            ctx: Credentials for authenticated endpoints
            status_messages: Status code -> display message overrides
            parse: Turns the decoded JSON into domain objects
            **kwargs: Passed through to httpx (params, json, data, files)

        Returns:
            parse(body) when a parser is given, else the decoded JSON ({} when empty)

        Raises:
            ApiError: On any transport, HTTP, decoding or payload-shape failure
        """
        client = await self._get_client()
        url = f"{self.settings.base_url}{path}"
        headers = ctx.headers if ctx is not None else {}

        try:
            response = await client.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            message = (status_messages or {}).get(status) or extract_error_detail(
                e.response
            )
            logger.warning(
                "%s %s failed with HTTP %d: %s", method, path, status, message or fallback
            )
            raise ApiError(message or fallback) from e
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s: %s", method, path, type(e).__name__, e)
            raise ApiError(fallback) from e

        data: Any = {}
        if response.content:
            try:
                data = response.json()
            except ValueError as e:
                logger.error("%s %s returned a non-JSON body", method, path)
                raise ApiError(fallback) from e

        if parse is None:
            return data
        try:
            return parse(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error(
                "%s %s returned an unexpected payload: %s: %s",
                method,
                path,
                type(e).__name__,
                e,
            )
            raise ApiError(fallback) from e

    # =========================================================================
    # AUTH
    # =========================================================================

    # Yo future me, login is form-encoded (OAuth2 password flow), NOT JSON - the backend
    # reads "username" (which is the email) and "password" as form fields. Send JSON and
    # you get a 422 with a confusing "field required" detail.
    async def login(self, email: str, password: str) -> str:
        """
        Exchange credentials for an access token.

        Args:
            email: Account email
            password: Account password

        Returns:
            The bearer access token

        Raises:
            ApiError: "Invalid email or password" on 401, server detail, or fallback
        """
        data = await self._request(
            "POST",
            "/auth/login",
            fallback=LOGIN_FAILED_MESSAGE,
            data={"username": email, "password": password},
            status_messages={401: INVALID_CREDENTIALS_MESSAGE},
        )
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            logger.error("Login response did not contain an access_token")
            raise ApiError(LOGIN_FAILED_MESSAGE)
        return str(token)

    async def register(self, registration: RegistrationData) -> User:
        """Create an account. Does NOT log in."""
        return await self._request(
            "POST",
            "/auth/register",
            fallback="Registration failed. Please try again.",
            json=registration.to_payload(),
            parse=User.from_dict,
        )

    async def get_current_user(
        self,
        ctx: RequestContext,
        fallback: str = "Failed to load your profile.",
        status_messages: dict[int, str] | None = None,
    ) -> User:
        """Fetch the account behind the context's token (also validates the token).

        Login and profile refresh pass their own fallback; login also maps 401 to
        the invalid-credentials message.
        """
        return await self._request(
            "GET",
            "/auth/me",
            ctx=ctx,
            fallback=fallback,
            status_messages=status_messages,
            parse=User.from_dict,
        )

    async def request_password_reset(self, email: str) -> None:
        """Ask the backend to email a password reset link."""
        await self._request(
            "POST",
            "/auth/forgot-password",
            fallback="Failed to send reset link",
            json={"email": email},
        )

    async def reset_password(self, token: str, new_password: str) -> None:
        """Set a new password using the token from the reset email."""
        await self._request(
            "POST",
            "/auth/reset-password",
            fallback="Failed to reset password. Please try again.",
            json={"token": token, "new_password": new_password},
        )

    # =========================================================================
    # PROFILE
    # =========================================================================

    async def update_profile(self, ctx: RequestContext, changes: dict[str, Any]) -> User:
        """Send a partial profile update and return the server's full user."""
        return await self._request(
            "PUT",
            "/users/profile",
            ctx=ctx,
            fallback="Update failed. Please try again.",
            json=changes,
            parse=User.from_dict,
        )

    async def register_push_token(self, ctx: RequestContext, push_token: str) -> None:
        """Register this device's push token for the logged-in user."""
        await self._request(
            "POST",
            "/users/push-token",
            ctx=ctx,
            fallback="Failed to register push token",
            data={"push_token": push_token},
        )

    async def upload_photo(
        self,
        ctx: RequestContext,
        filename: str,
        content: bytes,
        mime_type: str = "image/jpeg",
    ) -> PhotoUpload:
        """Upload one profile photo (multipart)."""
        return await self._request(
            "POST",
            "/users/photos/upload",
            ctx=ctx,
            fallback="Failed to upload photo",
            files={"file": (filename, content, mime_type)},
            parse=PhotoUpload.from_dict,
        )

    async def delete_photo(self, ctx: RequestContext, filename: str) -> None:
        """Delete one profile photo by its stored filename."""
        await self._request(
            "DELETE",
            f"/users/photos/{filename}",
            ctx=ctx,
            fallback="Failed to delete photo. Please try again.",
        )

    # =========================================================================
    # MESSAGING
    # =========================================================================

    async def send_message(
        self, ctx: RequestContext, receiver_id: int, content: str
    ) -> Message:
        """Send a chat message and return the created message."""
        return await self._request(
            "POST",
            "/messages/send",
            ctx=ctx,
            fallback="Failed to send message",
            json={"receiver_id": receiver_id, "content": content},
            parse=Message.from_dict,
        )

    async def get_conversations(self, ctx: RequestContext) -> list[ConversationSummary]:
        """List conversations in server order (most recent first)."""
        return await self._request(
            "GET",
            "/messages/conversations",
            ctx=ctx,
            fallback="Failed to get conversations",
            parse=_list_of(ConversationSummary.from_dict),
        )

    async def get_messages_with_user(
        self, ctx: RequestContext, user_id: int
    ) -> list[Message]:
        """Fetch the full thread with one user, oldest first."""
        return await self._request(
            "GET",
            f"/messages/conversation/{user_id}",
            ctx=ctx,
            fallback="Failed to get messages",
            parse=_list_of(Message.from_dict),
        )

    # Hey future me - the backend treats this as idempotent: marking an already-read
    # message returns it unchanged with 200. Pollers call this on every cycle for
    # anything still unread, so a double mark is NORMAL, not an error.
    async def mark_message_as_read(self, ctx: RequestContext, message_id: int) -> Message:
        """Mark a received message as read and return it."""
        return await self._request(
            "PUT",
            f"/messages/{message_id}/read",
            ctx=ctx,
            fallback="Failed to mark message as read",
            parse=Message.from_dict,
        )

    # =========================================================================
    # DISCOVERY
    # =========================================================================

    async def browse_users(
        self, ctx: RequestContext, filters: BrowseFilters | None = None
    ) -> BrowsePage:
        """Fetch one page of discovery candidates.

        Sentinel filter values (min age 18, max age 80, distance >= 125 miles) are
        left out of the query - see BrowseFilters.to_query_params().
        """
        params = (filters or BrowseFilters()).to_query_params()
        return await self._request(
            "GET",
            "/discovery/browse",
            ctx=ctx,
            fallback="Failed to browse users",
            params=params,
            parse=BrowsePage.from_dict,
        )

    async def like_user(self, ctx: RequestContext, user_id: int) -> Interaction:
        """Like a candidate. Check is_match on the result!"""
        return await self._request(
            "POST",
            f"/discovery/like/{user_id}",
            ctx=ctx,
            fallback="Failed to like user",
            parse=Interaction.from_dict,
        )

    async def pass_user(self, ctx: RequestContext, user_id: int) -> Interaction:
        """Pass on a candidate."""
        return await self._request(
            "POST",
            f"/discovery/pass/{user_id}",
            ctx=ctx,
            fallback="Failed to pass user",
            parse=Interaction.from_dict,
        )

    async def get_users_who_liked_me(self, ctx: RequestContext) -> list[UserProfile]:
        """Everyone who liked the current user and is still waiting (no pagination)."""
        return await self._request(
            "GET",
            "/discovery/likes",
            ctx=ctx,
            fallback="Failed to get users who liked you",
            parse=_list_of(UserProfile.from_dict),
        )

    async def get_matches(self, ctx: RequestContext) -> list[Match]:
        """All mutual matches."""
        return await self._request(
            "GET",
            "/discovery/matches",
            ctx=ctx,
            fallback="Failed to get matches",
            parse=_list_of(Match.from_dict),
        )

    async def unmatch_user(self, ctx: RequestContext, user_id: int) -> UnmatchResult:
        """Remove a match (the backend removes it for both sides)."""
        return await self._request(
            "DELETE",
            f"/discovery/matches/{user_id}",
            ctx=ctx,
            fallback="Failed to unmatch user",
            parse=UnmatchResult.from_dict,
        )
