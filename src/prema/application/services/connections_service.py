"""Likes, matches and conversation lists.

Hey future me - these three are the small "list screens" of the app. They share one
shape: refresh() replaces the whole local list with what the server says, and
mutations remove entries locally after the server call succeeded. Nothing here polls;
the shell calls refresh() when the screen gains focus.
"""

import logging

from prema.application.services.discovery_feed import LikeOutcome
from prema.application.services.session_manager import SessionManager
from prema.domain.entities import ConversationSummary, Interaction, Match, UserProfile
from prema.infrastructure.integrations import PremaApiClient

logger = logging.getLogger(__name__)

UNREAD_BADGE_CAP = 99


def format_unread_badge(count: int) -> str | None:
    """Badge text for an unread counter: None for zero, "99+" above the cap."""
    if count <= 0:
        return None
    if count > UNREAD_BADGE_CAP:
        return f"{UNREAD_BADGE_CAP}+"
    return str(count)


class LikesInbox:
    """People who liked the current user and are waiting for an answer."""

    def __init__(self, client: PremaApiClient, session: SessionManager) -> None:
        self._client = client
        self._session = session
        self._users: list[UserProfile] = []

    @property
    def users(self) -> list[UserProfile]:
        return list(self._users)

    @property
    def count(self) -> int:
        return len(self._users)

    async def refresh(self) -> list[UserProfile]:
        """Reload the inbox.

        Raises:
            ApiError: Server detail or "Failed to get users who liked you"
        """
        ctx = self._session.require_request_context()
        self._users = await self._client.get_users_who_liked_me(ctx)
        return self.users

    def _remove(self, user_id: int) -> UserProfile | None:
        for user in self._users:
            if user.id == user_id:
                self._users = [u for u in self._users if u.id != user_id]
                return user
        return None

    async def like(self, user_id: int) -> LikeOutcome:
        """Like back. Since they already liked us this is normally a match.

        Raises:
            ApiError: Server detail or "Failed to like user" (entry kept)
        """
        ctx = self._session.require_request_context()
        interaction = await self._client.like_user(ctx, user_id)
        candidate = self._remove(user_id)
        outcome = LikeOutcome(interaction=interaction, candidate=candidate)
        if outcome.is_match:
            logger.info("Liked back user %s: it's a match", user_id)
        else:
            logger.info("Liked back user %s, no match reported", user_id)
        return outcome

    async def pass_user(self, user_id: int) -> Interaction:
        """Decline someone from the inbox.

        Raises:
            ApiError: Server detail or "Failed to pass user" (entry kept)
        """
        ctx = self._session.require_request_context()
        interaction = await self._client.pass_user(ctx, user_id)
        self._remove(user_id)
        return interaction


class MatchesBoard:
    """Mutual matches plus the "N people like you" teaser count."""

    def __init__(self, client: PremaApiClient, session: SessionManager) -> None:
        self._client = client
        self._session = session
        self._matches: list[Match] = []
        self._likes_count = 0

    @property
    def matches(self) -> list[Match]:
        return list(self._matches)

    @property
    def likes_count(self) -> int:
        return self._likes_count

    async def refresh(self) -> list[Match]:
        """Reload matches and, best-effort, the likes teaser count.

        Raises:
            ApiError: Server detail or "Failed to get matches"
        """
        ctx = self._session.require_request_context()
        await self._refresh_likes_count()
        self._matches = await self._client.get_matches(ctx)
        return self.matches

    # The teaser is decoration - on failure the previous count stays and we move on.
    async def _refresh_likes_count(self) -> None:
        ctx = self._session.require_request_context()
        try:
            likes = await self._client.get_users_who_liked_me(ctx)
        except Exception as e:
            logger.warning("Failed to load likes count: %s", e)
            return
        self._likes_count = len(likes)

    async def unmatch(self, user_id: int) -> str:
        """Unmatch someone and drop them from the local list.

        Returns:
            The server's confirmation message

        Raises:
            ApiError: Server detail or "Failed to unmatch user" (entry kept)
        """
        ctx = self._session.require_request_context()
        result = await self._client.unmatch_user(ctx, user_id)
        self._matches = [m for m in self._matches if m.id != user_id]
        logger.info("Unmatched user %s", user_id)
        return result.message


class ConversationList:
    """Conversation overview, most recent first (server order)."""

    def __init__(self, client: PremaApiClient, session: SessionManager) -> None:
        self._client = client
        self._session = session
        self._conversations: list[ConversationSummary] = []

    @property
    def conversations(self) -> list[ConversationSummary]:
        return list(self._conversations)

    @property
    def total_unread(self) -> int:
        return sum(c.unread_count for c in self._conversations)

    async def refresh(self) -> list[ConversationSummary]:
        """Reload the list.

        Raises:
            ApiError: Server detail or "Failed to get conversations"
        """
        ctx = self._session.require_request_context()
        self._conversations = await self._client.get_conversations(ctx)
        return self.conversations
