"""Conversation poller - keeps an open chat fresh.

Hey future me - there is NO push channel for chat messages. While a chat is open this
worker re-fetches the whole thread every `poll_interval` seconds (3s by default) and
REPLACES the local list with the server's. No merging, no diffing: the server is the
truth and a thread is small.

After every fetch, messages that are addressed to the current user and still unread
get marked as read, one request each. That loop is best-effort: one failing mark is
logged and the rest still get their turn. A mark that races with the next poll just
marks an already-read message again, which the backend treats as a no-op.

Usage:
    async with ConversationPoller(client, session, partner_id=42) as poller:
        await poller.send("hi!")
        ...  # poller.messages is refreshed in the background
"""

import asyncio
import logging
from types import TracebackType

from prema.application.services.session_manager import SessionManager
from prema.domain.entities import Message
from prema.domain.exceptions import ApiError
from prema.infrastructure.integrations import PremaApiClient, RequestContext
from prema.infrastructure.observability import set_correlation_id

logger = logging.getLogger(__name__)


class ConversationPoller:
    """Polls one 1:1 conversation while it is open."""

    def __init__(
        self,
        client: PremaApiClient,
        session: SessionManager,
        partner_id: int,
        poll_interval: float = 3.0,
    ) -> None:
        """Initialize the poller.

        Args:
            client: Backend API client
            session: Session providing credentials and the current user
            partner_id: The other participant of the conversation
            poll_interval: Seconds between refreshes
        """
        self._client = client
        self._session = session
        self._partner_id = partner_id
        self._poll_interval = poll_interval

        self._messages: list[Message] = []
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._is_sending = False
        self._last_error: str | None = None
        self._poll_count = 0

    @property
    def partner_id(self) -> int:
        return self._partner_id

    @property
    def messages(self) -> list[Message]:
        """The thread, oldest first, as of the last refresh (plus sent messages)."""
        return list(self._messages)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_error(self) -> str | None:
        """Message of the last failed background refresh, cleared on success."""
        return self._last_error

    @property
    def poll_count(self) -> int:
        """Completed background poll cycles (successful or not)."""
        return self._poll_count

    # =========================================================================
    # REFRESH
    # =========================================================================

    async def refresh(self) -> list[Message]:
        """Fetch the thread now and mark incoming unread messages as read.

        Raises:
            ApiError: Not logged in, server detail or "Failed to get messages"
        """
        ctx = self._session.require_request_context()
        user = self._session.current_user

        messages = await self._client.get_messages_with_user(ctx, self._partner_id)
        self._messages = messages
        self._last_error = None

        if user is not None:
            await self._mark_unread_as_read(ctx, user.id)
        return self.messages

    async def _mark_unread_as_read(self, ctx: RequestContext, user_id: int) -> None:
        unread = [m for m in self._messages if m.is_unread_for(user_id)]
        if not unread:
            return

        marked = 0
        for message in unread:
            try:
                updated = await self._client.mark_message_as_read(ctx, message.id)
            except Exception as e:
                logger.warning("Failed to mark message %s as read: %s", message.id, e)
                continue
            self._replace_local(updated)
            marked += 1
        logger.debug("Marked %d/%d messages as read", marked, len(unread))

    def _replace_local(self, message: Message) -> None:
        for position, existing in enumerate(self._messages):
            if existing.id == message.id:
                self._messages[position] = message
                return

    async def on_focus(self) -> list[Message]:
        """Refresh immediately (screen gained focus). Errors are raised to the caller."""
        return await self.refresh()

    # =========================================================================
    # SENDING
    # =========================================================================

    async def send(self, content: str) -> Message | None:
        """Send a message and append it locally.

        Returns:
            The created message, or None for blank input or while a send is running

        Raises:
            ApiError: Server detail or "Failed to send message"
        """
        text = content.strip()
        if not text or self._is_sending:
            return None

        ctx = self._session.require_request_context()
        self._is_sending = True
        try:
            message = await self._client.send_message(ctx, self._partner_id, text)
        finally:
            self._is_sending = False

        self._messages.append(message)
        return message

    # =========================================================================
    # POLL LOOP
    # =========================================================================

    async def _poll_once(self) -> None:
        set_correlation_id(prefix=f"chat-{self._partner_id}")
        try:
            await self.refresh()
        except ApiError as e:
            self._last_error = e.message
            logger.warning(
                "Message refresh for conversation %s failed: %s", self._partner_id, e
            )
        except Exception as e:
            # Keep polling; a malformed payload now may be fine on the next cycle.
            self._last_error = str(e)
            logger.error(
                "Unexpected error refreshing conversation %s: %s",
                self._partner_id,
                e,
                exc_info=True,
            )
        finally:
            self._poll_count += 1

    async def start(self) -> None:
        """Run the poll loop until stop() is called.

        The first refresh happens immediately, then every poll_interval seconds.
        """
        self._running = True
        logger.info(
            "ConversationPoller started (partner=%s, interval=%.1fs)",
            self._partner_id,
            self._poll_interval,
        )

        while self._running:
            await self._poll_once()
            if not self._running:
                break
            await asyncio.sleep(self._poll_interval)

    def start_background(self) -> asyncio.Task[None]:
        """Run start() as a task owned by this poller (idempotent)."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(
                self.start(), name=f"conversation-poller-{self._partner_id}"
            )
        return self._task

    async def stop(self) -> None:
        """Stop polling and cancel the pending timer."""
        self._running = False
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("ConversationPoller stopped (partner=%s)", self._partner_id)

    async def __aenter__(self) -> "ConversationPoller":
        self.start_background()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()
