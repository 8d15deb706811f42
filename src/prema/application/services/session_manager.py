"""Session manager - who is logged in, and with which token.

Hey future me - this is the HEART of the client. It owns three things that must always
agree with each other:

- the bearer token (memory + persisted under StorageKeys.AUTH_TOKEN)
- the current user snapshot (memory only, fetched from /auth/me)
- the RequestContext every authenticated API call is made with

The rule: current_user is set IFF the token is set AND was verified against
/auth/me. Token and user are assigned in the same synchronous step, never across an
await, so observers can't catch a half-logged-in state.

State machine:
    Unauthenticated(loading) --initialize()--> Authenticated | Unauthenticated(idle)
    Unauthenticated(idle)    --login()/register()--> Authenticated
    Authenticated            --logout()--> Unauthenticated(idle)
    Authenticated            --refresh_user()/update_user()--> Authenticated (user replaced)

Push registration and the post-logout navigation reset are best-effort side effects.
They run on the BestEffortTaskRunner so a failure is logged and recorded, never raised
into login or logout.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from prema.application.services.push_registration_service import (
    PushRegistrationService,
)
from prema.application.services.side_effects import BestEffortTaskRunner
from prema.domain.entities import RegistrationData, SessionState, User
from prema.domain.exceptions import ApiError
from prema.domain.ports import IKeyValueStore, INavigator, StorageKeys
from prema.infrastructure.integrations import (
    INVALID_CREDENTIALS_MESSAGE,
    LOGIN_FAILED_MESSAGE,
    PremaApiClient,
    RequestContext,
)
from prema.infrastructure.observability import set_correlation_id

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionState], None]

LOGIN_REQUIRED_MESSAGE = "Please log in to continue."
REFRESH_FAILED_MESSAGE = "Failed to refresh profile."


class SessionManager:
    """Owns the authentication token and the current user snapshot."""

    def __init__(
        self,
        client: PremaApiClient,
        store: IKeyValueStore,
        navigator: INavigator | None = None,
        push_service: PushRegistrationService | None = None,
        side_effects: BestEffortTaskRunner | None = None,
    ) -> None:
        """Initialize the session manager.

        Args:
            client: Backend API client (stateless, takes a RequestContext per call)
            store: Persistent key-value storage for the token
            navigator: Optional host navigation, reset to the login flow on logout
            push_service: Optional push registration run after every login
            side_effects: Runner for best-effort background work
        """
        self._client = client
        self._store = store
        self._navigator = navigator
        self._push_service = push_service
        self._side_effects = side_effects or BestEffortTaskRunner()

        self._token: str | None = None
        self._current_user: User | None = None
        self._request_context: RequestContext | None = None
        self._loading = True
        self._initialized = False
        self._listeners: list[SessionListener] = []

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def current_user(self) -> User | None:
        return self._current_user

    @property
    def is_loading(self) -> bool:
        """True until initialize() has finished restoring (or not) a stored session."""
        return self._loading

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None and self._current_user is not None

    @property
    def request_context(self) -> RequestContext | None:
        """Credentials for API calls, None when logged out."""
        return self._request_context

    @property
    def side_effects(self) -> BestEffortTaskRunner:
        return self._side_effects

    @property
    def state(self) -> SessionState:
        """Immutable snapshot of the current session."""
        return SessionState(
            token=self._token,
            current_user=self._current_user,
            loading=self._loading,
        )

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener called with a SessionState after every transition.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        state = self.state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Session listener failed")

    # Token, user and context are swapped in ONE synchronous step - no await in here!
    def _set_session(self, token: str | None, user: User | None) -> None:
        self._token = token
        self._current_user = user
        self._request_context = RequestContext(token) if token else None

    def require_request_context(self) -> RequestContext:
        """Return the current credentials.

        Raises:
            ApiError: If nobody is logged in
        """
        if self._request_context is None:
            raise ApiError(LOGIN_REQUIRED_MESSAGE)
        return self._request_context

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def initialize(self) -> None:
        """Restore a persisted session, if any.

        Runs once. Whatever happens (no token, expired token, storage error) loading
        ends up False and observers get exactly one "done loading" snapshot.
        """
        if self._initialized:
            logger.debug("SessionManager already initialized, ignoring")
            return
        self._initialized = True
        set_correlation_id(prefix="restore")

        try:
            try:
                stored_token = await self._store.get(StorageKeys.AUTH_TOKEN)
            except Exception as e:
                logger.error("Failed to read stored auth token: %s", e)
                stored_token = None

            if stored_token:
                await self._restore_session(stored_token)
            else:
                logger.debug("No stored session")
        finally:
            self._loading = False
            self._publish()

    async def _restore_session(self, stored_token: str) -> None:
        try:
            user = await self._client.get_current_user(RequestContext(stored_token))
        except Exception as e:
            # Expired or revoked token, backend unreachable, or a broken /auth/me
            # answer - whatever it was, start logged out.
            logger.info("Stored session could not be verified, clearing it: %s", e)
            await self._forget_stored_token()
            self._set_session(None, None)
            return

        self._set_session(stored_token, user)
        logger.info("Restored session for user %s", user.id)
        self._schedule_push_registration()

    async def _forget_stored_token(self) -> None:
        try:
            await self._store.remove(StorageKeys.AUTH_TOKEN)
        except Exception as e:
            logger.error("Failed to remove stored auth token: %s", e)

    # =========================================================================
    # AUTHENTICATION
    # =========================================================================

    # Hey future me - ORDER MATTERS here. We verify the new token against /auth/me
    # BEFORE persisting anything. If /auth/me fails the login fails as a whole and the
    # previous state (usually logged out) is untouched - no orphan token on disk.
    async def login(self, email: str, password: str) -> User:
        """Log in with email and password.

        Returns:
            The logged-in user

        Raises:
            ApiError: "Invalid email or password", the server's detail, or
                "Login failed. Please try again."
        """
        set_correlation_id(prefix="login")
        token = await self._client.login(email, password)
        # /auth/me is part of the login as far as the screen is concerned: same
        # fallback, and a token it rejects counts as bad credentials.
        user = await self._client.get_current_user(
            RequestContext(token),
            fallback=LOGIN_FAILED_MESSAGE,
            status_messages={401: INVALID_CREDENTIALS_MESSAGE},
        )

        try:
            await self._store.set(StorageKeys.AUTH_TOKEN, token)
        except Exception as e:
            # Session still works for this run, it just won't survive a restart.
            logger.error("Failed to persist auth token: %s", e)

        self._set_session(token, user)
        self._loading = False
        self._publish()
        logger.info("User %s logged in", user.id)

        self._schedule_push_registration()
        return user

    async def register(self, registration: RegistrationData) -> User:
        """Create an account and log straight into it.

        Raises:
            ApiError: Registration error, or the login error if the account was
                created but logging in failed
        """
        await self._client.register(registration)
        logger.info("Account created for %s, logging in", registration.email)
        return await self.login(registration.email, registration.password)

    async def logout(self) -> None:
        """Log out. Never raises."""
        await self._forget_stored_token()
        user_id = self._current_user.id if self._current_user else None
        self._set_session(None, None)
        self._loading = False
        self._publish()
        logger.info("User %s logged out", user_id)

        navigator = self._navigator
        if navigator is not None:

            async def reset_navigation() -> None:
                # Let listeners react to the logged-out state before the screen swap.
                await asyncio.sleep(0)
                navigator.reset_to_auth()

            self._side_effects.schedule("navigation-reset", reset_navigation)

    async def request_password_reset(self, email: str) -> None:
        """Ask for a reset email.

        Always "succeeds" from the caller's view so the screen never reveals whether
        an account exists for the address. Failures are logged.
        """
        try:
            await self._client.request_password_reset(email)
        except ApiError as e:
            logger.warning("Password reset request failed: %s", e.message)

    async def reset_password(self, token: str, new_password: str) -> None:
        """Set a new password with the token from the reset email."""
        await self._client.reset_password(token, new_password)
        logger.info("Password reset completed")

    # =========================================================================
    # PROFILE
    # =========================================================================

    async def update_user(self, changes: dict[str, Any]) -> User:
        """Send a partial profile update; the server's answer replaces the user.

        Raises:
            ApiError: Not logged in, server detail or "Update failed. Please try again."
        """
        ctx = self.require_request_context()
        user = await self._client.update_profile(ctx, changes)
        if self._request_context is not ctx:
            logger.info("Session changed during profile update, dropping result")
            return user
        self._current_user = user
        self._publish()
        return user

    async def refresh_user(self) -> User:
        """Re-fetch the current user; the server's version wins over local edits.

        Raises:
            ApiError: Not logged in, server detail or "Failed to refresh profile."
        """
        ctx = self.require_request_context()
        user = await self._client.get_current_user(ctx, fallback=REFRESH_FAILED_MESSAGE)
        if self._request_context is not ctx:
            logger.info("Session changed during profile refresh, dropping result")
            return user
        self._current_user = user
        self._publish()
        return user

    def update_user_photos(self, photos: list[str]) -> None:
        """Optimistically replace the local photo list (no network call)."""
        if self._current_user is None:
            logger.warning("update_user_photos called without a logged-in user, ignoring")
            return
        self._current_user = self._current_user.with_photos(photos)
        self._publish()

    # =========================================================================
    # PUSH NOTIFICATIONS
    # =========================================================================

    async def register_for_push_notifications(self) -> str | None:
        """Register the device push token now. Best-effort, never raises."""
        ctx = self._request_context
        if ctx is None:
            logger.warning("Cannot register for push notifications without an auth token")
            return None
        if self._push_service is None:
            logger.debug("No push registration service configured")
            return None
        return await self._push_service.register(ctx)

    def _schedule_push_registration(self) -> None:
        push_service = self._push_service
        ctx = self._request_context
        if push_service is None or ctx is None:
            return
        self._side_effects.schedule("push-registration", lambda: push_service.register(ctx))
