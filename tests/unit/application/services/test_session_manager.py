"""Unit tests for SessionManager.

Hey future me - the client is an AsyncMock(spec=PremaApiClient), storage is the
real in-memory store. Side effects (push registration, navigation reset) are drained
through the BestEffortTaskRunner before asserting on them.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from pytest_httpx import HTTPXMock

from prema.application.services import (
    BestEffortTaskRunner,
    PushRegistrationService,
    SessionManager,
)
from prema.config.settings import ApiSettings
from prema.domain.entities import RegistrationData, SessionState, User
from prema.domain.exceptions import ApiError
from prema.domain.ports import INavigator, StorageKeys
from prema.infrastructure.integrations import PremaApiClient, RequestContext
from prema.infrastructure.persistence import InMemoryKeyValueStore


@pytest.fixture
def user(user_payload: Callable[..., dict[str, Any]]) -> User:
    """The account behind the test token."""
    return User.from_dict(user_payload(photos=["a.jpg"]))


@pytest.fixture
def client(user: User) -> AsyncMock:
    """API client mock that accepts any login."""
    client = AsyncMock(spec=PremaApiClient)
    client.login.return_value = "token-1"
    client.get_current_user.return_value = user
    return client


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def navigator() -> MagicMock:
    return MagicMock(spec=INavigator)


@pytest.fixture
def push_service() -> AsyncMock:
    service = AsyncMock(spec=PushRegistrationService)
    service.register.return_value = "ExponentPushToken[abc]"
    return service


@pytest.fixture
def side_effects() -> BestEffortTaskRunner:
    return BestEffortTaskRunner()


@pytest.fixture
def manager(
    client: AsyncMock,
    store: InMemoryKeyValueStore,
    navigator: MagicMock,
    push_service: AsyncMock,
    side_effects: BestEffortTaskRunner,
) -> SessionManager:
    return SessionManager(
        client,
        store,
        navigator=navigator,
        push_service=push_service,
        side_effects=side_effects,
    )


class TestInitialize:
    """Tests for restoring a stored session."""

    async def test_no_stored_token(self, manager: SessionManager, client: AsyncMock) -> None:
        """Without a token we end up logged out and not loading."""
        assert manager.is_loading is True

        await manager.initialize()

        assert manager.is_loading is False
        assert manager.is_authenticated is False
        client.get_current_user.assert_not_awaited()

    async def test_valid_stored_token(
        self,
        manager: SessionManager,
        store: InMemoryKeyValueStore,
        user: User,
        push_service: AsyncMock,
        side_effects: BestEffortTaskRunner,
    ) -> None:
        """A stored token that /auth/me accepts restores the session."""
        await store.set(StorageKeys.AUTH_TOKEN, "stored-token")

        await manager.initialize()
        await side_effects.drain()

        assert manager.token == "stored-token"
        assert manager.current_user == user
        assert manager.request_context == RequestContext("stored-token")
        assert manager.is_loading is False
        push_service.register.assert_awaited_once_with(RequestContext("stored-token"))

    async def test_expired_token_is_cleared(
        self, manager: SessionManager, store: InMemoryKeyValueStore, client: AsyncMock
    ) -> None:
        """An expired token is removed, we're logged out and nothing is raised."""
        await store.set(StorageKeys.AUTH_TOKEN, "expired")
        client.get_current_user.side_effect = ApiError("Could not validate credentials")

        await manager.initialize()

        assert manager.is_authenticated is False
        assert manager.token is None
        assert manager.request_context is None
        assert manager.is_loading is False
        assert await store.get(StorageKeys.AUTH_TOKEN) is None

    async def test_storage_read_failure(self, client: AsyncMock) -> None:
        """A broken store still finishes loading."""
        store = AsyncMock()
        store.get.side_effect = OSError("disk gone")
        manager = SessionManager(client, store)

        await manager.initialize()

        assert manager.is_loading is False
        assert manager.is_authenticated is False

    async def test_unexpected_error_clears_stored_token(
        self, manager: SessionManager, store: InMemoryKeyValueStore, client: AsyncMock
    ) -> None:
        """Any failure while verifying the stored token ends logged out, not raised."""
        await store.set(StorageKeys.AUTH_TOKEN, "stored-token")
        client.get_current_user.side_effect = KeyError("id")

        await manager.initialize()

        assert manager.is_loading is False
        assert manager.is_authenticated is False
        assert manager.request_context is None
        assert await store.get(StorageKeys.AUTH_TOKEN) is None

    async def test_runs_only_once(
        self, manager: SessionManager, store: InMemoryKeyValueStore, client: AsyncMock
    ) -> None:
        """A second initialize() is a no-op."""
        await store.set(StorageKeys.AUTH_TOKEN, "stored-token")
        states: list[SessionState] = []
        manager.subscribe(states.append)

        await manager.initialize()
        await manager.initialize()

        assert client.get_current_user.await_count == 1
        assert [s.loading for s in states] == [False]


class TestLogin:
    """Tests for login."""

    async def test_login_sets_and_persists_session(
        self,
        manager: SessionManager,
        client: AsyncMock,
        store: InMemoryKeyValueStore,
        user: User,
    ) -> None:
        """Login verifies the token, then stores token and user together."""
        result = await manager.login("asha@example.com", "secret")

        assert result == user
        assert manager.token == "token-1"
        assert manager.current_user == user
        assert manager.is_authenticated is True
        assert await store.get(StorageKeys.AUTH_TOKEN) == "token-1"
        client.login.assert_awaited_once_with("asha@example.com", "secret")
        client.get_current_user.assert_awaited_once_with(
            RequestContext("token-1"),
            fallback="Login failed. Please try again.",
            status_messages={401: "Invalid email or password"},
        )

    async def test_profile_fetch_failure_persists_nothing(
        self, manager: SessionManager, client: AsyncMock, store: InMemoryKeyValueStore
    ) -> None:
        """If /auth/me fails the login fails and no token is left behind."""
        client.get_current_user.side_effect = ApiError("Login failed. Please try again.")

        with pytest.raises(ApiError, match="Login failed. Please try again."):
            await manager.login("asha@example.com", "secret")

        assert manager.token is None
        assert manager.current_user is None
        assert store.snapshot() == {}

    async def test_invalid_credentials(
        self, manager: SessionManager, client: AsyncMock
    ) -> None:
        """The client's display error reaches the caller unchanged."""
        client.login.side_effect = ApiError("Invalid email or password")

        with pytest.raises(ApiError) as exc_info:
            await manager.login("asha@example.com", "wrong")

        assert exc_info.value.message == "Invalid email or password"
        assert manager.is_authenticated is False

    async def test_push_registration_failure_does_not_fail_login(
        self,
        manager: SessionManager,
        push_service: AsyncMock,
        side_effects: BestEffortTaskRunner,
    ) -> None:
        """Push registration runs in the background; its failure is only recorded."""
        push_service.register.side_effect = RuntimeError("no push on simulator")

        await manager.login("asha@example.com", "secret")
        await side_effects.drain()

        assert manager.is_authenticated is True
        failures = side_effects.failures()
        assert [f.name for f in failures] == ["push-registration"]
        assert failures[0].error == "no push on simulator"

    async def test_store_write_failure_keeps_session(
        self, client: AsyncMock, user: User
    ) -> None:
        """A token that can't be persisted still logs in for this run."""
        store = AsyncMock()
        store.set.side_effect = OSError("read-only")
        manager = SessionManager(client, store)

        await manager.login("asha@example.com", "secret")

        assert manager.current_user == user

    async def test_publishes_authenticated_state(self, manager: SessionManager) -> None:
        """Listeners get one snapshot with token and user set together."""
        states: list[SessionState] = []
        manager.subscribe(states.append)

        await manager.login("asha@example.com", "secret")

        assert len(states) == 1
        assert states[0].is_authenticated is True
        assert states[0].loading is False


class TestRegister:
    """Tests for sign-up."""

    @pytest.fixture
    def registration(self) -> RegistrationData:
        return RegistrationData(
            email="asha@example.com", password="secret", name="Asha", age=29, gender="female"
        )

    async def test_register_logs_in(
        self,
        manager: SessionManager,
        client: AsyncMock,
        registration: RegistrationData,
        user: User,
    ) -> None:
        """After creating the account we log straight in with the same credentials."""
        client.register.return_value = user

        result = await manager.register(registration)

        assert result == user
        client.login.assert_awaited_once_with("asha@example.com", "secret")
        assert manager.is_authenticated is True

    async def test_register_ok_but_login_fails(
        self,
        manager: SessionManager,
        client: AsyncMock,
        registration: RegistrationData,
        user: User,
    ) -> None:
        """The login error surfaces - never a silent success."""
        client.register.return_value = user
        client.login.side_effect = ApiError("Login failed. Please try again.")

        with pytest.raises(ApiError, match="Login failed. Please try again."):
            await manager.register(registration)

        assert manager.is_authenticated is False

    async def test_register_failure(
        self, manager: SessionManager, client: AsyncMock, registration: RegistrationData
    ) -> None:
        """Registration errors stop before login."""
        client.register.side_effect = ApiError("Email already registered")

        with pytest.raises(ApiError, match="Email already registered"):
            await manager.register(registration)

        client.login.assert_not_awaited()


class TestLogout:
    """Tests for logout."""

    async def test_logout_clears_everything(
        self,
        manager: SessionManager,
        store: InMemoryKeyValueStore,
        navigator: MagicMock,
        side_effects: BestEffortTaskRunner,
    ) -> None:
        """Token, context, user and the stored token are gone; navigation resets."""
        await manager.login("asha@example.com", "secret")

        await manager.logout()

        assert manager.token is None
        assert manager.request_context is None
        assert manager.current_user is None
        assert await store.get(StorageKeys.AUTH_TOKEN) is None

        await side_effects.drain()
        navigator.reset_to_auth.assert_called_once()
        assert any(r.name == "navigation-reset" and r.success for r in side_effects.results)

    async def test_logout_never_raises(self, client: AsyncMock) -> None:
        """A failing store only gets logged."""
        store = AsyncMock()
        store.remove.side_effect = OSError("disk gone")
        manager = SessionManager(client, store)
        await manager.login("asha@example.com", "secret")

        await manager.logout()

        assert manager.is_authenticated is False

    async def test_navigation_failure_is_recorded(
        self,
        manager: SessionManager,
        navigator: MagicMock,
        side_effects: BestEffortTaskRunner,
    ) -> None:
        """A navigator error doesn't escape logout."""
        navigator.reset_to_auth.side_effect = RuntimeError("navigator not mounted")

        await manager.logout()
        await side_effects.drain()

        assert [f.name for f in side_effects.failures()] == ["navigation-reset"]

    async def test_context_required_after_logout(self, manager: SessionManager) -> None:
        """Authenticated work is refused once logged out."""
        await manager.login("asha@example.com", "secret")
        await manager.logout()

        with pytest.raises(ApiError, match="Please log in to continue."):
            manager.require_request_context()


class TestProfile:
    """Tests for profile updates."""

    async def test_update_user_replaces_user(
        self,
        manager: SessionManager,
        client: AsyncMock,
        user_payload: Callable[..., dict[str, Any]],
    ) -> None:
        """The server's answer replaces the local user."""
        await manager.login("asha@example.com", "secret")
        updated = User.from_dict(user_payload(bio="Updated"))
        client.update_profile.return_value = updated

        result = await manager.update_user({"bio": "Updated"})

        assert result == updated
        assert manager.current_user == updated
        client.update_profile.assert_awaited_once_with(RequestContext("token-1"), {"bio": "Updated"})

    async def test_update_user_requires_login(self, manager: SessionManager) -> None:
        """No session, no update."""
        with pytest.raises(ApiError, match="Please log in to continue."):
            await manager.update_user({"bio": "x"})

    async def test_update_result_dropped_after_logout(
        self,
        manager: SessionManager,
        client: AsyncMock,
        user_payload: Callable[..., dict[str, Any]],
    ) -> None:
        """A response arriving after logout must not resurrect the user."""
        await manager.login("asha@example.com", "secret")

        async def logout_mid_request(ctx: RequestContext, changes: dict[str, Any]) -> User:
            await manager.logout()
            return User.from_dict(user_payload(bio="late"))

        client.update_profile.side_effect = logout_mid_request

        await manager.update_user({"bio": "late"})

        assert manager.current_user is None
        assert manager.is_authenticated is False

    async def test_optimistic_photos_then_refresh(
        self,
        manager: SessionManager,
        client: AsyncMock,
        user_payload: Callable[..., dict[str, Any]],
    ) -> None:
        """Local photo edits are overwritten by the server on refresh."""
        await manager.login("asha@example.com", "secret")

        manager.update_user_photos(["a.jpg"])
        assert manager.current_user is not None
        assert manager.current_user.photos == ["a.jpg"]

        client.get_current_user.return_value = User.from_dict(
            user_payload(photos=["a.jpg", "b.jpg"])
        )
        await manager.refresh_user()

        assert manager.current_user.photos == ["a.jpg", "b.jpg"]

    def test_update_photos_without_user_is_noop(self, manager: SessionManager) -> None:
        """Nothing happens when nobody is logged in."""
        manager.update_user_photos(["a.jpg"])

        assert manager.current_user is None

    async def test_refresh_user_uses_refresh_fallback(
        self, manager: SessionManager, client: AsyncMock
    ) -> None:
        """refresh_user asks the client for the refresh-specific fallback."""
        await manager.login("asha@example.com", "secret")
        client.get_current_user.side_effect = ApiError("Failed to refresh profile.")

        with pytest.raises(ApiError, match="Failed to refresh profile."):
            await manager.refresh_user()

        client.get_current_user.assert_awaited_with(
            RequestContext("token-1"), fallback="Failed to refresh profile."
        )
        assert manager.is_authenticated is True


class TestPasswordReset:
    """Tests for the password reset flow."""

    async def test_request_reset_always_succeeds(
        self, manager: SessionManager, client: AsyncMock
    ) -> None:
        """Backend errors are hidden so account existence isn't revealed."""
        client.request_password_reset.side_effect = ApiError("Failed to send reset link")

        await manager.request_password_reset("unknown@example.com")

        client.request_password_reset.assert_awaited_once_with("unknown@example.com")

    async def test_reset_password_surfaces_errors(
        self, manager: SessionManager, client: AsyncMock
    ) -> None:
        """Setting the new password reports failures."""
        client.reset_password.side_effect = ApiError("Invalid or expired reset token")

        with pytest.raises(ApiError, match="Invalid or expired reset token"):
            await manager.reset_password("bad-token", "n3w-pass")


class TestPushNotifications:
    """Tests for explicit push registration."""

    async def test_without_login(
        self, manager: SessionManager, push_service: AsyncMock
    ) -> None:
        """No token, no registration."""
        assert await manager.register_for_push_notifications() is None
        push_service.register.assert_not_awaited()

    async def test_with_login(
        self,
        manager: SessionManager,
        push_service: AsyncMock,
        side_effects: BestEffortTaskRunner,
    ) -> None:
        """Returns the registered token."""
        await manager.login("asha@example.com", "secret")
        await side_effects.drain()

        assert await manager.register_for_push_notifications() == "ExponentPushToken[abc]"


class TestSubscribe:
    """Tests for state listeners."""

    async def test_unsubscribe(self, manager: SessionManager) -> None:
        """An unsubscribed listener gets nothing more."""
        states: list[SessionState] = []
        unsubscribe = manager.subscribe(states.append)

        await manager.initialize()
        unsubscribe()
        await manager.login("asha@example.com", "secret")

        assert len(states) == 1

    async def test_failing_listener_does_not_break_login(
        self, manager: SessionManager
    ) -> None:
        """Listener errors are logged, the transition still happens."""

        def broken(state: SessionState) -> None:
            raise RuntimeError("render failed")

        manager.subscribe(broken)

        await manager.login("asha@example.com", "secret")

        assert manager.is_authenticated is True


class TestOverHttp:
    """Login and restore wired to the real client, backend faked with pytest-httpx."""

    ME_URL = "https://api.prema.test/auth/me"
    LOGIN_URL = "https://api.prema.test/auth/login"

    @pytest.fixture
    async def http_client(self) -> AsyncGenerator[httpx.AsyncClient, None]:
        async with httpx.AsyncClient() as client:
            yield client

    @pytest.fixture
    def real_manager(
        self,
        api_settings: ApiSettings,
        http_client: httpx.AsyncClient,
        store: InMemoryKeyValueStore,
    ) -> SessionManager:
        return SessionManager(PremaApiClient(api_settings, http_client=http_client), store)

    async def test_profile_network_error_is_login_failure(
        self,
        real_manager: SessionManager,
        store: InMemoryKeyValueStore,
        httpx_mock: HTTPXMock,
    ) -> None:
        """A dropped /auth/me after a good token exchange reads as a failed login."""
        httpx_mock.add_response(
            method="POST", url=self.LOGIN_URL, json={"access_token": "fresh"}
        )
        httpx_mock.add_exception(httpx.ConnectError("network down"), url=self.ME_URL)

        with pytest.raises(ApiError) as exc_info:
            await real_manager.login("asha@example.com", "secret")

        assert exc_info.value.message == "Login failed. Please try again."
        assert real_manager.is_authenticated is False
        assert store.snapshot() == {}

    async def test_profile_401_is_invalid_credentials(
        self, real_manager: SessionManager, httpx_mock: HTTPXMock
    ) -> None:
        """A token that /auth/me rejects during login means bad credentials."""
        httpx_mock.add_response(
            method="POST", url=self.LOGIN_URL, json={"access_token": "fresh"}
        )
        httpx_mock.add_response(
            method="GET",
            url=self.ME_URL,
            status_code=401,
            json={"detail": "Could not validate credentials"},
        )

        with pytest.raises(ApiError) as exc_info:
            await real_manager.login("asha@example.com", "secret")

        assert exc_info.value.message == "Invalid email or password"

    async def test_restore_with_malformed_profile_logs_out(
        self,
        real_manager: SessionManager,
        store: InMemoryKeyValueStore,
        httpx_mock: HTTPXMock,
    ) -> None:
        """A 200 from /auth/me without a user still clears the stale token."""
        await store.set(StorageKeys.AUTH_TOKEN, "stale")
        httpx_mock.add_response(
            method="GET", url=self.ME_URL, json={"detail": "Not authenticated"}
        )

        await real_manager.initialize()

        assert real_manager.is_loading is False
        assert real_manager.is_authenticated is False
        assert store.snapshot() == {}
