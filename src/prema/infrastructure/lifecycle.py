"""Client lifecycle management for startup and shutdown.

Hey future me - this is the COMPOSITION ROOT. The host shell (mobile bridge, desktop app,
terminal UI, tests) opens exactly one client_lifespan() and gets a PremaRuntime back with
everything wired: storage, API client, side-effect runner and a SessionManager that has
already tried to restore the stored session. Screens then ask the runtime for the
per-screen objects (discovery feed, chat poller, ...), which all share the same session.

Startup order:
1. logging
2. SQLite path validation + tables (skipped when the shell passes its own store)
3. API client (shared HttpClientPool, or the injected httpx client)
4. SessionManager.initialize()

Shutdown waits briefly for best-effort side effects, then closes the HTTP pool and the
database. The try/finally makes cleanup run even when startup fails halfway.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx

from prema.application.services import (
    BestEffortTaskRunner,
    ConversationList,
    DiscoveryFeed,
    FilterPreferencesService,
    LikesInbox,
    LocationAutoUpdater,
    MatchesBoard,
    PhotoService,
    PushRegistrationService,
    SessionManager,
)
from prema.application.services.discovery_feed import MatchCallback
from prema.application.workers import ConversationPoller
from prema.config import Settings, get_settings
from prema.domain.exceptions import ConfigurationError
from prema.domain.ports import (
    IKeyValueStore,
    ILocationProvider,
    INavigator,
    IPushTokenProvider,
)
from prema.infrastructure.integrations import HttpClientPool, PremaApiClient
from prema.infrastructure.observability import configure_logging
from prema.infrastructure.persistence import Database, SqlKeyValueStore

logger = logging.getLogger(__name__)

SIDE_EFFECT_DRAIN_TIMEOUT = 5.0


# Hey future me, this validates SQLite paths BEFORE we create the engine. SQLite needs to
# create -journal/-wal files next to the .db file, so we check the DIRECTORY is writable.
# We DON'T pre-create the .db file - SQLite initializes it properly on first connect.
def _validate_sqlite_path(settings: Settings) -> None:
    """Ensure the SQLite database directory exists and is writable."""
    db_path = settings.get_sqlite_db_path()
    if db_path is None:
        return

    try:
        if db_path.parent and str(db_path.parent) != ".":
            db_path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug("Ensured SQLite parent directory exists: %s", db_path.parent)
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create SQLite database directory '{db_path.parent}': {exc}. "
            "Update PREMA_STORAGE__URL or adjust directory permissions."
        ) from exc

    try:
        test_file = db_path.parent / f".{db_path.stem}_write_test"
        test_file.write_bytes(b"test")
        test_file.unlink()
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to write files in database directory '{db_path.parent}': {exc}. "
            "SQLite requires write permissions to create database and journal files."
        ) from exc


@dataclass
class PremaRuntime:
    """Everything a host shell needs, wired together."""

    settings: Settings
    client: PremaApiClient
    store: IKeyValueStore
    session: SessionManager
    side_effects: BestEffortTaskRunner
    filter_preferences: FilterPreferencesService
    database: Database | None = None
    location_provider: ILocationProvider | None = None

    def discovery_feed(self, on_match: MatchCallback | None = None) -> DiscoveryFeed:
        """New feed for the Browse screen."""
        discovery = self.settings.discovery
        return DiscoveryFeed(
            self.client,
            self.session,
            preferences=self.filter_preferences,
            page_size=discovery.page_size,
            prefetch_threshold=discovery.prefetch_threshold,
            debounce_seconds=discovery.filter_debounce_seconds,
            on_match=on_match,
        )

    def conversation_poller(self, partner_id: int) -> ConversationPoller:
        """New poller for one open chat (use as `async with`)."""
        return ConversationPoller(
            self.client,
            self.session,
            partner_id,
            poll_interval=self.settings.messaging.poll_interval,
        )

    def likes_inbox(self) -> LikesInbox:
        return LikesInbox(self.client, self.session)

    def matches_board(self) -> MatchesBoard:
        return MatchesBoard(self.client, self.session)

    def conversation_list(self) -> ConversationList:
        return ConversationList(self.client, self.session)

    def photo_service(self) -> PhotoService:
        return PhotoService(self.client, self.session)

    def location_updater(self) -> LocationAutoUpdater:
        location = self.settings.location
        return LocationAutoUpdater(
            self.session,
            self.store,
            self.location_provider,
            update_interval_seconds=location.update_interval_seconds,
            settle_delay_seconds=location.settle_delay_seconds,
        )


@asynccontextmanager
async def client_lifespan(
    settings: Settings | None = None,
    *,
    store: IKeyValueStore | None = None,
    http_client: httpx.AsyncClient | None = None,
    navigator: INavigator | None = None,
    push_provider: IPushTokenProvider | None = None,
    location_provider: ILocationProvider | None = None,
) -> AsyncGenerator[PremaRuntime, None]:
    """Start the client core and tear it down on exit.

    Args:
        settings: Settings to use (defaults to get_settings())
        store: Key-value store to use instead of the SQLite one
        http_client: httpx client to use instead of the shared pool
        navigator: Host navigation (reset to login after logout)
        push_provider: Device push token source
        location_provider: Device location source
    """
    settings = settings or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting client: %s (backend %s)", settings.app_name, settings.api.base_url)

    database: Database | None = None
    side_effects = BestEffortTaskRunner()
    try:
        if store is None:
            _validate_sqlite_path(settings)
            database = Database(settings.storage)
            await database.create_tables()
            store = SqlKeyValueStore(database)
            logger.info("Client storage ready: %s", settings.storage.url)

        client = PremaApiClient(settings.api, http_client=http_client)
        session = SessionManager(
            client,
            store,
            navigator=navigator,
            push_service=PushRegistrationService(client, push_provider),
            side_effects=side_effects,
        )
        await session.initialize()
        logger.info(
            "Session restored: %s",
            "authenticated" if session.is_authenticated else "logged out",
        )

        yield PremaRuntime(
            settings=settings,
            client=client,
            store=store,
            session=session,
            side_effects=side_effects,
            filter_preferences=FilterPreferencesService(store),
            database=database,
            location_provider=location_provider,
        )
    finally:
        logger.info("Shutting down client...")
        try:
            await side_effects.drain(timeout=SIDE_EFFECT_DRAIN_TIMEOUT)
        except TimeoutError:
            logger.warning("Side effects still running at shutdown, cancelling them")
            await side_effects.cancel_all()

        await HttpClientPool.close()
        if database is not None:
            await database.close()
        logger.info("Client shutdown complete")
