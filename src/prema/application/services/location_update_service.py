"""Automatic profile location refresh."""

import asyncio
import logging
import time
from collections.abc import Callable

from prema.application.services.session_manager import SessionManager
from prema.domain.ports import ILocationProvider, IKeyValueStore, StorageKeys

logger = logging.getLogger(__name__)

DEFAULT_UPDATE_INTERVAL_SECONDS = 10 * 60


# Hey future me - discovery sorts and filters by distance, so a stale location means a
# wrong feed. But GPS + a profile PUT on every Browse focus would be wasteful, so updates
# are throttled (10 min by default) through a timestamp in the key-value store (epoch
# MILLISECONDS, same format the mobile app wrote). maybe_update() is strictly
# best-effort: any failure is logged and reported as False.
class LocationAutoUpdater:
    """Pushes the device location into the profile, at most once per interval."""

    def __init__(
        self,
        session: SessionManager,
        store: IKeyValueStore,
        location_provider: ILocationProvider | None,
        update_interval_seconds: float = DEFAULT_UPDATE_INTERVAL_SECONDS,
        settle_delay_seconds: float = 0.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the updater.

        Args:
            session: Session used for the profile update
            store: Storage for the last-update timestamp
            location_provider: Device location source (None disables updates)
            update_interval_seconds: Minimum time between two updates
            settle_delay_seconds: Pause after an update so the backend has the new
                position before the next browse query
            clock: Returns the current time in seconds (tests pass a fake)
        """
        self._session = session
        self._store = store
        self._location_provider = location_provider
        self._update_interval_ms = int(update_interval_seconds * 1000)
        self._settle_delay_seconds = settle_delay_seconds
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def _is_throttled(self) -> bool:
        raw = await self._store.get(StorageKeys.LAST_LOCATION_UPDATE)
        if not raw:
            return False
        try:
            last_update_ms = int(raw)
        except ValueError:
            logger.warning("Ignoring unreadable last location update %r", raw)
            return False
        elapsed_ms = self._now_ms() - last_update_ms
        if elapsed_ms < self._update_interval_ms:
            logger.debug(
                "Location update throttled, last update %ds ago", round(elapsed_ms / 1000)
            )
            return True
        return False

    async def maybe_update(self) -> bool:
        """Update the profile location if due.

        Returns:
            True if the location was sent, False otherwise. Never raises.
        """
        if self._session.current_user is None:
            logger.debug("No user logged in, skipping location update")
            return False
        if self._location_provider is None:
            return False

        try:
            if await self._is_throttled():
                return False

            if not await self._location_provider.request_permission():
                logger.info("Location permission not granted")
                return False

            position = await self._location_provider.get_current_position()
            await self._session.update_user(
                {
                    "location_latitude": position.latitude,
                    "location_longitude": position.longitude,
                }
            )
            await self._store.set(StorageKeys.LAST_LOCATION_UPDATE, str(self._now_ms()))
        except Exception as e:
            logger.warning("Location update failed: %s", e)
            return False

        logger.info(
            "Location updated: %.4f, %.4f", position.latitude, position.longitude
        )
        if self._settle_delay_seconds > 0:
            await asyncio.sleep(self._settle_delay_seconds)
        return True
