"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod

# Device collaborators live in their own module - import here for one-stop access.
from prema.domain.ports.device import (
    Coordinates,
    ILocationProvider,
    INavigator,
    IPushTokenProvider,
)


# Hey future me - these are the ONLY keys the client persists. The values match the
# mobile app's storage keys so an existing device keeps its session and sliders.
class StorageKeys:
    """Keys used in the persistent key-value store."""

    AUTH_TOKEN = "authToken"
    BROWSE_FILTERS = "browseFilters"
    LAST_LOCATION_UPDATE = "lastLocationUpdate"


# Hey future me, IKeyValueStore is a PORT - the session token and the small preference
# blobs go through it. Implementations: SqlKeyValueStore (aiosqlite file, survives
# restarts) and InMemoryKeyValueStore (tests, ephemeral shells). Values are plain
# strings; callers serialize JSON themselves.
class IKeyValueStore(ABC):
    """Persistent string key-value storage."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value or None."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store (insert or replace) a value."""
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete a key. Removing a missing key is not an error."""
        pass


__all__ = [
    "Coordinates",
    "IKeyValueStore",
    "ILocationProvider",
    "INavigator",
    "IPushTokenProvider",
    "StorageKeys",
]
