"""Device collaborator interfaces - push tokens, location, navigation.

Hey future me - these are the PORTS for things only the host shell can do (ask the OS
for a push token, read GPS, move between screens). The core never depends on a
platform SDK; the shell passes implementations in. All of them are OPTIONAL
enhancements: a failure here must never block login, messaging or discovery.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Coordinates:
    """A GPS fix."""

    latitude: float
    longitude: float


class IPushTokenProvider(ABC):
    """Source of the device's push notification token."""

    @abstractmethod
    async def request_permission(self) -> bool:
        """Ask the user for notification permission. True if granted."""
        pass

    @abstractmethod
    async def get_push_token(self) -> str | None:
        """Return the device push token, None if unavailable."""
        pass


class ILocationProvider(ABC):
    """Source of the device's current position."""

    @abstractmethod
    async def request_permission(self) -> bool:
        """Ask for foreground location permission. True if granted."""
        pass

    @abstractmethod
    async def get_current_position(self) -> Coordinates:
        """Return the current position (may raise if the fix fails)."""
        pass


class INavigator(ABC):
    """Top-level navigation resets triggered by the session."""

    @abstractmethod
    def reset_to_auth(self) -> None:
        """Show the unauthenticated (login) flow."""
        pass

    @abstractmethod
    def reset_to_app(self) -> None:
        """Show the main app flow."""
        pass
