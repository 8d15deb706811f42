"""Configuration module for the Prema client."""

from .settings import (
    ApiSettings,
    DiscoverySettings,
    LocationSettings,
    MessagingSettings,
    Settings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "ApiSettings",
    "DiscoverySettings",
    "LocationSettings",
    "MessagingSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
]
