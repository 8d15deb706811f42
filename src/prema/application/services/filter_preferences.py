"""Saved browse filter sliders."""

import json
import logging

from prema.domain.ports import IKeyValueStore, StorageKeys
from prema.domain.value_objects import FilterPreferences

logger = logging.getLogger(__name__)


# Hey future me - the sliders are a nice-to-have. A corrupt blob or a storage error must
# NEVER stop discovery from loading, so load() falls back to the defaults (15 miles,
# 18-80) and save() only logs.
class FilterPreferencesService:
    """Loads and saves the browse filter blob."""

    def __init__(self, store: IKeyValueStore) -> None:
        self._store = store

    async def load(self) -> FilterPreferences:
        """Return the saved preferences, or the defaults."""
        try:
            raw = await self._store.get(StorageKeys.BROWSE_FILTERS)
        except Exception as e:
            logger.error("Failed to read saved browse filters: %s", e)
            return FilterPreferences()

        if not raw:
            return FilterPreferences()

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            return FilterPreferences.from_dict(data)
        except (TypeError, ValueError, OverflowError) as e:
            logger.warning("Ignoring unreadable browse filters: %s", e)
            return FilterPreferences()

    async def save(self, preferences: FilterPreferences) -> bool:
        """Persist the preferences. Returns False (and logs) on failure."""
        try:
            await self._store.set(
                StorageKeys.BROWSE_FILTERS, json.dumps(preferences.to_dict())
            )
        except Exception as e:
            logger.error("Failed to save browse filters: %s", e)
            return False
        return True
