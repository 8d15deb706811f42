"""Domain value objects."""

from prema.domain.value_objects.browse_filters import (
    DEFAULT_MAX_DISTANCE_MILES,
    MAX_AGE_SENTINEL,
    MAX_DISTANCE_SENTINEL_MILES,
    MIN_AGE_SENTINEL,
    BrowseFilters,
    FilterPreferences,
    km_to_miles,
    miles_to_km,
)
from prema.domain.value_objects.distance import format_distance

__all__ = [
    "DEFAULT_MAX_DISTANCE_MILES",
    "MAX_AGE_SENTINEL",
    "MAX_DISTANCE_SENTINEL_MILES",
    "MIN_AGE_SENTINEL",
    "BrowseFilters",
    "FilterPreferences",
    "format_distance",
    "km_to_miles",
    "miles_to_km",
]
