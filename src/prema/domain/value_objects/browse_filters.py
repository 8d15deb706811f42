"""Browse filters and their "no constraint" sentinels.

Hey future me - the filter sliders in the UI run from 18 to 80 years and up to 125 miles.
The ENDS of those ranges mean "don't care", not "exactly 18" or "exactly 125 miles".
Sending them would over-constrain the server query (e.g. hide everyone with no
location when max_distance=125 is applied), so to_query_params() drops any filter
sitting on its sentinel.

Distances are held in MILES (what the user sees) and sent in KILOMETRES (what the
backend filters on).
"""

from dataclasses import dataclass, replace
from typing import Any

MIN_AGE_SENTINEL = 18
MAX_AGE_SENTINEL = 80
MAX_DISTANCE_SENTINEL_MILES = 125
DEFAULT_MAX_DISTANCE_MILES = 15

KM_PER_MILE_FACTOR = 0.621371  # miles = km * factor


def km_to_miles(distance_km: float) -> float:
    """Convert kilometres to miles."""
    return distance_km * KM_PER_MILE_FACTOR


def miles_to_km(distance_miles: float) -> float:
    """Convert miles to kilometres."""
    return distance_miles / KM_PER_MILE_FACTOR


@dataclass(frozen=True)
class BrowseFilters:
    """Query for one discovery page."""

    skip: int | None = None
    limit: int | None = None
    min_age: int | None = None
    max_age: int | None = None
    gender: str | None = None
    max_distance_miles: float | None = None

    def next_page(self, skip: int) -> "BrowseFilters":
        """Same filters, advanced cursor."""
        return replace(self, skip=skip)

    def to_query_params(self) -> dict[str, Any]:
        """Build the query string for GET /discovery/browse, sentinels omitted."""
        params: dict[str, Any] = {}
        if self.skip is not None:
            params["skip"] = self.skip
        if self.limit is not None:
            params["limit"] = self.limit
        if self.min_age is not None and self.min_age > MIN_AGE_SENTINEL:
            params["min_age"] = round(self.min_age)
        if self.max_age is not None and self.max_age < MAX_AGE_SENTINEL:
            params["max_age"] = round(self.max_age)
        if self.gender:
            params["gender"] = self.gender
        if (
            self.max_distance_miles
            and 0 < self.max_distance_miles < MAX_DISTANCE_SENTINEL_MILES
        ):
            params["max_distance"] = round(miles_to_km(self.max_distance_miles))
        return params


@dataclass(frozen=True)
class FilterPreferences:
    """The user's saved browse sliders (persisted across restarts)."""

    max_distance_miles: float = DEFAULT_MAX_DISTANCE_MILES
    min_age: int = MIN_AGE_SENTINEL
    max_age: int = MAX_AGE_SENTINEL

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FilterPreferences":
        """Read the stored blob; missing keys keep their defaults."""
        defaults = cls()
        return cls(
            max_distance_miles=float(data.get("maxDistance", defaults.max_distance_miles)),
            min_age=int(round(float(data.get("minAge", defaults.min_age)))),
            max_age=int(round(float(data.get("maxAge", defaults.max_age)))),
        )

    def to_dict(self) -> dict[str, Any]:
        """Blob layout stored under the browse filters key."""
        return {
            "maxDistance": self.max_distance_miles,
            "minAge": self.min_age,
            "maxAge": self.max_age,
        }

    def to_browse_filters(self, skip: int | None = None, limit: int | None = None) -> BrowseFilters:
        """Turn the sliders into a page query."""
        return BrowseFilters(
            skip=skip,
            limit=limit,
            min_age=self.min_age,
            max_age=self.max_age,
            max_distance_miles=self.max_distance_miles,
        )
