"""Unit tests for browse filters and their sentinel handling."""

import pytest

from prema.domain.value_objects import (
    BrowseFilters,
    FilterPreferences,
    km_to_miles,
    miles_to_km,
)


class TestDistanceConversion:
    """Tests for the mile/kilometre helpers."""

    def test_miles_to_km(self) -> None:
        """15 miles is about 24 km."""
        assert round(miles_to_km(15)) == 24

    def test_km_to_miles(self) -> None:
        """100 km is about 62 miles."""
        assert round(km_to_miles(100)) == 62

    def test_conversions_are_inverse(self) -> None:
        """Converting back and forth returns the original value."""
        assert km_to_miles(miles_to_km(42.0)) == pytest.approx(42.0)


class TestBrowseFiltersQueryParams:
    """Tests for BrowseFilters.to_query_params()."""

    def test_sentinels_are_omitted(self) -> None:
        """min_age=18, max_age=80 and 125 miles mean "no constraint" and are not sent."""
        filters = BrowseFilters(min_age=18, max_age=80, max_distance_miles=125)

        assert filters.to_query_params() == {}

    def test_distance_beyond_sentinel_is_omitted(self) -> None:
        """Anything at or above 125 miles is unconstrained."""
        assert "max_distance" not in BrowseFilters(max_distance_miles=300).to_query_params()

    def test_non_sentinel_values_are_sent(self) -> None:
        """Values inside the ranges are sent, distance converted to km."""
        filters = BrowseFilters(min_age=25, max_age=35, max_distance_miles=15)

        assert filters.to_query_params() == {
            "min_age": 25,
            "max_age": 35,
            "max_distance": 24,
        }

    def test_distance_is_rounded_km(self) -> None:
        """124 miles is sent as 200 km."""
        assert BrowseFilters(max_distance_miles=124).to_query_params() == {
            "max_distance": 200
        }

    def test_zero_distance_is_omitted(self) -> None:
        """A zero distance is treated as unset."""
        assert BrowseFilters(max_distance_miles=0).to_query_params() == {}

    def test_paging_always_sent_when_set(self) -> None:
        """skip and limit are sent even when zero."""
        params = BrowseFilters(skip=0, limit=10).to_query_params()

        assert params == {"skip": 0, "limit": 10}

    def test_gender_only_when_non_empty(self) -> None:
        """An empty gender string is not sent."""
        assert "gender" not in BrowseFilters(gender="").to_query_params()
        assert BrowseFilters(gender="female").to_query_params() == {"gender": "female"}

    def test_next_page_keeps_filters(self) -> None:
        """next_page() only moves the cursor."""
        filters = BrowseFilters(skip=0, limit=10, min_age=30)

        advanced = filters.next_page(10)

        assert advanced.skip == 10
        assert advanced.limit == 10
        assert advanced.min_age == 30
        assert filters.skip == 0


class TestFilterPreferences:
    """Tests for the saved slider blob."""

    def test_defaults(self) -> None:
        """Defaults are 15 miles and the full age range."""
        prefs = FilterPreferences()

        assert prefs.max_distance_miles == 15
        assert prefs.min_age == 18
        assert prefs.max_age == 80

    def test_from_dict_uses_mobile_keys(self) -> None:
        """The blob uses camelCase keys and ages are rounded."""
        prefs = FilterPreferences.from_dict({"maxDistance": 30, "minAge": 22.6, "maxAge": 40})

        assert prefs.max_distance_miles == 30.0
        assert prefs.min_age == 23
        assert prefs.max_age == 40

    def test_from_dict_missing_keys_keep_defaults(self) -> None:
        """Partial blobs fall back per key."""
        prefs = FilterPreferences.from_dict({"minAge": 21})

        assert prefs == FilterPreferences(min_age=21)

    def test_to_dict(self) -> None:
        """to_dict() writes the camelCase layout back."""
        assert FilterPreferences(max_distance_miles=50, min_age=20, max_age=60).to_dict() == {
            "maxDistance": 50,
            "minAge": 20,
            "maxAge": 60,
        }

    def test_default_preferences_only_send_distance(self) -> None:
        """With default sliders only the 15 mile radius constrains the query."""
        query = FilterPreferences().to_browse_filters(skip=0, limit=10)

        assert query.to_query_params() == {"skip": 0, "limit": 10, "max_distance": 24}
