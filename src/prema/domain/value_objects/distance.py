"""Human-readable distance labels."""

from prema.domain.value_objects.browse_filters import km_to_miles


def format_distance(distance_km: float | None) -> str | None:
    """Format a backend distance (km) for a profile card.

    Returns None when the distance is unknown (no location on either side).
    """
    if not distance_km:
        return None

    distance_miles = km_to_miles(distance_km)
    if distance_miles < 1:
        return "Less than a mile away"
    return f"{round(distance_miles)} miles away"
