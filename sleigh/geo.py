"""
Distance and alert-volume calculations for the proximity alert.

Distances are great-circle distances on a spherical earth, which is well
within GPS accuracy at the few-kilometre scale of a tour route.
"""

from __future__ import annotations

import math

from sleigh.models import Position

EARTH_RADIUS_METERS = 6371e3

# Viewers closer than this hear the sleigh bells.
ALERT_DISTANCE_METERS = 500.0


def haversine_distance(a: Position, b: Position) -> int:
    """
    Great-circle distance between two points.

    Args:
        a: First point
        b: Second point

    Returns:
        Distance in meters, rounded to the nearest meter
    """
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    delta_phi = math.radians(b.lat - a.lat)
    delta_lambda = math.radians(b.lng - a.lng)

    h = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return round(EARTH_RADIUS_METERS * c)


def alert_volume(distance: float, threshold: float = ALERT_DISTANCE_METERS) -> float:
    """
    Volume of the alert for a viewer ``distance`` meters from the sleigh.

    Fades linearly from 1.0 at the sleigh to 0.0 at ``threshold``.
    """
    return max(0.0, min(1.0, 1 - distance / threshold))


def offset_north(origin: Position, meters: float) -> Position:
    """Return the point ``meters`` due north of ``origin``."""
    delta_lat = math.degrees(meters / EARTH_RADIUS_METERS)
    return Position(origin.lat + delta_lat, origin.lng)
