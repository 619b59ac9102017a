"""
Straight-line geometry for pickups and car positions.

Used when the maps service cannot give a driving time, and for rounding
coordinates into cache keys.
"""

from math import radians, cos, sin, asin, sqrt

EARTH_RADIUS_METERS = 6371000


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle (haversine) distance between two points, in meters."""
    phi1, lam1, phi2, lam2 = (radians(float(v)) for v in (lat1, lon1, lat2, lon2))
    h = sin((phi2 - phi1) / 2) ** 2 + cos(phi1) * cos(phi2) * sin((lam2 - lam1) / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * asin(sqrt(h))


def drive_seconds(meters: float, speed_kmh: float) -> float:
    """Seconds to cover a distance at a constant speed."""
    return meters / (speed_kmh * 1000 / 3600)


def round_coordinate(value: float, places: int = 4) -> float:
    """Round a coordinate for use in cache keys (4 places is ~11m)."""
    return round(float(value), places)
