"""
Girona Neta - Geospatial Utilities
Distance and coordinate helpers used by the geofence and geocode cache.
"""

import math

from gironaneta.core.constants import EARTH_RADIUS_M, GIRONA_CENTER


def haversine_distance(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates in decimal degrees
        lat2, lon2: Second point coordinates in decimal degrees

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def distance_to_center(latitude: float, longitude: float) -> float:
    """Distance in meters from a point to the Girona reference point."""
    return haversine_distance(latitude, longitude, GIRONA_CENTER[0], GIRONA_CENTER[1])


def round_coordinate(value: float, decimals: int) -> float:
    """Round a coordinate to a fixed number of decimal places."""
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor
