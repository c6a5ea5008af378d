"""
Girona Neta - Geocoding Module
Cached, throttled reverse geocoding via Nominatim.
"""

from gironaneta.geocoding.geocode_cache import (
    GeocodeCache,
    NominatimClient,
    address_label_from_display_name,
    reset_throttle,
)

__all__ = [
    "GeocodeCache",
    "NominatimClient",
    "address_label_from_display_name",
    "reset_throttle",
]
