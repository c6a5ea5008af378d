"""
Girona Neta - Core Utilities
Central configuration, errors, and geospatial helpers.
"""

from gironaneta.core.config import settings, get_settings, Settings
from gironaneta.core.constants import (
    GIRONA_CENTER,
    REPORT_CATEGORIES,
    FCC_CATEGORY_CODES,
)
from gironaneta.core.errors import (
    ErrorCode,
    GironaNetaError,
    ValidationError,
    GeofenceError,
    RateLimitError,
    AuthorizationError,
    ForbiddenError,
    NotFoundError,
    InvalidTransitionError,
    UpstreamError,
    InternalError,
)
from gironaneta.core.geo_utils import (
    haversine_distance,
    distance_to_center,
    round_coordinate,
)

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "GIRONA_CENTER",
    "REPORT_CATEGORIES",
    "FCC_CATEGORY_CODES",
    "ErrorCode",
    "GironaNetaError",
    "ValidationError",
    "GeofenceError",
    "RateLimitError",
    "AuthorizationError",
    "ForbiddenError",
    "NotFoundError",
    "InvalidTransitionError",
    "UpstreamError",
    "InternalError",
    "haversine_distance",
    "distance_to_center",
    "round_coordinate",
]
