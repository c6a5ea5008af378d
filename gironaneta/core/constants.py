"""
Girona Neta - Constants and Reference Data
Static values used throughout the application.
"""

from typing import Dict, Tuple

# =============================================================================
# GEOFENCE
# =============================================================================

# Girona city center (latitude, longitude)
GIRONA_CENTER: Tuple[float, float] = (41.9794, 2.8214)

# Mean Earth radius in meters
EARTH_RADIUS_M = 6371000.0

# Reverse geocoding cache key precision (~1.1 m)
GEOCODE_CACHE_DECIMALS = 5

# =============================================================================
# REPORTS
# =============================================================================

REPORT_CATEGORIES: Tuple[str, ...] = ("waste", "litter")

MAX_DESCRIPTION_LENGTH = 2000

RATE_LIMIT_WINDOW_MINUTES = 60

MEDIA_MIME_TYPE = "image/jpeg"

# Maximum length of the stored last_error string
LAST_ERROR_MAX_LENGTH = 500

# =============================================================================
# FCC MEDI AMBIENT
# =============================================================================

# Our categories mapped to the agency's type/ambit/option codes
FCC_CATEGORY_CODES: Dict[str, Dict[str, str]] = {
    "waste": {"type": "008", "ambit": "000", "option": "202"},   # Residus a la via pública
    "litter": {"type": "009", "ambit": "000", "option": "211"},  # Brutícia al carrer
}

FCC_CATEGORY_LABELS: Dict[str, str] = {
    "waste": "Residus a la via pública",
    "litter": "Brutícia al carrer",
}

FCC_ERROR_ID = "E000"
FCC_CONTACT_NAME = "Girona Neta"
FCC_LANGUAGE = "ca"
FCC_ATTACHMENT_NAME = "foto_1.jpg"

# =============================================================================
# REPLIES
# =============================================================================

REPLY_TEXT_MAX_LENGTH = 5000
REPLY_FROM_MAX_LENGTH = 200
RAW_FALLBACK_LENGTH = 2000
UNPARSEABLE_BODY_TEXT = "(Could not parse email body)"
