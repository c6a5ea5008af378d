"""
Database module for Girona Neta
Async SQLAlchemy persistence for reports, media and the geocode cache
"""

from .connection import DatabaseConnection, get_db, init_db, get_session
from .models import (
    Base,
    Report,
    ReportMedia,
    ReportStatus,
    GeocodeCacheEntry,
    AdminUser,
    utcnow,
)
from .repository import ReportRepository

__all__ = [
    "DatabaseConnection",
    "get_db",
    "init_db",
    "get_session",
    "Base",
    "Report",
    "ReportMedia",
    "ReportStatus",
    "GeocodeCacheEntry",
    "AdminUser",
    "utcnow",
    "ReportRepository",
]
