"""
Report repository for Girona Neta

Thin query layer over an AsyncSession: insert, point lookup, filtered
count, conditional update and geocode upsert.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    AdminUser,
    GeocodeCacheEntry,
    Report,
    ReportMedia,
    ReportStatus,
    utcnow,
)

logger = logging.getLogger(__name__)


class ReportRepository:
    """Data access for reports, media, geocode cache and admins."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    async def add_report(self, report: Report) -> Report:
        """Insert a report and flush so its id is available."""
        self.session.add(report)
        await self.session.flush()
        return report

    async def get_report(self, report_id: str) -> Optional[Report]:
        """Point lookup by id, always reloading from the database."""
        result = await self.session.execute(
            select(Report)
            .where(Report.id == report_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_reports(
        self,
        status: Optional[ReportStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Report]:
        """List reports newest first, optionally filtered by status."""
        query = select(Report).order_by(Report.created_at.desc())
        if status is not None:
            query = query.where(Report.status == status)
        result = await self.session.execute(query.limit(limit).offset(offset))
        return list(result.scalars().all())

    async def count_recent_by_submitter(self, ip_hash: str, since: datetime) -> int:
        """Count reports from a hashed submitter created at or after `since`."""
        result = await self.session.execute(
            select(func.count())
            .select_from(Report)
            .where(Report.ip_hash == ip_hash, Report.created_at >= since)
        )
        return int(result.scalar_one())

    async def update_report(
        self,
        report_id: str,
        values: Dict[str, Any],
        expected_status: Optional[Iterable[ReportStatus]] = None,
    ) -> bool:
        """
        Update a report by id.

        When expected_status is given the update only applies if the current
        status is one of them (compare-and-set).

        Returns:
            True if a row was updated
        """
        stmt = update(Report).where(Report.id == report_id)
        if expected_status is not None:
            stmt = stmt.where(Report.status.in_(list(expected_status)))
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        result = await self.session.execute(stmt)
        return result.rowcount == 1

    # -------------------------------------------------------------------------
    # Media
    # -------------------------------------------------------------------------

    async def add_media(self, media: ReportMedia) -> ReportMedia:
        self.session.add(media)
        await self.session.flush()
        return media

    async def get_media(self, report_id: str, storage_path: str) -> Optional[ReportMedia]:
        result = await self.session.execute(
            select(ReportMedia).where(
                ReportMedia.report_id == report_id,
                ReportMedia.storage_path == storage_path,
            )
        )
        return result.scalar_one_or_none()

    # -------------------------------------------------------------------------
    # Geocode cache
    # -------------------------------------------------------------------------

    async def get_geocode(self, rounded_lat: float, rounded_lon: float) -> Optional[GeocodeCacheEntry]:
        return await self.session.get(GeocodeCacheEntry, (rounded_lat, rounded_lon))

    async def upsert_geocode(
        self,
        rounded_lat: float,
        rounded_lon: float,
        address_label: str,
    ) -> GeocodeCacheEntry:
        """Insert or replace the cached label for a rounded coordinate key."""
        entry = await self.session.merge(
            GeocodeCacheEntry(
                rounded_lat=rounded_lat,
                rounded_lon=rounded_lon,
                address_label=address_label,
                updated_at=utcnow(),
            )
        )
        await self.session.flush()
        return entry

    # -------------------------------------------------------------------------
    # Operators
    # -------------------------------------------------------------------------

    async def is_admin(self, email: str) -> bool:
        result = await self.session.execute(
            select(AdminUser.email).where(func.lower(AdminUser.email) == email.lower())
        )
        return result.scalar_one_or_none() is not None
