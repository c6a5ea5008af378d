"""
Capability issuer for admitted reports
Persists the report with its media placeholders and signs one upload URL per photo
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from gironaneta.core.constants import MEDIA_MIME_TYPE
from gironaneta.core.errors import InternalError, NotFoundError, ValidationError
from gironaneta.database.models import Report, ReportMedia, ReportStatus, new_id
from gironaneta.database.repository import ReportRepository
from gironaneta.storage.blob_store import BlobStore, StorageError, UploadCapability

logger = logging.getLogger(__name__)


@dataclass
class AdmissionResult:
    """Envelope returned to the submitting client."""
    report_id: str
    upload_capabilities: List[UploadCapability] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "upload_capabilities": [c.to_dict() for c in self.upload_capabilities],
        }


def media_path(report_id: str, index: int) -> str:
    """Deterministic object path of the index-th photo of a report."""
    return f"{report_id}/{index}.jpg"


class CapabilityIssuer:
    """
    Creates admitted reports and their upload capabilities.

    The report row, its media placeholders and the signed URLs are produced
    inside the caller's transaction: if any capability cannot be issued the
    whole admission fails and the transaction is rolled back.
    """

    def __init__(self, repository: ReportRepository, blob_store: BlobStore):
        self.repository = repository
        self.blob_store = blob_store

    async def issue(
        self,
        lat: float,
        lon: float,
        distance_m: float,
        inside_service_area: bool,
        category: str,
        photo_count: int,
        ip_hash: str,
        description: Optional[str] = None,
        device_id: Optional[str] = None,
    ) -> AdmissionResult:
        """
        Persist a pending_review report and issue its upload capabilities.

        Returns:
            AdmissionResult with one capability per expected photo, in order
        """
        report = await self.repository.add_report(
            Report(
                id=new_id(),
                status=ReportStatus.PENDING_REVIEW,
                lat=lat,
                lon=lon,
                distance_to_girona_m=int(round(distance_m)),
                inside_service_area=inside_service_area,
                description=description,
                category=category,
                ip_hash=ip_hash,
                user_device_id=device_id,
            )
        )

        capabilities: List[UploadCapability] = []
        for index in range(photo_count):
            path = media_path(report.id, index)

            try:
                capability = await self.blob_store.create_upload_capability(path)
            except StorageError as e:
                logger.error(f"Upload capability failed for report {report.id}: {e}")
                raise InternalError("Failed to generate upload URL") from e

            await self.repository.add_media(
                ReportMedia(
                    report_id=report.id,
                    storage_path=path,
                    mime_type=MEDIA_MIME_TYPE,
                    compressed_bytes=0,
                    width=0,
                    height=0,
                )
            )
            capabilities.append(capability)

        logger.info(f"Report {report.id} created with {len(capabilities)} upload slots")

        return AdmissionResult(report_id=report.id, upload_capabilities=capabilities)

    async def complete_upload(
        self,
        report_id: str,
        storage_path: str,
        compressed_bytes: int,
        width: int,
        height: int,
    ) -> ReportMedia:
        """
        Record size and dimensions of a photo the client has uploaded.

        The binary itself is not inspected.
        """
        if compressed_bytes < 0 or width < 0 or height < 0:
            raise ValidationError("Media size and dimensions must be non-negative")

        media = await self.repository.get_media(report_id, storage_path)
        if media is None:
            raise NotFoundError("Media not found")

        media.compressed_bytes = compressed_bytes
        media.width = width
        media.height = height
        await self.repository.session.flush()

        return media
