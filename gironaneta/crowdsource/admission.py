"""
Admission gate for citizen reports
Honeypot, field validation, geofence and per-submitter rate limiting
"""

import hashlib
import logging
import math
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping, Optional

from gironaneta.core.config import settings
from gironaneta.core.constants import (
    MAX_DESCRIPTION_LENGTH,
    RATE_LIMIT_WINDOW_MINUTES,
    REPORT_CATEGORIES,
)
from gironaneta.core.errors import GeofenceError, RateLimitError, ValidationError
from gironaneta.core.geo_utils import distance_to_center
from gironaneta.crowdsource.capabilities import AdmissionResult, CapabilityIssuer
from gironaneta.database.models import utcnow
from gironaneta.database.repository import ReportRepository

logger = logging.getLogger(__name__)


@dataclass
class ReportSubmission:
    """Raw admission request as received from the client."""
    lat: float
    lon: float
    category: str
    photo_count: int
    description: Optional[str] = None
    honeypot: Optional[str] = None
    device_id: Optional[str] = None
    client_address: str = "unknown"


def hash_client_address(address: str) -> str:
    """One-way SHA-256 digest of a network address, hex encoded."""
    return hashlib.sha256(address.encode("utf-8")).hexdigest()


def extract_client_address(
    headers: Mapping[str, str],
    peer: Optional[str] = None
) -> str:
    """
    Resolve the caller's address behind proxies.

    First hop of X-Forwarded-For, then CF-Connecting-IP, then the socket peer.
    """
    forwarded = headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop

    cf_address = headers.get("cf-connecting-ip", "").strip()
    if cf_address:
        return cf_address

    return peer or "unknown"


def _is_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


class AdmissionGate:
    """
    Decides whether a submission becomes a report.

    Validation, geofence and rate-limit failures are raised before anything
    is written. The rate limit is a count followed by an insert with no lock
    between them, so concurrent submissions from one address can exceed it.
    """

    def __init__(
        self,
        repository: ReportRepository,
        issuer: CapabilityIssuer,
        service_radius_m: Optional[int] = None,
        max_photos: Optional[int] = None,
        rate_limit_per_hour: Optional[int] = None,
    ):
        self.repository = repository
        self.issuer = issuer
        self.service_radius_m = service_radius_m or settings.service_radius_m
        self.max_photos = max_photos or settings.max_photos
        self.rate_limit_per_hour = rate_limit_per_hour or settings.rate_limit_per_hour

    async def admit(self, submission: ReportSubmission) -> AdmissionResult:
        """
        Admit a submission and hand it to the capability issuer.

        Args:
            submission: Client request

        Returns:
            AdmissionResult with the report id and upload capabilities

        Raises:
            ValidationError, GeofenceError, RateLimitError
        """
        if submission.honeypot:
            # Looks like success so automated submitters learn nothing
            logger.info("Honeypot triggered, discarding submission")
            return AdmissionResult(report_id=str(uuid.uuid4()), upload_capabilities=[])

        description = self._validate(submission)

        distance = distance_to_center(submission.lat, submission.lon)
        inside_service_area = distance <= self.service_radius_m
        if not inside_service_area:
            raise GeofenceError("Location is outside the Girona service area")

        ip_hash = hash_client_address(submission.client_address)
        since = utcnow() - timedelta(minutes=RATE_LIMIT_WINDOW_MINUTES)
        recent = await self.repository.count_recent_by_submitter(ip_hash, since)
        if recent >= self.rate_limit_per_hour:
            logger.warning(f"Rate limit hit for submitter {ip_hash[:12]}: {recent} reports in window")
            raise RateLimitError("Too many requests. Please try again later.")

        return await self.issuer.issue(
            lat=submission.lat,
            lon=submission.lon,
            distance_m=distance,
            inside_service_area=inside_service_area,
            category=submission.category,
            photo_count=submission.photo_count,
            ip_hash=ip_hash,
            description=description,
            device_id=submission.device_id or None,
        )

    def _validate(self, submission: ReportSubmission) -> Optional[str]:
        """Check field constraints; returns the normalized description."""
        if not _is_number(submission.lat) or not -90 <= submission.lat <= 90:
            raise ValidationError("Invalid latitude")
        if not _is_number(submission.lon) or not -180 <= submission.lon <= 180:
            raise ValidationError("Invalid longitude")

        photo_count = submission.photo_count
        if (
            isinstance(photo_count, bool)
            or not isinstance(photo_count, int)
            or not 1 <= photo_count <= self.max_photos
        ):
            raise ValidationError(f"photo_count must be 1-{self.max_photos}")

        if submission.category not in REPORT_CATEGORIES:
            raise ValidationError('category must be "waste" or "litter"')

        description = (submission.description or "").strip()
        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"description must be at most {MAX_DESCRIPTION_LENGTH} characters"
            )

        return description or None
