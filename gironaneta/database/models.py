"""
SQLAlchemy models for Girona Neta
Reports, their media placeholders, the geocode cache and the operator allowlist.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, Float, String, Text, Boolean,
    DateTime, ForeignKey, Index, Enum as SQLEnum
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


class ReportStatus(str, enum.Enum):
    """Lifecycle status of a report."""
    PENDING_REVIEW = "pending_review"
    APPROVED_SENDING = "approved_sending"
    SENT = "sent"
    REPLIED = "replied"
    REJECTED = "rejected"
    DELETED = "deleted"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Report(Base):
    """
    Illegal dump report submitted by a citizen.

    Created in pending_review by the admission pipeline; mutated only
    through the lifecycle state machine.
    """
    __tablename__ = "reports"

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    status = Column(
        SQLEnum(
            ReportStatus,
            name="report_status",
            native_enum=False,
            values_callable=_enum_values,
            length=32,
        ),
        nullable=False,
        default=ReportStatus.PENDING_REVIEW,
    )

    # Location
    lat = Column(Float, nullable=False)
    lon = Column(Float, nullable=False)
    distance_to_girona_m = Column(Integer, nullable=False)
    inside_service_area = Column(Boolean, nullable=False)
    address_label = Column(Text, nullable=True)

    # Report details
    description = Column(Text, nullable=True)
    category = Column(String(20), nullable=False)

    # Submitter (hashed network address, never the raw one)
    ip_hash = Column(String(64), nullable=True)
    user_device_id = Column(String(100), nullable=True)

    # Dispatch
    fcc_incident_id = Column(String(100), nullable=True)
    sent_at = Column(DateTime, nullable=True)
    last_error = Column(Text, nullable=True)

    # Agency reply
    reply_text = Column(Text, nullable=True)
    reply_from = Column(String(200), nullable=True)
    replied_at = Column(DateTime, nullable=True)

    media = relationship(
        "ReportMedia",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="ReportMedia.storage_path",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_reports_status_created", status, created_at),
        Index("idx_reports_ip_hash_created", ip_hash, created_at),
        Index("idx_reports_replied_at", replied_at),
    )

    def __repr__(self):
        return f"<Report({self.id}, status={self.status.value}, lat={self.lat}, lon={self.lon})>"

    def to_dict(self, include_media: bool = False) -> dict:
        """Convert to dictionary."""
        data = {
            "id": self.id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "status": self.status.value,
            "lat": self.lat,
            "lon": self.lon,
            "distance_to_girona_m": self.distance_to_girona_m,
            "inside_service_area": self.inside_service_area,
            "address_label": self.address_label,
            "description": self.description,
            "category": self.category,
            "user_device_id": self.user_device_id,
            "fcc_incident_id": self.fcc_incident_id,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "last_error": self.last_error,
            "reply_text": self.reply_text,
            "reply_from": self.reply_from,
            "replied_at": self.replied_at.isoformat() if self.replied_at else None,
        }
        if include_media:
            data["media"] = [m.to_dict() for m in self.media]
        return data


class ReportMedia(Base):
    """
    Photo placeholder owned by a report.

    Size and dimensions stay zero until the client reports the upload.
    """
    __tablename__ = "report_media"

    id = Column(String(36), primary_key=True, default=new_id)
    report_id = Column(
        String(36),
        ForeignKey("reports.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    storage_path = Column(Text, nullable=False)
    mime_type = Column(String(50), nullable=False)
    compressed_bytes = Column(Integer, nullable=False, default=0)
    width = Column(Integer, nullable=False, default=0)
    height = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    report = relationship("Report", back_populates="media")

    def __repr__(self):
        return f"<ReportMedia({self.id}, path={self.storage_path}, bytes={self.compressed_bytes})>"

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "report_id": self.report_id,
            "storage_path": self.storage_path,
            "mime_type": self.mime_type,
            "compressed_bytes": self.compressed_bytes,
            "width": self.width,
            "height": self.height,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class GeocodeCacheEntry(Base):
    """Reverse geocoding result keyed by coordinates rounded to 5 decimals."""
    __tablename__ = "geocode_cache"

    rounded_lat = Column(Float, primary_key=True)
    rounded_lon = Column(Float, primary_key=True)
    address_label = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_geocode_cache_updated", updated_at),
    )

    def __repr__(self):
        return f"<GeocodeCacheEntry({self.rounded_lat}, {self.rounded_lon})>"


class AdminUser(Base):
    """Operator allowlist entry."""
    __tablename__ = "admin_users"

    email = Column(String(255), primary_key=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<AdminUser({self.email})>"
