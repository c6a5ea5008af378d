"""
Girona Neta - REST API

FastAPI application for illegal dump reports: citizen admission, operator
review and dispatch to FCC Medi Ambient, agency reply ingestion and
reverse geocoding.

Run with: uvicorn gironaneta.api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from gironaneta import __version__
from gironaneta.api.auth import Operator, require_operator, verify_webhook_secret
from gironaneta.core.config import settings
from gironaneta.core.errors import ErrorCode, GironaNetaError, NotFoundError, ValidationError
from gironaneta.core.logging import setup_logging
from gironaneta.crowdsource.admission import (
    AdmissionGate,
    ReportSubmission,
    extract_client_address,
)
from gironaneta.crowdsource.capabilities import CapabilityIssuer
from gironaneta.database.connection import get_db, get_session
from gironaneta.database.models import Report, ReportStatus, utcnow
from gironaneta.database.repository import ReportRepository
from gironaneta.dispatch.dispatcher import DispatchAdapter
from gironaneta.dispatch.fcc_client import FCCClient
from gironaneta.geocoding.geocode_cache import GeocodeCache, NominatimClient
from gironaneta.replies.normalizer import ReplyNormalizer
from gironaneta.storage.blob_store import BlobStore, get_blob_store
from gironaneta.workflow.lifecycle import ReportLifecycle

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    db = get_db()
    # Production schema is managed by Alembic
    if not settings.is_production:
        await db.create_tables()
    logger.info(f"Girona Neta API started ({settings.app_env})")
    yield
    await db.close()


# FastAPI app
app = FastAPI(
    title="Girona Neta",
    description="Illegal dump reporting: citizen intake, operator dispatch to FCC Medi Ambient and reply tracking",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Error Handling
# ============================================================================

@app.exception_handler(GironaNetaError)
async def gironaneta_error_handler(request: Request, exc: GironaNetaError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", []) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(
        status_code=400,
        content={"error": message, "code": ErrorCode.VALIDATION.value},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "code": ErrorCode.INTERNAL.value},
    )


# ============================================================================
# Pydantic Models
# ============================================================================

class HealthResponse(BaseModel):
    """API health check response."""
    status: str
    version: str
    timestamp: str
    database: bool


class ReportCreateRequest(BaseModel):
    """Citizen report submission."""
    lat: float
    lon: float
    category: str
    photo_count: int
    description: Optional[str] = None
    honeypot: Optional[str] = None
    device_id: Optional[str] = Field(default=None, max_length=100)


class UploadCapabilityResponse(BaseModel):
    """Signed upload URL for one photo."""
    path: str
    capability: str


class ReportCreateResponse(BaseModel):
    """Admission envelope."""
    report_id: str
    upload_capabilities: List[UploadCapabilityResponse]


class MediaCompleteRequest(BaseModel):
    """Client notification that a photo has been uploaded."""
    path: str
    compressed_bytes: int = Field(..., ge=0)
    width: int = Field(..., ge=0)
    height: int = Field(..., ge=0)


class MediaResponse(BaseModel):
    """Report photo metadata."""
    id: str
    report_id: str
    storage_path: str
    mime_type: str
    compressed_bytes: int
    width: int
    height: int
    created_at: Optional[str]


class ReportResponse(BaseModel):
    """Report as seen by operators."""
    id: str
    created_at: Optional[str]
    status: str
    lat: float
    lon: float
    distance_to_girona_m: int
    inside_service_area: bool
    address_label: Optional[str]
    description: Optional[str]
    category: str
    user_device_id: Optional[str]
    fcc_incident_id: Optional[str]
    sent_at: Optional[str]
    last_error: Optional[str]
    reply_text: Optional[str]
    reply_from: Optional[str]
    replied_at: Optional[str]
    media: List[MediaResponse] = []


class ReportListResponse(BaseModel):
    """List of reports."""
    count: int
    reports: List[ReportResponse]


class DispatchRequest(BaseModel):
    """Operator dispatch trigger."""
    report_id: str = Field(..., min_length=1)


class DispatchResponse(BaseModel):
    """Successful dispatch."""
    success: bool
    report_id: str
    external_correlation_id: Optional[str]


class AddressUpdateRequest(BaseModel):
    """Operator correction of the address label."""
    address_label: Optional[str] = Field(default=None, max_length=500)


class ReplyRequest(BaseModel):
    """Normalized agency reply."""
    report_id: Optional[str] = None
    reply_text: Optional[str] = None
    reply_from: Optional[str] = None


class ReplyResponse(BaseModel):
    """Reply ingestion acknowledgement."""
    success: bool
    report_id: str


class InboundEmailRequest(BaseModel):
    """Raw email handed over by the mail transport."""
    to: str
    sender: Optional[str] = Field(default=None, alias="from")
    raw: str


class GeocodeRequest(BaseModel):
    """Coordinates to resolve."""
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class GeocodeResponse(BaseModel):
    """Resolved address label (possibly empty)."""
    address_label: str


def _report_response(report: Report) -> ReportResponse:
    return ReportResponse(**report.to_dict(include_media=True))


# ============================================================================
# Service Dependencies
# ============================================================================

def get_fcc_client() -> FCCClient:
    return FCCClient()


def get_nominatim_client() -> NominatimClient:
    return NominatimClient()


def get_reply_normalizer() -> ReplyNormalizer:
    return ReplyNormalizer()


# ============================================================================
# System Routes
# ============================================================================

@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """Check API health and database connectivity."""
    database_ok = await get_db().check_connection()
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=__version__,
        timestamp=utcnow().isoformat(),
        database=database_ok,
    )


# ============================================================================
# Citizen Routes
# ============================================================================

@app.post("/api/v1/reports", response_model=ReportCreateResponse, tags=["Reports"])
async def create_report(
    body: ReportCreateRequest,
    request: Request,
    session: AsyncSession = Depends(get_session),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """
    Submit an illegal dump report.

    Returns the report id and one signed upload URL per declared photo.
    """
    repository = ReportRepository(session)
    gate = AdmissionGate(repository, CapabilityIssuer(repository, blob_store))

    submission = ReportSubmission(
        lat=body.lat,
        lon=body.lon,
        category=body.category,
        photo_count=body.photo_count,
        description=body.description,
        honeypot=body.honeypot,
        device_id=body.device_id,
        client_address=extract_client_address(
            request.headers,
            request.client.host if request.client else None,
        ),
    )

    result = await gate.admit(submission)
    return result.to_dict()


@app.post("/api/v1/reports/{report_id}/media/complete", response_model=MediaResponse, tags=["Reports"])
async def complete_media_upload(
    report_id: str,
    body: MediaCompleteRequest,
    session: AsyncSession = Depends(get_session),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Record size and dimensions of an uploaded photo."""
    repository = ReportRepository(session)
    media = await CapabilityIssuer(repository, blob_store).complete_upload(
        report_id,
        body.path,
        body.compressed_bytes,
        body.width,
        body.height,
    )
    return MediaResponse(**media.to_dict())


@app.post("/api/v1/geocode/reverse", response_model=GeocodeResponse, tags=["Geocoding"])
async def reverse_geocode(
    body: GeocodeRequest,
    session: AsyncSession = Depends(get_session),
    client: NominatimClient = Depends(get_nominatim_client),
):
    """Resolve coordinates to a short address label; empty when unavailable."""
    cache = GeocodeCache(ReportRepository(session), client)
    label = await cache.lookup(body.lat, body.lon)
    return GeocodeResponse(address_label=label)


# ============================================================================
# Operator Routes
# ============================================================================

@app.get("/api/v1/admin/reports", response_model=ReportListResponse, tags=["Operators"])
async def list_reports(
    status: Optional[ReportStatus] = Query(None, description="Filter by status"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    operator: Operator = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
):
    """List reports newest first."""
    reports = await ReportRepository(session).list_reports(status, limit, offset)
    return ReportListResponse(
        count=len(reports),
        reports=[_report_response(r) for r in reports],
    )


@app.get("/api/v1/admin/reports/{report_id}", response_model=ReportResponse, tags=["Operators"])
async def get_report(
    report_id: str,
    operator: Operator = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
):
    """Get a report with its media."""
    report = await ReportRepository(session).get_report(report_id)
    if report is None:
        raise NotFoundError("Report not found")
    return _report_response(report)


@app.post("/api/v1/admin/reports/dispatch", response_model=DispatchResponse, tags=["Operators"])
async def dispatch_report(
    body: DispatchRequest,
    operator: Operator = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
    blob_store: BlobStore = Depends(get_blob_store),
    fcc_client: FCCClient = Depends(get_fcc_client),
):
    """
    Submit a report to FCC Medi Ambient.

    On failure the report returns to pending_review with last_error set.
    """
    logger.info(f"Operator {operator.email} dispatching report {body.report_id}")

    repository = ReportRepository(session)
    adapter = DispatchAdapter(session, ReportLifecycle(repository), blob_store, fcc_client)

    result = await adapter.dispatch(body.report_id)
    if not result.success:
        raise result.to_error()

    return DispatchResponse(**result.to_dict())


@app.post("/api/v1/admin/reports/{report_id}/reject", response_model=ReportResponse, tags=["Operators"])
async def reject_report(
    report_id: str,
    operator: Operator = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
):
    """Decline a report."""
    logger.info(f"Operator {operator.email} rejecting report {report_id}")
    report = await ReportLifecycle(ReportRepository(session)).reject(report_id)
    return _report_response(report)


@app.post("/api/v1/admin/reports/{report_id}/delete", response_model=ReportResponse, tags=["Operators"])
async def delete_report(
    report_id: str,
    operator: Operator = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
):
    """Mark a report deleted."""
    logger.info(f"Operator {operator.email} deleting report {report_id}")
    report = await ReportLifecycle(ReportRepository(session)).delete(report_id)
    return _report_response(report)


@app.patch("/api/v1/admin/reports/{report_id}/address", response_model=ReportResponse, tags=["Operators"])
async def update_address(
    report_id: str,
    body: AddressUpdateRequest,
    operator: Operator = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
):
    """Correct the address label sent to the agency."""
    report = await ReportLifecycle(ReportRepository(session)).set_address_label(
        report_id, body.address_label
    )
    return _report_response(report)


# ============================================================================
# Reply Routes
# ============================================================================

@app.post(
    "/api/v1/replies",
    response_model=ReplyResponse,
    tags=["Replies"],
    dependencies=[Depends(verify_webhook_secret)],
)
async def receive_reply(
    body: ReplyRequest,
    session: AsyncSession = Depends(get_session),
):
    """Store an agency reply for a dispatched report."""
    if not body.report_id:
        raise ValidationError("report_id required")
    if not body.reply_text:
        raise ValidationError("reply_text required")

    await ReportLifecycle(ReportRepository(session)).record_reply(
        body.report_id, body.reply_text, body.reply_from
    )
    return ReplyResponse(success=True, report_id=body.report_id)


@app.post(
    "/api/v1/inbound-email",
    response_model=ReplyResponse,
    tags=["Replies"],
    dependencies=[Depends(verify_webhook_secret)],
)
async def inbound_email(
    body: InboundEmailRequest,
    normalizer: ReplyNormalizer = Depends(get_reply_normalizer),
):
    """Raw email from the mail transport; normalized and forwarded to /api/v1/replies."""
    result = await normalizer.process(body.raw, body.to, body.sender)
    return ReplyResponse(success=True, report_id=result.get("report_id", ""))


# ============================================================================
# Main
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
