"""
FCC Medi Ambient ingestion client for Girona Neta

Submits incident cards to the city's waste contractor. The endpoint answers
with loosely structured JSON:

- {"id": "E000", "name": "<message>"} on error
- {"altainc": "<incident id>"} or {"resultado": "1", "mensaje": ""} on success

parse_fcc_response() turns every answer into DispatchSuccess or
DispatchFailure so callers never inspect raw fields.
"""

import json
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

import httpx

from gironaneta.core.config import settings
from gironaneta.core.constants import (
    FCC_ATTACHMENT_NAME,
    FCC_CATEGORY_CODES,
    FCC_CATEGORY_LABELS,
    FCC_CONTACT_NAME,
    FCC_ERROR_ID,
    FCC_LANGUAGE,
    MEDIA_MIME_TYPE,
)
from gironaneta.database.models import Report

logger = logging.getLogger(__name__)

BODY_EXCERPT_LENGTH = 200


class FailureCode:
    """Stable reasons a dispatch attempt can fail."""
    HTTP_STATUS = "http_status"
    INVALID_RESPONSE = "invalid_response"
    AGENCY_ERROR = "agency_error"
    TRANSPORT = "transport_error"
    NO_MEDIA = "no_media"
    INVALID_CATEGORY = "invalid_category"


@dataclass
class DispatchSuccess:
    """The agency accepted the incident."""
    incident_id: Optional[str]


@dataclass
class DispatchFailure:
    """The agency (or our preparation) rejected the incident."""
    code: str
    message: str


DispatchOutcome = Union[DispatchSuccess, DispatchFailure]


def parse_fcc_response(status_code: int, body: str) -> DispatchOutcome:
    """
    Interpret an ingestion endpoint response.

    Args:
        status_code: HTTP status code
        body: Raw response body

    Returns:
        DispatchSuccess with the incident id, or DispatchFailure
    """
    excerpt = body[:BODY_EXCERPT_LENGTH]

    if not 200 <= status_code < 300:
        return DispatchFailure(
            FailureCode.HTTP_STATUS, f"FCC error ({status_code}): {excerpt}"
        )

    try:
        data = json.loads(body)
    except ValueError:
        return DispatchFailure(
            FailureCode.INVALID_RESPONSE, f"FCC error ({status_code}): {excerpt}"
        )

    if not isinstance(data, dict):
        return DispatchFailure(
            FailureCode.INVALID_RESPONSE, f"FCC error ({status_code}): {excerpt}"
        )

    if data.get("id") == FCC_ERROR_ID:
        detail = data.get("name") or json.dumps(data)
        return DispatchFailure(FailureCode.AGENCY_ERROR, f"FCC error: {detail}")

    incident_id = data.get("altainc") or data.get("resultado")
    return DispatchSuccess(incident_id=str(incident_id) if incident_id else None)


def build_observations(report: Report) -> str:
    """Free-text observations: category label, description and a back-reference."""
    label = FCC_CATEGORY_LABELS.get(report.category, report.category)
    observations = f"[{label}]"
    if report.description:
        observations += f"\n{report.description}"
    observations += f"\n\nRef: {report.id}"
    return observations


def build_fields(report: Report, reply_to: str) -> Dict[str, str]:
    """
    Structured form fields of an incident card.

    Args:
        report: Report being dispatched (category must be mapped)
        reply_to: Plus-addressed mailbox that routes agency replies back

    Returns:
        Form fields, excluding the attachment
    """
    codes = FCC_CATEGORY_CODES[report.category]
    address = report.address_label or f"{report.lat:.6f}, {report.lon:.6f}"

    return {
        "phone": "-",
        "email": reply_to,
        "contact": FCC_CONTACT_NAME,
        "address": address,
        "observations": build_observations(report),
        "filename": FCC_ATTACHMENT_NAME,
        "language": FCC_LANGUAGE,
        "lat": str(report.lat),
        "lng": str(report.lon),
        "type": codes["type"],
        "ambit": codes["ambit"],
        "option": codes["option"],
        "g-recaptcha-response": "-",
    }


class FCCClient:
    """
    Client for the FCC Medi Ambient incident submission endpoint.

    Usage:
        client = FCCClient()
        outcome = await client.submit(fields, photo_bytes)
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize FCC client.

        Args:
            api_url: Submission endpoint
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.api_url = api_url or settings.fcc_api_url
        self.timeout = timeout or settings.fcc_timeout_seconds
        self._transport = transport

    async def submit(self, fields: Dict[str, str], attachment: bytes) -> DispatchOutcome:
        """
        POST a multipart incident card.

        Transport failures are reported as DispatchFailure, never raised.
        """
        files = {"file": (FCC_ATTACHMENT_NAME, attachment, MEDIA_MIME_TYPE)}

        logger.info(f"Submitting incident to FCC ({len(attachment)} byte attachment)")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.api_url, data=fields, files=files)
        except httpx.HTTPError as e:
            logger.error(f"FCC request failed: {e}")
            return DispatchFailure(FailureCode.TRANSPORT, f"FCC request failed: {e}")

        outcome = parse_fcc_response(response.status_code, response.text)
        if isinstance(outcome, DispatchFailure):
            logger.error(f"FCC rejected submission: {outcome.message}")
        else:
            logger.info(f"FCC accepted submission, incident {outcome.incident_id}")

        return outcome
