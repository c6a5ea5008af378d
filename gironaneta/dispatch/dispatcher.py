"""
Dispatch adapter for Girona Neta

Forwards an approved report to FCC Medi Ambient. The report is committed as
approved_sending before the agency is contacted, so an interrupted dispatch
stays visibly in flight. Any failure afterwards is compensated by moving the
report back to pending_review with last_error set, leaving it retryable.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from gironaneta.core.constants import FCC_CATEGORY_CODES
from gironaneta.core.errors import (
    GironaNetaError,
    InvalidTransitionError,
    UpstreamError,
    ValidationError,
)
from gironaneta.database.models import Report
from gironaneta.dispatch.fcc_client import (
    DispatchFailure,
    DispatchOutcome,
    DispatchSuccess,
    FailureCode,
    FCCClient,
    build_fields,
)
from gironaneta.replies.email_parser import reply_address
from gironaneta.storage.blob_store import BlobStore
from gironaneta.workflow.lifecycle import ReportLifecycle

logger = logging.getLogger(__name__)

# Failures caused by the report itself rather than the agency
_LOCAL_FAILURES = {FailureCode.NO_MEDIA, FailureCode.INVALID_CATEGORY}


@dataclass
class DispatchResult:
    """Outcome of one dispatch attempt as seen by the operator."""
    report_id: str
    success: bool
    incident_id: Optional[str] = None
    failure_code: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "report_id": self.report_id,
            "external_correlation_id": self.incident_id,
        }

    def to_error(self) -> GironaNetaError:
        """Structured error for a failed attempt."""
        if self.failure_code in _LOCAL_FAILURES:
            return ValidationError(self.error or "Dispatch failed")
        return UpstreamError(f"FCC submission failed: {self.error}")


class DispatchAdapter:
    """
    Sends reports to the external agency.

    Two operators triggering the same report race on the
    pending_review -> approved_sending compare-and-set; the loser gets an
    InvalidTransitionError and never contacts the agency.
    """

    def __init__(
        self,
        session: AsyncSession,
        lifecycle: ReportLifecycle,
        blob_store: BlobStore,
        fcc_client: Optional[FCCClient] = None,
    ):
        self.session = session
        self.lifecycle = lifecycle
        self.blob_store = blob_store
        self.fcc_client = fcc_client or FCCClient()

    async def dispatch(self, report_id: str) -> DispatchResult:
        """
        Dispatch a pending_review report.

        Raises:
            NotFoundError: unknown report
            InvalidTransitionError: report is not pending_review
        """
        report = await self.lifecycle.begin_dispatch(report_id)
        await self.session.commit()

        try:
            outcome = await self._attempt(report)
        except Exception as e:
            logger.exception(f"Dispatch of report {report_id} crashed")
            await self._compensate(report_id, f"Internal error: {e}")
            raise

        if isinstance(outcome, DispatchSuccess):
            try:
                await self.lifecycle.mark_sent(report_id, outcome.incident_id)
            except InvalidTransitionError as e:
                # The agency already holds the incident; keep its id findable
                logger.warning(
                    f"Report {report_id} accepted by FCC as incident {outcome.incident_id} "
                    f"but could not be marked sent: {e.message}"
                )
                await self.session.rollback()
                raise
            await self.session.commit()
            logger.info(f"Report {report_id} sent, FCC incident {outcome.incident_id}")
            return DispatchResult(
                report_id=report_id,
                success=True,
                incident_id=outcome.incident_id,
            )

        await self._compensate(report_id, outcome.message)
        return DispatchResult(
            report_id=report_id,
            success=False,
            failure_code=outcome.code,
            error=outcome.message,
        )

    async def _attempt(self, report: Report) -> DispatchOutcome:
        """Assemble the submission and call the agency."""
        if report.category not in FCC_CATEGORY_CODES:
            return DispatchFailure(
                FailureCode.INVALID_CATEGORY, f"Invalid category: {report.category}"
            )

        photo = await self._first_photo(report)
        if photo is None:
            return DispatchFailure(
                FailureCode.NO_MEDIA, "No photo available for FCC submission"
            )

        fields = build_fields(report, reply_address(report.id))
        return await self.fcc_client.submit(fields, photo)

    async def _first_photo(self, report: Report) -> Optional[bytes]:
        """First media binary that can be downloaded, in upload order."""
        for media in report.media:
            data = await self.blob_store.download(media.storage_path)
            if data:
                return data
            logger.warning(f"Media {media.storage_path} unavailable for report {report.id}")
        return None

    async def _compensate(self, report_id: str, error: str) -> None:
        """approved_sending -> pending_review, recording the failure."""
        try:
            await self.lifecycle.mark_dispatch_failed(report_id, error)
        except InvalidTransitionError as e:
            # Operator rejected or deleted the report while the call was in flight
            logger.warning(f"Could not revert report {report_id}: {e.message}")
            await self.session.rollback()
            return
        await self.session.commit()
        logger.warning(f"Dispatch of report {report_id} failed: {error}")
