"""
Report lifecycle state machine

pending_review -> approved_sending -> sent -> replied, with the
compensating edge approved_sending -> pending_review on dispatch failure.
Every transition is a conditional update on the expected prior status, so
two concurrent requests can never both move the same report.
"""

import logging
from typing import Any, Dict, FrozenSet, Optional

from gironaneta.core.constants import (
    LAST_ERROR_MAX_LENGTH,
    REPLY_FROM_MAX_LENGTH,
    REPLY_TEXT_MAX_LENGTH,
)
from gironaneta.core.errors import InvalidTransitionError, NotFoundError
from gironaneta.database.models import Report, ReportStatus, utcnow
from gironaneta.database.repository import ReportRepository

logger = logging.getLogger(__name__)


# Allowed transitions map: {from_status: {to_status, ...}}
ALLOWED_TRANSITIONS: Dict[ReportStatus, FrozenSet[ReportStatus]] = {
    ReportStatus.PENDING_REVIEW: frozenset({
        ReportStatus.APPROVED_SENDING,
        ReportStatus.REJECTED,
        ReportStatus.DELETED,
    }),
    ReportStatus.APPROVED_SENDING: frozenset({
        ReportStatus.SENT,
        ReportStatus.PENDING_REVIEW,
        ReportStatus.REJECTED,
        ReportStatus.DELETED,
    }),
    ReportStatus.SENT: frozenset({ReportStatus.REPLIED}),
    ReportStatus.REPLIED: frozenset({ReportStatus.REPLIED}),
    ReportStatus.REJECTED: frozenset(),
    ReportStatus.DELETED: frozenset(),
}

REPLY_STATES = frozenset({ReportStatus.SENT, ReportStatus.REPLIED})


def is_valid_transition(current: ReportStatus, target: ReportStatus) -> bool:
    """Check whether `current -> target` is an edge of the lifecycle."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def truncate(value: Optional[str], limit: int) -> Optional[str]:
    if value is None:
        return None
    return value[:limit]


class ReportLifecycle:
    """Authoritative status model for reports."""

    def __init__(self, repository: ReportRepository):
        self.repository = repository

    async def get(self, report_id: str) -> Report:
        """Load a report or raise NotFoundError."""
        report = await self.repository.get_report(report_id)
        if report is None:
            raise NotFoundError("Report not found")
        return report

    async def transition(
        self,
        report_id: str,
        target: ReportStatus,
        values: Optional[Dict[str, Any]] = None,
    ) -> Report:
        """
        Move a report to `target`, writing `values` in the same update.

        Raises:
            NotFoundError: unknown report
            InvalidTransitionError: not an edge, or the status changed concurrently
        """
        report = await self.get(report_id)
        current = report.status

        if not is_valid_transition(current, target):
            raise InvalidTransitionError(report_id, current.value, target.value)

        updates = dict(values or {})
        updates["status"] = target

        applied = await self.repository.update_report(
            report_id, updates, expected_status=[current]
        )
        if not applied:
            latest = await self.get(report_id)
            logger.warning(
                f"Report {report_id} changed to {latest.status.value} "
                f"before {current.value} -> {target.value} applied"
            )
            raise InvalidTransitionError(report_id, latest.status.value, target.value)

        logger.info(f"Report {report_id} status: {current.value} -> {target.value}")
        return await self.get(report_id)

    async def begin_dispatch(self, report_id: str) -> Report:
        """Operator starts a dispatch: pending_review -> approved_sending."""
        return await self.transition(report_id, ReportStatus.APPROVED_SENDING)

    async def mark_sent(self, report_id: str, incident_id: Optional[str]) -> Report:
        """Dispatch succeeded: approved_sending -> sent."""
        return await self.transition(
            report_id,
            ReportStatus.SENT,
            {
                "fcc_incident_id": incident_id,
                "sent_at": utcnow(),
                "last_error": None,
            },
        )

    async def mark_dispatch_failed(self, report_id: str, error: str) -> Report:
        """Dispatch failed: approved_sending -> pending_review with last_error."""
        return await self.transition(
            report_id,
            ReportStatus.PENDING_REVIEW,
            {"last_error": truncate(error, LAST_ERROR_MAX_LENGTH) or "Unknown error"},
        )

    async def reject(self, report_id: str) -> Report:
        return await self.transition(report_id, ReportStatus.REJECTED)

    async def delete(self, report_id: str) -> Report:
        """Soft delete; the row stays until an operator purges it."""
        return await self.transition(report_id, ReportStatus.DELETED)

    async def set_address_label(self, report_id: str, address_label: Optional[str]) -> Report:
        """Operator correction of the human-readable address."""
        await self.get(report_id)
        label = (address_label or "").strip() or None
        await self.repository.update_report(report_id, {"address_label": label})
        return await self.get(report_id)

    async def record_reply(
        self,
        report_id: str,
        reply_text: str,
        reply_from: Optional[str] = None,
    ) -> Report:
        """
        Store an agency reply.

        Reports in sent or replied end up replied. Any other status keeps its
        value; the reply is stored but never revives the workflow.
        """
        report = await self.get(report_id)

        values: Dict[str, Any] = {
            "reply_text": truncate(reply_text, REPLY_TEXT_MAX_LENGTH),
            "reply_from": truncate(reply_from or "unknown", REPLY_FROM_MAX_LENGTH),
            "replied_at": utcnow(),
        }

        if report.status in REPLY_STATES:
            applied = await self.repository.update_report(
                report_id,
                {**values, "status": ReportStatus.REPLIED},
                expected_status=REPLY_STATES,
            )
            if applied:
                logger.info(f"Reply stored for report {report_id}, status -> replied")
                return await self.get(report_id)

        logger.warning(
            f"Report {report_id} in unexpected status {report.status.value}, "
            f"storing reply without status change"
        )
        await self.repository.update_report(report_id, values)
        return await self.get(report_id)
