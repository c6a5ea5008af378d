"""
Girona Neta - Error taxonomy

Every failure carries a stable code from its origin to the HTTP boundary.
"""

from enum import Enum
from typing import Any, Dict


class ErrorCode(str, Enum):
    """Stable error categories exposed to clients."""
    VALIDATION = "validation_error"
    GEOFENCE = "geofence_error"
    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    UPSTREAM = "upstream_error"
    INTERNAL = "internal_error"


class GironaNetaError(Exception):
    """Base class for errors raised by the intake and dispatch pipeline."""

    code: ErrorCode = ErrorCode.INTERNAL
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code.value}


class ValidationError(GironaNetaError):
    code = ErrorCode.VALIDATION
    status_code = 400


class GeofenceError(GironaNetaError):
    code = ErrorCode.GEOFENCE
    status_code = 400


class RateLimitError(GironaNetaError):
    code = ErrorCode.RATE_LIMITED
    status_code = 429


class AuthorizationError(GironaNetaError):
    code = ErrorCode.UNAUTHORIZED
    status_code = 401


class ForbiddenError(GironaNetaError):
    code = ErrorCode.FORBIDDEN
    status_code = 403


class NotFoundError(GironaNetaError):
    code = ErrorCode.NOT_FOUND
    status_code = 404


class InvalidTransitionError(GironaNetaError):
    """Requested status change is not an edge of the report lifecycle."""

    code = ErrorCode.INVALID_TRANSITION
    status_code = 409

    def __init__(self, report_id: str, current: str, target: str):
        super().__init__(
            f"Report {report_id} cannot move from '{current}' to '{target}'"
        )
        self.report_id = report_id
        self.current = current
        self.target = target


class UpstreamError(GironaNetaError):
    code = ErrorCode.UPSTREAM
    status_code = 502


class InternalError(GironaNetaError):
    code = ErrorCode.INTERNAL
    status_code = 500
