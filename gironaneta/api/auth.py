"""
Authentication dependencies for the Girona Neta API

Operators present a bearer JWT whose email claim must be allowlisted.
The reply webhook is protected by a shared secret header.
"""

import hmac
import logging
from dataclasses import dataclass
from typing import Optional

import jwt as pyjwt
from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from gironaneta.core.config import get_settings
from gironaneta.core.errors import AuthorizationError, ForbiddenError, InternalError
from gironaneta.database.connection import get_session
from gironaneta.database.repository import ReportRepository

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass
class Operator:
    """Authenticated operator."""
    email: str


def decode_operator_token(token: str) -> dict:
    """
    Verify an operator JWT.

    Raises:
        AuthorizationError: bad signature, expired or malformed token
    """
    settings = get_settings()
    if not settings.operator_jwt_secret:
        raise InternalError("Operator authentication is not configured")

    try:
        return pyjwt.decode(
            token,
            settings.operator_jwt_secret,
            algorithms=[settings.operator_jwt_algorithm],
            options={"verify_aud": False},
        )
    except pyjwt.PyJWTError as e:
        logger.warning(f"Rejected operator token: {e}")
        raise AuthorizationError("Unauthorized: invalid token") from e


async def require_operator(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: AsyncSession = Depends(get_session),
) -> Operator:
    """FastAPI dependency resolving the calling operator."""
    if credentials is None:
        raise AuthorizationError("Unauthorized: no auth header")

    payload = decode_operator_token(credentials.credentials)
    email = payload.get("email")
    if not email or not isinstance(email, str):
        raise AuthorizationError("Unauthorized: token has no email")

    if email.lower() in get_settings().allowed_admin_emails:
        return Operator(email=email)

    if await ReportRepository(session).is_admin(email):
        return Operator(email=email)

    logger.warning(f"Non-admin {email} attempted an operator action")
    raise ForbiddenError("Forbidden: not an admin")


def verify_webhook_secret(
    x_webhook_secret: Optional[str] = Header(default=None),
) -> None:
    """FastAPI dependency checking the reply webhook shared secret."""
    expected = get_settings().reply_webhook_secret
    if not expected:
        logger.error("REPLY_WEBHOOK_SECRET not configured")
        raise InternalError("Webhook not configured")

    if not x_webhook_secret or not hmac.compare_digest(
        x_webhook_secret.encode("utf-8"), expected.encode("utf-8")
    ):
        raise AuthorizationError("Unauthorized")
