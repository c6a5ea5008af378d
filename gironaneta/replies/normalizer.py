"""
Reply normalizer for Girona Neta

Turns a raw inbound email into {report_id, reply_text, reply_from} and
forwards it to the reply-ingestion webhook, authenticated by the shared
x-webhook-secret header.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from gironaneta.core.config import settings
from gironaneta.core.constants import (
    REPLY_FROM_MAX_LENGTH,
    REPLY_TEXT_MAX_LENGTH,
    UNPARSEABLE_BODY_TEXT,
)
from gironaneta.core.errors import (
    AuthorizationError,
    ForbiddenError,
    GironaNetaError,
    InternalError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from gironaneta.replies.email_parser import extract_plain_text, extract_report_id

logger = logging.getLogger(__name__)

WEBHOOK_SECRET_HEADER = "x-webhook-secret"

# Webhook rejections that are final for this reply; anything else is upstream trouble
CALLBACK_ERRORS = (ValidationError, AuthorizationError, ForbiddenError, NotFoundError)


@dataclass
class NormalizedReply:
    """Structured reply ready for the lifecycle state machine."""
    report_id: str
    reply_text: str
    reply_from: str

    def to_payload(self) -> Dict[str, str]:
        return {
            "report_id": self.report_id,
            "reply_text": self.reply_text,
            "reply_from": self.reply_from,
        }


def normalize_reply(raw: str, recipient: str, sender: Optional[str]) -> NormalizedReply:
    """
    Parse a raw reply email.

    Raises:
        ValidationError: recipient is not a report reply alias
    """
    report_id = extract_report_id(recipient)
    if report_id is None:
        raise ValidationError("Address not recognized")

    try:
        body = extract_plain_text(raw)
    except (ValueError, TypeError, LookupError) as e:
        logger.error(f"Failed to read email body for report {report_id}: {e}")
        body = UNPARSEABLE_BODY_TEXT

    return NormalizedReply(
        report_id=report_id,
        reply_text=body[:REPLY_TEXT_MAX_LENGTH],
        reply_from=(sender or "unknown")[:REPLY_FROM_MAX_LENGTH],
    )


def callback_error(response: httpx.Response) -> GironaNetaError:
    """
    Rebuild the webhook's error from its {"error", "code"} envelope.

    Falls back on the HTTP status when the body carries no known code.
    """
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    code = payload.get("code")
    for cls in CALLBACK_ERRORS:
        if code == cls.code.value or (code is None and response.status_code == cls.status_code):
            message = payload.get("error") or f"Reply webhook returned {response.status_code}"
            return cls(str(message))

    return UpstreamError(f"Reply webhook returned {response.status_code}")


class ReplyNormalizer:
    """
    Parses inbound replies and forwards them to the ingestion webhook.

    Usage:
        normalizer = ReplyNormalizer()
        await normalizer.process(raw_email, to_address, from_address)
    """

    def __init__(
        self,
        callback_url: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize normalizer.

        Args:
            callback_url: Reply-ingestion endpoint
            webhook_secret: Shared secret sent in x-webhook-secret
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.callback_url = callback_url or settings.reply_callback_url
        self.webhook_secret = webhook_secret or settings.reply_webhook_secret
        self.timeout = timeout
        self._transport = transport

        if not self.webhook_secret:
            raise InternalError("Reply webhook secret is not configured")

    async def forward(self, reply: NormalizedReply) -> Dict[str, Any]:
        """
        POST a normalized reply to the ingestion webhook.

        Raises:
            NotFoundError, ValidationError, AuthorizationError, ForbiddenError:
                webhook rejected the reply
            UpstreamError: webhook unreachable or failing
        """
        headers = {WEBHOOK_SECRET_HEADER: self.webhook_secret}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.callback_url, json=reply.to_payload(), headers=headers
                )
        except httpx.HTTPError as e:
            logger.error(f"Failed to call reply webhook: {e}")
            raise UpstreamError(f"Reply webhook unreachable: {e}") from e

        if response.is_error:
            logger.error(f"Reply webhook returned {response.status_code}: {response.text[:200]}")
            raise callback_error(response)

        logger.info(f"Reply forwarded for report {reply.report_id} from {reply.reply_from}")
        return response.json()

    async def process(
        self,
        raw: str,
        recipient: str,
        sender: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Normalize a raw email and forward it."""
        reply = normalize_reply(raw, recipient, sender)
        return await self.forward(reply)
