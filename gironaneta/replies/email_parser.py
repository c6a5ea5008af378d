"""
Raw email parsing for agency replies

Replies reach info+<report_id>@gironaneta.cat. This module recovers the
report id from that address and a readable plain-text body from the raw
RFC 822 message.
"""

import base64
import binascii
import email
import logging
import quopri
import re
from email.message import Message
from typing import Optional, Tuple

from gironaneta.core.config import settings
from gironaneta.core.constants import RAW_FALLBACK_LENGTH

logger = logging.getLogger(__name__)

_HEADER_BODY_SEPARATORS = ("\r\n\r\n", "\n\n")

_HTML_ENTITIES = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&amp;", "&"),
)


def reply_address(report_id: str) -> str:
    """Plus-addressed mailbox that routes agency replies to a report."""
    return f"{settings.reply_local_part}+{report_id}@{settings.reply_domain}"


def _reply_pattern() -> "re.Pattern[str]":
    return re.compile(
        rf"^{re.escape(settings.reply_local_part)}\+([a-f0-9-]+)@{re.escape(settings.reply_domain)}$",
        re.IGNORECASE,
    )


def extract_report_id(recipient: str) -> Optional[str]:
    """Report id encoded in a recipient address, or None if it is not a reply alias."""
    match = _reply_pattern().match((recipient or "").strip())
    if not match:
        return None
    return match.group(1).lower()


# =============================================================================
# Transfer encodings
# =============================================================================

def decode_quoted_printable(data: str) -> bytes:
    """Remove soft line breaks and decode =XX escapes."""
    data = re.sub(r"=\r?\n", "", data)
    return quopri.decodestring(data.encode("utf-8"))


def decode_base64(data: str) -> Optional[bytes]:
    """Decode base64 ignoring embedded whitespace; None if malformed."""
    compact = re.sub(r"\s", "", data)
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError):
        return None


def decode_transfer(body: str, encoding: str, charset: Optional[str] = None) -> str:
    """
    Decode a body according to its Content-Transfer-Encoding.

    Unknown or identity encodings return the body unchanged. Decoded bytes
    are read with the declared charset (UTF-8 when absent).
    """
    encoding = (encoding or "").strip().lower()

    if encoding == "quoted-printable":
        raw = decode_quoted_printable(body)
    elif encoding == "base64":
        raw = decode_base64(body)
        if raw is None:
            return body
    else:
        return body

    return _to_text(raw, charset)


def _to_text(raw: bytes, charset: Optional[str]) -> str:
    try:
        return raw.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


# =============================================================================
# HTML fallback
# =============================================================================

def strip_html(html: str) -> str:
    """Reduce an HTML body to readable text."""
    text = re.sub(r"<br\s*/?>", "\n", html, flags=re.IGNORECASE)
    text = re.sub(r"</p>", "\n\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    for entity, char in _HTML_ENTITIES:
        text = text.replace(entity, char)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


# =============================================================================
# Message bodies
# =============================================================================

def split_headers(raw: str) -> Optional[Tuple[str, str]]:
    """Split at the first blank line; None when the message has none."""
    for separator in _HEADER_BODY_SEPARATORS:
        position = raw.find(separator)
        if position != -1:
            return raw[:position], raw[position + len(separator):]
    return None


def _part_text(part: Message) -> str:
    """Decoded text of a single MIME part."""
    payload = part.get_payload()
    if not isinstance(payload, str):
        return ""
    return decode_transfer(
        payload,
        part.get("Content-Transfer-Encoding", ""),
        part.get_content_charset(),
    ).strip()


def _first_part(message: Message, content_type: str) -> Optional[Message]:
    for part in message.walk():
        if part.get_content_type() == content_type and not part.is_multipart():
            return part
    return None


def extract_plain_text(raw: str) -> str:
    """
    Best-effort plain text body of a raw email.

    Multipart messages use the first text/plain part, else the first
    text/html part with tags stripped. Single-part messages use everything
    after the header block. With no header/body separator at all the first
    2000 characters of the raw message are returned.
    """
    message = email.message_from_string(raw)

    if message.is_multipart():
        plain = _first_part(message, "text/plain")
        if plain is not None:
            return _part_text(plain)

        html = _first_part(message, "text/html")
        if html is not None:
            return strip_html(_part_text(html))

    split = split_headers(raw)
    if split is None:
        return raw[:RAW_FALLBACK_LENGTH]

    _, body = split
    return decode_transfer(
        body,
        message.get("Content-Transfer-Encoding", ""),
        message.get_content_charset(),
    ).strip()
