"""
Girona Neta - Replies Module
Parsing of agency reply emails and forwarding to the ingestion webhook.
"""

from gironaneta.replies.email_parser import (
    extract_plain_text,
    extract_report_id,
    reply_address,
    strip_html,
    decode_transfer,
)
from gironaneta.replies.normalizer import (
    ReplyNormalizer,
    NormalizedReply,
    normalize_reply,
    WEBHOOK_SECRET_HEADER,
)

__all__ = [
    "extract_plain_text",
    "extract_report_id",
    "reply_address",
    "strip_html",
    "decode_transfer",
    "ReplyNormalizer",
    "NormalizedReply",
    "normalize_reply",
    "WEBHOOK_SECRET_HEADER",
]
