#!/usr/bin/env python3
"""
Girona Neta - Forward an agency reply email
Reads a raw RFC 822 message from stdin (MTA pipe transport) and forwards it
to the reply-ingestion webhook.

Usage:
    forward_reply.py --to info+<report_id>@gironaneta.cat --from sender@fcc.es < message.eml
"""
import argparse
import asyncio
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from gironaneta.core.errors import GironaNetaError
from gironaneta.core.logging import setup_logging
from gironaneta.replies.normalizer import ReplyNormalizer

# Exit codes understood by sendmail-compatible MTAs
EX_OK = 0
EX_NOUSER = 67
EX_TEMPFAIL = 75


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Forward a reply email to Girona Neta")
    parser.add_argument("--to", required=True, dest="recipient", help="Envelope recipient")
    parser.add_argument("--from", dest="sender", default=None, help="Envelope sender")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logger = setup_logging(stream=sys.stderr)

    raw = sys.stdin.buffer.read().decode("utf-8", errors="replace")

    try:
        normalizer = ReplyNormalizer()
        result = asyncio.run(normalizer.process(raw, args.recipient, args.sender))
    except GironaNetaError as e:
        logger.error(f"Reply not forwarded ({e.code.value}): {e.message}")
        # Unknown aliases and reports bounce; everything else is retried by the MTA
        return EX_NOUSER if e.status_code in (400, 404) else EX_TEMPFAIL

    logger.info(f"Reply stored for report {result.get('report_id')}")
    return EX_OK


if __name__ == "__main__":
    sys.exit(main())
