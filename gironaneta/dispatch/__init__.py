"""
Girona Neta - Dispatch Module
Submission of approved reports to FCC Medi Ambient.
"""

from gironaneta.dispatch.fcc_client import (
    FCCClient,
    DispatchSuccess,
    DispatchFailure,
    FailureCode,
    parse_fcc_response,
    build_fields,
)
from gironaneta.dispatch.dispatcher import DispatchAdapter, DispatchResult

__all__ = [
    "FCCClient",
    "DispatchSuccess",
    "DispatchFailure",
    "FailureCode",
    "parse_fcc_response",
    "build_fields",
    "DispatchAdapter",
    "DispatchResult",
]
