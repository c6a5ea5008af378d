"""
Girona Neta - Crowdsource Module
Admission of citizen reports and upload capability issuance.
"""

from gironaneta.crowdsource.admission import (
    AdmissionGate,
    ReportSubmission,
    hash_client_address,
    extract_client_address,
)
from gironaneta.crowdsource.capabilities import (
    CapabilityIssuer,
    AdmissionResult,
    media_path,
)

__all__ = [
    "AdmissionGate",
    "ReportSubmission",
    "hash_client_address",
    "extract_client_address",
    "CapabilityIssuer",
    "AdmissionResult",
    "media_path",
]
