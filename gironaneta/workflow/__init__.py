"""
Girona Neta - Workflow Module
Report lifecycle state machine.
"""

from gironaneta.workflow.lifecycle import (
    ReportLifecycle,
    ALLOWED_TRANSITIONS,
    is_valid_transition,
)

__all__ = [
    "ReportLifecycle",
    "ALLOWED_TRANSITIONS",
    "is_valid_transition",
]
