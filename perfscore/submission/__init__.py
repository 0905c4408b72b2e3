"""Submission pipeline and user-facing error mapping."""

from perfscore.submission.error_mapper import (
    ErrorCategory,
    ErrorResponse,
    map_error_to_response,
)
from perfscore.submission.models import SubmissionOutcome, SubmissionRequest
from perfscore.submission.orchestrator import SubmissionOrchestrator
from perfscore.submission.protocols import AnnotationClient, EntryRepository


__all__ = [
    # Errors
    "ErrorCategory",
    "ErrorResponse",
    "map_error_to_response",
    # Models
    "SubmissionOutcome",
    "SubmissionRequest",
    # Orchestrator
    "SubmissionOrchestrator",
    # Protocols
    "AnnotationClient",
    "EntryRepository",
]
