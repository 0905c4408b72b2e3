"""Upstream image annotation with bounded retries.

This module turns one image into one validated annotation:
- Fixed prompt payload with the image attached at high detail
- Fixed backoff schedule with jitter over a small retryable status set
- Immediate stop on non-retryable statuses
- Content parsing with optional strict shape validation
- Cooperative cancellation of in-flight calls and backoff sleeps
"""

from perfscore.features.annotate.client import UpstreamAnnotationClient
from perfscore.features.annotate.config import AnnotationClientConfig, RetryPolicy
from perfscore.features.annotate.metrics import AnnotationMetrics
from perfscore.features.annotate.models import (
    AnnotationErr,
    AnnotationErrorKind,
    AnnotationMeta,
    AnnotationOk,
    AnnotationOutcome,
    AnnotationResult,
    AttemptFailure,
    AttemptFailureReason,
)
from perfscore.features.annotate.request_builder import AnnotationRequestBuilder
from perfscore.features.annotate.retry import (
    AttemptOutcome,
    CancelToken,
    RetryingCall,
    RetryResult,
    UpstreamAttempt,
)


__all__ = [
    # Client
    "UpstreamAnnotationClient",
    "AnnotationRequestBuilder",
    # Config
    "AnnotationClientConfig",
    "RetryPolicy",
    # Models
    "AnnotationResult",
    "AnnotationMeta",
    "AnnotationOk",
    "AnnotationErr",
    "AnnotationErrorKind",
    "AnnotationOutcome",
    "AttemptFailure",
    "AttemptFailureReason",
    # Retry
    "AttemptOutcome",
    "CancelToken",
    "RetryingCall",
    "RetryResult",
    "UpstreamAttempt",
    # Metrics
    "AnnotationMetrics",
]
