"""Maps pipeline failures to user-facing error responses.

Each failure lands in one category the caller can act on: fix the input,
stop resubmitting, try again later, or report a server problem. Details
carry attempts, timings and upstream status, never tracebacks.
"""

from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from typing import Any

from perfscore.errors import (
    AnnotationCancelled,
    AnnotationExhausted,
    ConfigurationError,
    DuplicateSubmission,
    UpstreamRejected,
    ValidationError,
)
from perfscore.store.errors import StoreError


# Non-standard "client closed request" status.
CLIENT_CLOSED_REQUEST = 499


class ErrorCategory(str, Enum):
    """What the caller should do about a failure."""

    FIX_INPUT = "FIX_INPUT"
    ALREADY_SUBMITTED = "ALREADY_SUBMITTED"
    TRY_LATER = "TRY_LATER"
    SERVER_MISCONFIGURED = "SERVER_MISCONFIGURED"
    SERVER_ERROR = "SERVER_ERROR"


@dataclass(frozen=True)
class ErrorResponse:
    """User-facing description of a failure.

    Attributes:
        category: Action category.
        message: Message safe to show the user.
        http_status: Suggested HTTP status.
        details: Structured diagnostics.
    """

    category: ErrorCategory
    message: str
    http_status: int
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly error body."""
        body: dict[str, Any] = {
            "error": self.message,
            "category": self.category.value,
            "status": int(self.http_status),
        }
        if self.details:
            body["details"] = self.details
        return body


def map_error_to_response(exc: Exception) -> ErrorResponse:
    """Classify a failure into a user-facing response.

    Args:
        exc: Exception raised by the pipeline.

    Returns:
        ErrorResponse for the failure. Unknown exceptions map to a generic
        server error without their message.
    """
    if isinstance(exc, ValidationError):
        return ErrorResponse(
            category=ErrorCategory.FIX_INPUT,
            message=str(exc),
            http_status=HTTPStatus.BAD_REQUEST,
            details={"field": exc.field},
        )

    if isinstance(exc, DuplicateSubmission):
        return ErrorResponse(
            category=ErrorCategory.ALREADY_SUBMITTED,
            message=str(exc),
            http_status=HTTPStatus.CONFLICT,
            details={"imageHash": exc.image_hash},
        )

    if isinstance(exc, UpstreamRejected):
        return ErrorResponse(
            category=ErrorCategory.TRY_LATER,
            message=str(exc),
            http_status=HTTPStatus.BAD_GATEWAY,
            details={
                "upstreamStatus": exc.status_code,
                "error": exc.detail,
                "attempts": exc.attempts,
                "timings": exc.timings,
            },
        )

    if isinstance(exc, AnnotationExhausted):
        return ErrorResponse(
            category=ErrorCategory.TRY_LATER,
            message=str(exc),
            http_status=HTTPStatus.GATEWAY_TIMEOUT,
            details={
                "attempts": exc.attempts,
                "upstreamStatus": exc.upstream_status,
                "lastError": exc.last_failure,
                "timings": exc.timings,
            },
        )

    if isinstance(exc, AnnotationCancelled):
        return ErrorResponse(
            category=ErrorCategory.TRY_LATER,
            message=str(exc),
            http_status=CLIENT_CLOSED_REQUEST,
            details={"attempts": exc.attempts},
        )

    if isinstance(exc, ConfigurationError):
        return ErrorResponse(
            category=ErrorCategory.SERVER_MISCONFIGURED,
            message=str(exc),
            http_status=HTTPStatus.INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, StoreError):
        return ErrorResponse(
            category=ErrorCategory.SERVER_ERROR,
            message="Failed to save entry",
            http_status=HTTPStatus.INTERNAL_SERVER_ERROR,
        )

    return ErrorResponse(
        category=ErrorCategory.SERVER_ERROR,
        message="Unexpected server error",
        http_status=HTTPStatus.INTERNAL_SERVER_ERROR,
        details={"type": type(exc).__name__},
    )
