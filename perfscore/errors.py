"""Domain exceptions for the annotation-to-score pipeline.

Separates configuration and input problems (caller must fix something)
from upstream problems (caller may try again later) and from the
duplicate-image signal raised by the persistence layer.
"""

from typing import Any


class PerfscoreError(Exception):
    """Base exception for all pipeline errors."""


class ConfigurationError(PerfscoreError):
    """Raised when required configuration is missing.

    Surfaced before any network activity and never retried.
    """


class ValidationError(PerfscoreError):
    """Raised when a submitted image payload is malformed.

    Attributes:
        field: Name of the offending input field.
    """

    def __init__(self, message: str, field: str = "imageDataUrl") -> None:
        """Initialize the validation error.

        Args:
            message: Human-readable error message.
            field: Name of the offending input field.
        """
        self.field = field
        super().__init__(message)


class UpstreamRejected(PerfscoreError):
    """Raised when the upstream returns a non-retryable error status.

    Attributes:
        status_code: HTTP status returned by the upstream.
        detail: Upstream error body (JSON, text, or None).
        attempts: Number of attempts made (always 1 for a first-call rejection).
        timings: Elapsed milliseconds for the last call and the whole request.
    """

    def __init__(
        self,
        status_code: int,
        detail: Any = None,
        attempts: int = 1,
        timings: dict[str, float] | None = None,
    ) -> None:
        """Initialize the rejection error.

        Args:
            status_code: Upstream HTTP status.
            detail: Upstream error body.
            attempts: Attempts made before the rejection.
            timings: Timing breakdown in milliseconds.
        """
        self.status_code = status_code
        self.detail = detail
        self.attempts = attempts
        self.timings = timings or {}
        super().__init__(f"Upstream request failed with status {status_code}")


class AnnotationExhausted(PerfscoreError):
    """Raised when every retry attempt was consumed without a valid result.

    Attributes:
        attempts: Number of attempts made.
        last_failure: Detail of the last failed attempt.
        upstream_status: Last HTTP status seen, if any.
        timings: Elapsed milliseconds for the last call and the whole request.
    """

    def __init__(
        self,
        attempts: int,
        last_failure: dict[str, Any] | None = None,
        upstream_status: int | None = None,
        timings: dict[str, float] | None = None,
    ) -> None:
        """Initialize the exhaustion error.

        Args:
            attempts: Attempts made.
            last_failure: Detail captured from the last attempt.
            upstream_status: Last upstream HTTP status.
            timings: Timing breakdown in milliseconds.
        """
        self.attempts = attempts
        self.last_failure = last_failure
        self.upstream_status = upstream_status
        self.timings = timings or {}
        super().__init__(f"Annotation failed after {attempts} attempts")


class AnnotationCancelled(PerfscoreError):
    """Raised when the caller cancels an annotation in flight."""

    def __init__(self, attempts: int = 0) -> None:
        """Initialize the cancellation error.

        Args:
            attempts: Attempts started before cancellation.
        """
        self.attempts = attempts
        super().__init__(f"Annotation cancelled after {attempts} attempts")


class DuplicateSubmission(PerfscoreError):
    """Raised when an image with the same content hash was already stored."""

    def __init__(self, image_hash: str) -> None:
        """Initialize the duplicate error.

        Args:
            image_hash: Content hash of the rejected image.
        """
        self.image_hash = image_hash
        super().__init__("Duplicate image (already submitted)")
