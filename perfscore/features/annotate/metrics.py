"""Metrics collection for the upstream annotation client."""

from dataclasses import dataclass, field
from typing import ClassVar

from perfscore.features.annotate.models import AttemptFailureReason


@dataclass
class AnnotationMetrics:
    """Metrics for annotation calls.

    Singleton class that tracks calls, attempts, retries and terminal
    outcomes across all clients in the process.
    """

    annotation_calls_total: int = 0
    annotation_attempts_total: int = 0
    annotation_retries_total: int = 0
    annotation_success_total: int = 0
    annotation_rejected_total: int = 0
    annotation_exhausted_total: int = 0
    annotation_cancelled_total: int = 0
    annotation_failures_total: dict[str, int] = field(default_factory=dict)
    upstream_duration_ms_total: float = 0.0

    _instance: ClassVar["AnnotationMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "AnnotationMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_call(self) -> None:
        """Record the start of an annotation call."""
        self.annotation_calls_total += 1

    def record_attempt(self, duration_ms: float) -> None:
        """Record one upstream attempt.

        Args:
            duration_ms: Duration of the attempt in milliseconds.
        """
        self.annotation_attempts_total += 1
        self.upstream_duration_ms_total += duration_ms

    def record_failure(self, reason: AttemptFailureReason) -> None:
        """Record a failed attempt.

        Args:
            reason: Classification of the failure.
        """
        key = reason.value
        self.annotation_failures_total[key] = (
            self.annotation_failures_total.get(key, 0) + 1
        )

    def record_retry(self) -> None:
        """Record a retry following a failed attempt."""
        self.annotation_retries_total += 1

    def record_success(self) -> None:
        """Record a call that produced an annotation."""
        self.annotation_success_total += 1

    def record_rejected(self) -> None:
        """Record a call stopped by a non-retryable status."""
        self.annotation_rejected_total += 1

    def record_exhausted(self) -> None:
        """Record a call that consumed every attempt."""
        self.annotation_exhausted_total += 1

    def record_cancelled(self) -> None:
        """Record a call cancelled by the caller."""
        self.annotation_cancelled_total += 1

    def to_dict(self) -> dict[str, int | float | dict[str, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "annotation_calls_total": self.annotation_calls_total,
            "annotation_attempts_total": self.annotation_attempts_total,
            "annotation_retries_total": self.annotation_retries_total,
            "annotation_success_total": self.annotation_success_total,
            "annotation_rejected_total": self.annotation_rejected_total,
            "annotation_exhausted_total": self.annotation_exhausted_total,
            "annotation_cancelled_total": self.annotation_cancelled_total,
            "annotation_failures_total": dict(self.annotation_failures_total),
            "upstream_duration_ms_total": self.upstream_duration_ms_total,
        }
