"""Configuration models for the upstream annotation client."""

import math
from collections.abc import Callable
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from perfscore.features.annotate.constants import (
    BACKOFF_JITTER_MS,
    BACKOFF_SCHEDULE_MS,
    DEFAULT_API_URL,
    DEFAULT_IMAGE_DETAIL,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_TEMPERATURE,
    RETRYABLE_STATUS_CODES,
)


class RetryPolicy(BaseModel):
    """Configuration for retry behavior of the annotation call.

    The backoff schedule is a fixed table indexed by the attempt that just
    failed, not an exponential formula. Attempts past the end of the table
    reuse its last value.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_attempts: Annotated[int, Field(ge=1, le=10)] = DEFAULT_MAX_ATTEMPTS
    retryable_statuses: frozenset[int] = RETRYABLE_STATUS_CODES
    backoff_ms: tuple[int, ...] = BACKOFF_SCHEDULE_MS
    jitter_ms: Annotated[int, Field(ge=0, le=10_000)] = BACKOFF_JITTER_MS

    @field_validator("backoff_ms")
    @classmethod
    def validate_backoff(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        """Ensure the schedule is non-empty and non-negative."""
        if not v:
            msg = "backoff_ms must contain at least one delay"
            raise ValueError(msg)
        if any(delay < 0 for delay in v):
            msg = "backoff_ms delays must be non-negative"
            raise ValueError(msg)
        return v

    def is_retryable_status(self, status_code: int) -> bool:
        """Check whether an HTTP status signals a transient condition.

        Args:
            status_code: HTTP status code.

        Returns:
            True if the status is in the retryable set.
        """
        return status_code in self.retryable_statuses

    def has_attempts_left(self, attempt: int) -> bool:
        """Check whether another attempt may follow the given one.

        Args:
            attempt: The attempt that just finished (1-based).

        Returns:
            True if attempt is below max_attempts.
        """
        return attempt < self.max_attempts

    def get_delay_ms(self, attempt: int, rng: Callable[[], float]) -> int:
        """Calculate the wait before the attempt following ``attempt``.

        Args:
            attempt: The attempt that just failed (1-based).
            rng: Source of uniform floats in [0, 1).

        Returns:
            Delay in milliseconds: schedule value plus jitter in [0, jitter_ms).
        """
        index = min(max(attempt, 1), len(self.backoff_ms)) - 1
        jitter = math.floor(rng() * self.jitter_ms)
        return self.backoff_ms[index] + jitter


class AnnotationClientConfig(BaseModel):
    """Immutable configuration for UpstreamAnnotationClient.

    Built once from application settings and passed into the client at
    construction time.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    api_url: Annotated[str, Field(min_length=1)] = DEFAULT_API_URL
    model: Annotated[str, Field(min_length=1)] = DEFAULT_MODEL
    temperature: Annotated[float, Field(ge=0.0, le=2.0)] = DEFAULT_TEMPERATURE
    max_tokens: Annotated[int, Field(ge=1, le=32_000)] = DEFAULT_MAX_TOKENS
    image_detail: str = DEFAULT_IMAGE_DETAIL
    request_timeout_seconds: Annotated[float, Field(ge=1.0, le=300.0)] = (
        DEFAULT_REQUEST_TIMEOUT_SECONDS
    )
    strict_validation: bool = Field(
        default=False,
        description="Validate the annotation shape instead of trusting the prompt",
    )
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
