"""Data models for the annotation contract and the annotation call outcome."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NoReturn

from pydantic import BaseModel, ConfigDict, Field

from perfscore.errors import (
    AnnotationCancelled,
    AnnotationExhausted,
    PerfscoreError,
    UpstreamRejected,
)
from perfscore.features.annotate.constants import MAX_ACTIONS, MAX_OBJECTS


_TEXT_FIELDS = (
    "description",
    "environment",
    "content_type",
    "specific_style",
    "production_quality",
    "summary",
)
_LIST_FIELDS = ("objects", "actions", "logos")


class AnnotationResult(BaseModel):
    """Structured description of an image produced by the vision model.

    Immutable once created. Absent fields default to empty values so that
    downstream scoring treats them as empty text.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    description: str = ""
    objects: tuple[str, ...] = ()
    actions: tuple[str, ...] = ()
    environment: str = ""
    content_type: str = ""
    specific_style: str = ""
    production_quality: str = ""
    summary: str = ""
    logos: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "AnnotationResult":
        """Build a result from parsed JSON without enforcing its shape.

        Unknown keys are dropped. Text fields that are not strings and
        sequence fields that are not lists become empty; non-string list
        entries are skipped.

        Args:
            payload: Parsed JSON object from the upstream.

        Returns:
            AnnotationResult with best-effort field values.
        """
        values: dict[str, Any] = {}
        for name in _TEXT_FIELDS:
            value = payload.get(name)
            values[name] = value if isinstance(value, str) else ""
        for name in _LIST_FIELDS:
            value = payload.get(name)
            if isinstance(value, list):
                values[name] = tuple(item for item in value if isinstance(item, str))
            else:
                values[name] = ()
        return cls(**values)

    @classmethod
    def strict(cls, payload: Mapping[str, Any]) -> "AnnotationResult":
        """Build a result, requiring exactly the documented shape.

        Every field must be present with the right type and no extra keys
        are allowed. Oversized ``objects`` and ``actions`` lists are
        truncated to their caps.

        Args:
            payload: Parsed JSON object from the upstream.

        Returns:
            Validated AnnotationResult.

        Raises:
            pydantic.ValidationError: If the payload does not match the shape.
        """
        checked = StrictAnnotationPayload.model_validate(dict(payload))
        data = checked.model_dump()
        data["objects"] = tuple(data["objects"][:MAX_OBJECTS])
        data["actions"] = tuple(data["actions"][:MAX_ACTIONS])
        data["logos"] = tuple(data["logos"])
        return cls(**data)

    def to_json(self) -> str:
        """Serialize to a JSON string for persistence."""
        return self.model_dump_json()


class StrictAnnotationPayload(BaseModel):
    """Exact upstream payload shape used by strict validation."""

    model_config = ConfigDict(extra="forbid", strict=True)

    description: str
    objects: list[str]
    actions: list[str]
    environment: str
    content_type: str
    specific_style: str
    production_quality: str
    summary: str
    logos: list[str] = Field(description="Empty when no logos are visible")


class AttemptFailureReason(str, Enum):
    """Classification of a failed upstream attempt.

    - RETRYABLE_STATUS: Upstream returned a status in the retryable set
    - REJECTED_STATUS: Upstream returned any other non-2xx status
    - MISSING_CONTENT: 2xx envelope without a message content string
    - INVALID_JSON: Content string is not a JSON object
    - SCHEMA_INVALID: Content parsed but failed strict shape validation
    - TIMEOUT: The per-call hard timeout elapsed
    - TRANSPORT_ERROR: Network or protocol exception
    """

    RETRYABLE_STATUS = "RETRYABLE_STATUS"
    REJECTED_STATUS = "REJECTED_STATUS"
    MISSING_CONTENT = "MISSING_CONTENT"
    INVALID_JSON = "INVALID_JSON"
    SCHEMA_INVALID = "SCHEMA_INVALID"
    TIMEOUT = "TIMEOUT"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"


@dataclass(frozen=True)
class AttemptFailure:
    """Structured detail of one failed attempt.

    Attributes:
        reason: Failure classification.
        message: Human-readable message.
        status_code: Upstream HTTP status, if a response was received.
        detail: Upstream error body (JSON, text, or None).
        content_snippet: Leading characters of unparsable content.
    """

    reason: AttemptFailureReason
    message: str
    status_code: int | None = None
    detail: Any = None
    content_snippet: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data: dict[str, Any] = {"reason": self.reason.value, "message": self.message}
        if self.status_code is not None:
            data["status"] = self.status_code
        if self.detail is not None:
            data["error"] = self.detail
        if self.content_snippet is not None:
            data["contentSnippet"] = self.content_snippet
        return data


@dataclass(frozen=True)
class AnnotationMeta:
    """Metadata about how an annotation call resolved.

    Attributes:
        attempts_used: Number of attempts made.
        total_elapsed_ms: Wall-clock time for the whole call, backoff included.
        last_upstream_elapsed_ms: Duration of the last upstream request.
        upstream_status_code: Last HTTP status seen, if any.
        usage: Opaque usage block from the upstream envelope.
    """

    attempts_used: int
    total_elapsed_ms: float
    last_upstream_elapsed_ms: float
    upstream_status_code: int | None = None
    usage: Any = None

    @property
    def timings(self) -> dict[str, float]:
        """Timing breakdown in milliseconds."""
        return {
            "upstreamMs": round(self.last_upstream_elapsed_ms, 2),
            "totalMs": round(self.total_elapsed_ms, 2),
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "attempts": self.attempts_used,
            "upstreamStatus": self.upstream_status_code,
            "usage": self.usage,
            "timings": self.timings,
        }


class AnnotationErrorKind(str, Enum):
    """Terminal failure kinds of an annotation call."""

    UPSTREAM_REJECTED = "UPSTREAM_REJECTED"
    ANNOTATION_EXHAUSTED = "ANNOTATION_EXHAUSTED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class AnnotationOk:
    """Successful annotation call."""

    result: AnnotationResult
    meta: AnnotationMeta
    is_ok: bool = field(default=True, init=False)

    def unwrap(self) -> AnnotationResult:
        """Return the annotation."""
        return self.result


@dataclass(frozen=True)
class AnnotationErr:
    """Failed annotation call.

    Attributes:
        kind: Terminal failure kind.
        failure: Detail of the last failed attempt, if any.
        meta: Attempts and timings.
    """

    kind: AnnotationErrorKind
    failure: AttemptFailure | None
    meta: AnnotationMeta
    is_ok: bool = field(default=False, init=False)

    def to_exception(self) -> PerfscoreError:
        """Build the exception matching this failure kind."""
        if self.kind == AnnotationErrorKind.UPSTREAM_REJECTED:
            failure = self.failure
            return UpstreamRejected(
                status_code=(
                    failure.status_code
                    if failure and failure.status_code is not None
                    else self.meta.upstream_status_code or 0
                ),
                detail=failure.detail if failure else None,
                attempts=self.meta.attempts_used,
                timings=self.meta.timings,
            )
        if self.kind == AnnotationErrorKind.CANCELLED:
            return AnnotationCancelled(attempts=self.meta.attempts_used)
        return AnnotationExhausted(
            attempts=self.meta.attempts_used,
            last_failure=self.failure.to_dict() if self.failure else None,
            upstream_status=self.meta.upstream_status_code,
            timings=self.meta.timings,
        )

    def unwrap(self) -> NoReturn:
        """Raise the exception matching this failure kind."""
        raise self.to_exception()


AnnotationOutcome = AnnotationOk | AnnotationErr
