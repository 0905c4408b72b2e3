"""Upstream vision-model client that turns an image into an annotation."""

import asyncio
import json
import random
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import pydantic
import structlog

from perfscore.errors import ConfigurationError
from perfscore.features.annotate.config import AnnotationClientConfig
from perfscore.features.annotate.constants import (
    CONTENT_SNIPPET_CHARS,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
)
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
)
from perfscore.features.images.data_url import DecodedImage, encode_data_url


logger = structlog.get_logger()


class UpstreamAnnotationClient:
    """Client for the chat-completion vision endpoint.

    Issues the annotation request, classifies failures into retryable and
    non-retryable, and parses the returned content into an
    AnnotationResult. Attempts are sequential and bounded by the
    configured RetryPolicy; each individual call is bounded by a hard
    timeout.
    """

    def __init__(
        self,
        config: AnnotationClientConfig,
        api_key: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        """Initialize the client.

        Args:
            config: Immutable client configuration.
            api_key: Bearer token for the upstream.
            transport: Optional httpx transport (used by tests).
            sleep: Awaitable sleep used for backoff.
            rng: Jitter source.

        Raises:
            ConfigurationError: If the API key is missing or blank.
        """
        if not api_key or not api_key.strip():
            msg = "Missing INFERENCE_API_KEY server environment variable"
            raise ConfigurationError(msg)

        self._config = config
        self._api_key = api_key
        self._transport = transport
        self._builder = AnnotationRequestBuilder(config)
        self._metrics = AnnotationMetrics.get_instance()
        self._log = logger.bind(
            component="annotate",
            subcomponent="client",
            model=config.model,
        )
        self._retrying = RetryingCall(
            config.retry_policy, sleep=sleep, rng=rng, log=self._log
        )

    @property
    def config(self) -> AnnotationClientConfig:
        """The client configuration."""
        return self._config

    async def annotate_image(
        self,
        image: DecodedImage,
        *,
        cancel_token: CancelToken | None = None,
    ) -> AnnotationOutcome:
        """Annotate decoded image bytes.

        Args:
            image: Decoded image payload.
            cancel_token: Optional cancellation signal.

        Returns:
            AnnotationOk or AnnotationErr.
        """
        data_url = encode_data_url(image.data, image.mime_type)
        return await self.annotate(data_url, cancel_token=cancel_token)

    async def annotate(
        self,
        image_data_url: str,
        *,
        cancel_token: CancelToken | None = None,
    ) -> AnnotationOutcome:
        """Annotate an image given as a base64 data URL.

        Retries on retryable statuses, missing content, unparsable content
        and transport failures. Stops immediately on any other non-2xx
        status.

        Args:
            image_data_url: Image as ``data:<mime>;base64,<payload>``.
            cancel_token: Optional cancellation signal.

        Returns:
            AnnotationOk with the result and metadata, or AnnotationErr.
        """
        self._metrics.record_call()
        body = self._builder.build_body(image_data_url)
        headers = self._builder.build_headers(self._api_key)
        timeout = httpx.Timeout(self._config.request_timeout_seconds)

        async with httpx.AsyncClient(
            transport=self._transport, timeout=timeout
        ) as client:

            async def attempt_fn(attempt: int) -> AttemptOutcome[AnnotationResult]:
                if attempt > 1:
                    self._metrics.record_retry()
                return await self._attempt(client, body, headers, attempt)

            retry_result = await self._retrying.run(attempt_fn, cancel_token)

        return self._to_outcome(retry_result)

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        body: dict[str, object],
        headers: dict[str, str],
        attempt: int,
    ) -> AttemptOutcome[AnnotationResult]:
        """Execute one upstream call and classify its result."""
        log = self._log.bind(attempt=attempt)
        loop = asyncio.get_running_loop()
        started = loop.time()

        try:
            async with asyncio.timeout(self._config.request_timeout_seconds):
                response = await client.post(
                    self._config.api_url, headers=headers, json=body
                )
        except (TimeoutError, httpx.TimeoutException):
            return self._retry(
                log,
                AttemptFailure(
                    reason=AttemptFailureReason.TIMEOUT,
                    message=(
                        "Upstream call exceeded "
                        f"{self._config.request_timeout_seconds:g}s timeout"
                    ),
                ),
            )
        except httpx.HTTPError as exc:
            return self._retry(
                log,
                AttemptFailure(
                    reason=AttemptFailureReason.TRANSPORT_ERROR,
                    message=f"Upstream request failed: {exc}",
                ),
            )
        finally:
            self._metrics.record_attempt((loop.time() - started) * 1000)

        status = response.status_code
        log = log.bind(upstream_status=status)

        if not HTTP_STATUS_OK_MIN <= status < HTTP_STATUS_OK_MAX:
            detail = _safe_error_body(response)
            if self._config.retry_policy.is_retryable_status(status):
                return self._retry(
                    log,
                    AttemptFailure(
                        reason=AttemptFailureReason.RETRYABLE_STATUS,
                        message=f"Upstream returned {status}",
                        status_code=status,
                        detail=detail,
                    ),
                )
            failure = AttemptFailure(
                reason=AttemptFailureReason.REJECTED_STATUS,
                message=f"Upstream returned {status}",
                status_code=status,
                detail=detail,
            )
            self._metrics.record_failure(failure.reason)
            log.warning("annotation_attempt_rejected", reason=failure.reason.value)
            return AttemptOutcome.stop(failure)

        try:
            envelope = response.json()
        except ValueError:
            return self._retry(
                log,
                AttemptFailure(
                    reason=AttemptFailureReason.MISSING_CONTENT,
                    message="Upstream envelope is not valid JSON",
                    status_code=status,
                ),
            )

        content = _extract_content(envelope)
        if not content:
            return self._retry(
                log,
                AttemptFailure(
                    reason=AttemptFailureReason.MISSING_CONTENT,
                    message="No content in upstream response",
                    status_code=status,
                ),
            )

        try:
            payload = json.loads(content)
        except json.JSONDecodeError:
            payload = None
        if not isinstance(payload, dict):
            return self._retry(
                log,
                AttemptFailure(
                    reason=AttemptFailureReason.INVALID_JSON,
                    message="Failed to parse JSON content",
                    status_code=status,
                    content_snippet=content[:CONTENT_SNIPPET_CHARS],
                ),
            )

        if self._config.strict_validation:
            try:
                result = AnnotationResult.strict(payload)
            except pydantic.ValidationError as exc:
                return self._retry(
                    log,
                    AttemptFailure(
                        reason=AttemptFailureReason.SCHEMA_INVALID,
                        message=f"Annotation failed schema validation "
                        f"({exc.error_count()} errors)",
                        status_code=status,
                        detail=[
                            {"loc": list(err["loc"]), "msg": err["msg"]}
                            for err in exc.errors()
                        ],
                        content_snippet=content[:CONTENT_SNIPPET_CHARS],
                    ),
                )
        else:
            result = AnnotationResult.from_payload(payload)

        usage = envelope.get("usage") if isinstance(envelope, dict) else None
        log.debug("annotation_attempt_succeeded")
        return AttemptOutcome.succeeded(result, status_code=status, usage=usage)

    def _retry(
        self,
        log: structlog.typing.FilteringBoundLogger,
        failure: AttemptFailure,
    ) -> AttemptOutcome[AnnotationResult]:
        """Record a retryable failure and build its outcome."""
        self._metrics.record_failure(failure.reason)
        log.warning(
            "annotation_attempt_failed",
            reason=failure.reason.value,
            message=failure.message,
        )
        return AttemptOutcome.retry(failure)

    def _to_outcome(
        self, retry_result: RetryResult[AnnotationResult]
    ) -> AnnotationOutcome:
        """Convert the retry loop's final state into a tagged outcome."""
        last = retry_result.last_attempt
        meta = AnnotationMeta(
            attempts_used=len(retry_result.attempts),
            total_elapsed_ms=retry_result.total_elapsed_ms,
            last_upstream_elapsed_ms=last.elapsed_ms if last else 0.0,
            upstream_status_code=retry_result.last_status_code,
            usage=retry_result.usage,
        )
        log = self._log.bind(
            attempts=meta.attempts_used,
            total_ms=round(meta.total_elapsed_ms, 2),
            upstream_status=meta.upstream_status_code,
        )

        if retry_result.cancelled:
            self._metrics.record_cancelled()
            log.info("annotation_cancelled")
            return AnnotationErr(
                kind=AnnotationErrorKind.CANCELLED,
                failure=retry_result.last_failure,
                meta=meta,
            )

        if retry_result.value is not None:
            self._metrics.record_success()
            log.info("annotation_succeeded")
            return AnnotationOk(result=retry_result.value, meta=meta)

        failure = retry_result.last_failure
        if retry_result.stopped:
            self._metrics.record_rejected()
            log.warning("annotation_rejected")
            return AnnotationErr(
                kind=AnnotationErrorKind.UPSTREAM_REJECTED,
                failure=failure,
                meta=meta,
            )

        self._metrics.record_exhausted()
        log.error(
            "annotation_exhausted",
            last_reason=failure.reason.value if failure else None,
        )
        return AnnotationErr(
            kind=AnnotationErrorKind.ANNOTATION_EXHAUSTED,
            failure=failure,
            meta=meta,
        )


def _extract_content(envelope: Any) -> str | None:
    """Return ``choices[0].message.content`` if it is a non-empty string."""
    if not isinstance(envelope, dict):
        return None
    choices = envelope.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, str) and content:
        return content
    return None


def _safe_error_body(response: httpx.Response) -> Any:
    """Read an error body as JSON, falling back to text, then None."""
    try:
        return response.json()
    except ValueError:
        pass
    text = response.text
    return text or None
