"""Reusable retrying-call abstraction with cooperative cancellation.

Every upstream caller goes through RetryingCall instead of re-deriving
its own loop. Attempts run strictly one after another: each waits for the
previous attempt and its backoff sleep to resolve before starting.
"""

import asyncio
import contextlib
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

import structlog

from perfscore.features.annotate.config import RetryPolicy
from perfscore.features.annotate.models import AttemptFailure


logger = structlog.get_logger()

T = TypeVar("T")


class OperationCancelled(Exception):
    """Raised by CancelToken.guard when the token fires first."""


class CancelToken:
    """Cooperative cancellation signal threaded through the retry loop.

    ``guard`` races an awaitable against the token so that an in-flight
    request or a pending backoff sleep is abandoned as soon as the caller
    cancels.
    """

    def __init__(self) -> None:
        """Initialize an un-fired token."""
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        """Whether cancel() has been called."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Fire the token."""
        self._event.set()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        Args:
            awaitable: Work to run.

        Returns:
            The awaitable's result.

        Raises:
            OperationCancelled: If the token fired before the work finished.
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCancelled

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {work, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            work.cancel()
            waiter.cancel()
            raise

        if work in done:
            waiter.cancel()
            return work.result()

        work.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await work
        raise OperationCancelled


class AttemptAction(str, Enum):
    """What the retry loop should do after an attempt."""

    SUCCEED = "SUCCEED"
    RETRY = "RETRY"
    STOP = "STOP"


@dataclass(frozen=True)
class AttemptOutcome(Generic[T]):
    """Result of one attempt as reported by the attempt function.

    Attributes:
        action: Whether to return, retry, or stop.
        value: Produced value on success.
        failure: Failure detail for RETRY and STOP.
        status_code: HTTP status seen during the attempt, if any.
        usage: Opaque usage block from the upstream, if any.
    """

    action: AttemptAction
    value: T | None = None
    failure: AttemptFailure | None = None
    status_code: int | None = None
    usage: object = None

    @classmethod
    def succeeded(
        cls, value: T, status_code: int | None = None, usage: object = None
    ) -> "AttemptOutcome[T]":
        """Build a success outcome."""
        return cls(
            action=AttemptAction.SUCCEED,
            value=value,
            status_code=status_code,
            usage=usage,
        )

    @classmethod
    def retry(cls, failure: AttemptFailure) -> "AttemptOutcome[T]":
        """Build an outcome that asks for another attempt."""
        return cls(
            action=AttemptAction.RETRY,
            failure=failure,
            status_code=failure.status_code,
        )

    @classmethod
    def stop(cls, failure: AttemptFailure) -> "AttemptOutcome[T]":
        """Build an outcome that ends the loop without retrying."""
        return cls(
            action=AttemptAction.STOP,
            failure=failure,
            status_code=failure.status_code,
        )


@dataclass(frozen=True)
class UpstreamAttempt:
    """Record of one call to the upstream.

    Attributes:
        attempt: 1-based attempt number.
        elapsed_ms: Duration of the attempt.
        status_code: HTTP status, or None when no response was received.
        failure: Failure detail, or None for the successful attempt.
    """

    attempt: int
    elapsed_ms: float
    status_code: int | None = None
    failure: AttemptFailure | None = None

    @property
    def succeeded(self) -> bool:
        """Whether this attempt produced the result."""
        return self.failure is None


@dataclass
class RetryResult(Generic[T]):
    """Final state of a retrying call.

    Attributes:
        value: Produced value, or None if no attempt succeeded.
        attempts: Records of every attempt made, in order.
        stopped: True when an attempt asked to stop without retrying.
        cancelled: True when the cancel token fired.
        total_elapsed_ms: Wall-clock duration including backoff sleeps.
        usage: Usage block reported by the successful attempt.
    """

    value: T | None = None
    attempts: list[UpstreamAttempt] = field(default_factory=list)
    stopped: bool = False
    cancelled: bool = False
    total_elapsed_ms: float = 0.0
    usage: object = None

    @property
    def succeeded(self) -> bool:
        """Whether an attempt produced a value."""
        return not (self.stopped or self.cancelled) and bool(self.attempts) and (
            self.attempts[-1].succeeded
        )

    @property
    def last_attempt(self) -> UpstreamAttempt | None:
        """The most recent attempt record."""
        return self.attempts[-1] if self.attempts else None

    @property
    def last_failure(self) -> AttemptFailure | None:
        """The most recent captured failure detail."""
        for record in reversed(self.attempts):
            if record.failure is not None:
                return record.failure
        return None

    @property
    def last_status_code(self) -> int | None:
        """The most recent HTTP status seen."""
        for record in reversed(self.attempts):
            if record.status_code is not None:
                return record.status_code
        return None


class RetryingCall:
    """Runs an attempt function under a RetryPolicy.

    The attempt function receives the 1-based attempt number and returns
    an AttemptOutcome. RETRY outcomes are followed by a backoff sleep
    unless the attempt was the last one allowed. STOP outcomes end the
    loop immediately.
    """

    def __init__(
        self,
        policy: RetryPolicy,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
        log: structlog.typing.FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the retrying call.

        Args:
            policy: Attempt cap and backoff schedule.
            sleep: Awaitable sleep taking seconds.
            rng: Source of uniform floats in [0, 1) for jitter.
            log: Bound logger; a module logger is used when omitted.
        """
        self._policy = policy
        self._sleep = sleep
        self._rng = rng
        self._log = log or logger.bind(component="annotate", subcomponent="retry")

    @property
    def policy(self) -> RetryPolicy:
        """The policy in effect."""
        return self._policy

    async def run(
        self,
        attempt_fn: Callable[[int], Awaitable[AttemptOutcome[T]]],
        cancel_token: CancelToken | None = None,
    ) -> RetryResult[T]:
        """Run attempts until success, a stop, cancellation, or exhaustion.

        Args:
            attempt_fn: Coroutine function performing one attempt.
            cancel_token: Optional cancellation signal.

        Returns:
            RetryResult describing every attempt.
        """
        token = cancel_token or CancelToken()
        result: RetryResult[T] = RetryResult()
        start_ns = time.perf_counter_ns()

        for attempt in range(1, self._policy.max_attempts + 1):
            attempt_start_ns = time.perf_counter_ns()
            try:
                outcome = await token.guard(attempt_fn(attempt))
            except OperationCancelled:
                result.attempts.append(
                    UpstreamAttempt(
                        attempt=attempt, elapsed_ms=_elapsed_ms(attempt_start_ns)
                    )
                )
                result.cancelled = True
                break

            result.attempts.append(
                UpstreamAttempt(
                    attempt=attempt,
                    elapsed_ms=_elapsed_ms(attempt_start_ns),
                    status_code=outcome.status_code,
                    failure=outcome.failure,
                )
            )

            if outcome.action == AttemptAction.SUCCEED:
                result.value = outcome.value
                result.usage = outcome.usage
                break

            if outcome.action == AttemptAction.STOP:
                result.stopped = True
                break

            if not self._policy.has_attempts_left(attempt):
                break

            delay_ms = self._policy.get_delay_ms(attempt, self._rng)
            self._log.info(
                "retry_scheduled",
                attempt=attempt,
                max_attempts=self._policy.max_attempts,
                delay_ms=delay_ms,
                reason=outcome.failure.reason.value if outcome.failure else None,
            )
            try:
                await token.guard(self._sleep(delay_ms / 1000.0))
            except OperationCancelled:
                result.cancelled = True
                break

        result.total_elapsed_ms = _elapsed_ms(start_ns)
        return result


def _elapsed_ms(start_ns: int) -> float:
    return (time.perf_counter_ns() - start_ns) / 1_000_000
