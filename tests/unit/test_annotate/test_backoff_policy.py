"""Unit tests for the annotation retry policy."""

import pydantic
import pytest

from perfscore.features.annotate.config import AnnotationClientConfig, RetryPolicy


class TestRetryPolicyDefaults:
    """Tests for RetryPolicy default values."""

    def test_default_values(self) -> None:
        """Test default attempt cap, schedule and jitter."""
        policy = RetryPolicy()

        assert policy.max_attempts == 3
        assert policy.backoff_ms == (400, 900, 1500)
        assert policy.jitter_ms == 200

    def test_retryable_status_set(self) -> None:
        """Test exactly the transient statuses are retryable."""
        policy = RetryPolicy()

        for status in (408, 409, 425, 429, 500, 502, 503, 504):
            assert policy.is_retryable_status(status) is True
        for status in (400, 401, 403, 404, 413, 422, 501):
            assert policy.is_retryable_status(status) is False

    def test_policy_is_frozen(self) -> None:
        """Test policy cannot be mutated after creation."""
        policy = RetryPolicy()

        with pytest.raises(pydantic.ValidationError):
            policy.max_attempts = 5  # type: ignore[misc]

    def test_empty_schedule_rejected(self) -> None:
        """Test an empty backoff schedule is invalid."""
        with pytest.raises(pydantic.ValidationError, match="at least one delay"):
            RetryPolicy(backoff_ms=())

    def test_negative_delay_rejected(self) -> None:
        """Test negative delays are invalid."""
        with pytest.raises(pydantic.ValidationError, match="non-negative"):
            RetryPolicy(backoff_ms=(400, -1))


class TestAttemptsLeft:
    """Tests for the attempt cap."""

    def test_three_attempts(self) -> None:
        """Test attempts 1 and 2 may be followed, attempt 3 may not."""
        policy = RetryPolicy()

        assert policy.has_attempts_left(1) is True
        assert policy.has_attempts_left(2) is True
        assert policy.has_attempts_left(3) is False

    def test_single_attempt(self) -> None:
        """Test a one-attempt policy never retries."""
        policy = RetryPolicy(max_attempts=1)

        assert policy.has_attempts_left(1) is False


class TestGetDelay:
    """Tests for the fixed backoff schedule."""

    def test_schedule_without_jitter(self) -> None:
        """Test delays follow the table when jitter draws zero."""
        policy = RetryPolicy()

        assert policy.get_delay_ms(1, lambda: 0.0) == 400
        assert policy.get_delay_ms(2, lambda: 0.0) == 900
        assert policy.get_delay_ms(3, lambda: 0.0) == 1500

    def test_jitter_added_below_bound(self) -> None:
        """Test jitter stays within [0, jitter_ms)."""
        policy = RetryPolicy()

        assert policy.get_delay_ms(1, lambda: 0.5) == 500
        assert policy.get_delay_ms(1, lambda: 0.999999) == 599

    def test_attempts_past_table_reuse_last_value(self) -> None:
        """Test attempts beyond the table reuse its final delay."""
        policy = RetryPolicy(max_attempts=6)

        assert policy.get_delay_ms(5, lambda: 0.0) == 1500

    def test_zero_jitter(self) -> None:
        """Test jitter can be disabled."""
        policy = RetryPolicy(jitter_ms=0)

        assert policy.get_delay_ms(2, lambda: 0.9) == 900


class TestClientConfig:
    """Tests for AnnotationClientConfig."""

    def test_defaults(self) -> None:
        """Test the documented request parameters."""
        config = AnnotationClientConfig()

        assert config.model == "inference-net/cliptagger-12b"
        assert config.temperature == 0.1
        assert config.max_tokens == 2000
        assert config.image_detail == "high"
        assert config.request_timeout_seconds == 45.0
        assert config.strict_validation is False
        assert config.retry_policy == RetryPolicy()

    def test_timeout_bounds(self) -> None:
        """Test the per-call timeout must stay within 1-300 seconds."""
        with pytest.raises(pydantic.ValidationError):
            AnnotationClientConfig(request_timeout_seconds=0.5)
        with pytest.raises(pydantic.ValidationError):
            AnnotationClientConfig(request_timeout_seconds=301)

    def test_unknown_field_rejected(self) -> None:
        """Test extra fields are forbidden."""
        with pytest.raises(pydantic.ValidationError):
            AnnotationClientConfig(base_url="https://example.test")  # type: ignore[call-arg]
