"""Tests for mapping pipeline failures to user-facing responses."""

import pytest

from perfscore.errors import (
    AnnotationCancelled,
    AnnotationExhausted,
    ConfigurationError,
    DuplicateSubmission,
    UpstreamRejected,
    ValidationError,
)
from perfscore.store import StoreConnectionError
from perfscore.submission import ErrorCategory, map_error_to_response


class TestMapErrorToResponse:
    """Tests for map_error_to_response."""

    def test_validation_error(self) -> None:
        """Should ask the caller to fix the offending field."""
        response = map_error_to_response(ValidationError("Image is empty"))

        assert response.category == ErrorCategory.FIX_INPUT
        assert response.http_status == 400
        assert response.to_dict() == {
            "error": "Image is empty",
            "category": "FIX_INPUT",
            "status": 400,
            "details": {"field": "imageDataUrl"},
        }

    def test_duplicate(self) -> None:
        """Should tell the caller the image was already submitted."""
        response = map_error_to_response(DuplicateSubmission("a" * 64))

        assert response.category == ErrorCategory.ALREADY_SUBMITTED
        assert response.http_status == 409
        assert response.message == "Duplicate image (already submitted)"
        assert response.details == {"imageHash": "a" * 64}

    def test_upstream_rejected(self) -> None:
        """Should surface the upstream status and body."""
        exc = UpstreamRejected(
            401,
            detail={"error": "bad key"},
            timings={"upstreamMs": 5.0, "totalMs": 6.0},
        )

        response = map_error_to_response(exc)

        assert response.category == ErrorCategory.TRY_LATER
        assert response.http_status == 502
        assert response.details["upstreamStatus"] == 401
        assert response.details["error"] == {"error": "bad key"}
        assert response.details["attempts"] == 1
        assert response.details["timings"]["totalMs"] == 6.0

    def test_exhausted(self) -> None:
        """Should report attempts and the last failure."""
        exc = AnnotationExhausted(
            attempts=3,
            last_failure={"reason": "INVALID_JSON"},
            upstream_status=200,
        )

        response = map_error_to_response(exc)

        assert response.category == ErrorCategory.TRY_LATER
        assert response.http_status == 504
        assert response.message == "Annotation failed after 3 attempts"
        assert response.details["lastError"] == {"reason": "INVALID_JSON"}
        assert response.details["upstreamStatus"] == 200

    def test_cancelled(self) -> None:
        """Should use the client-closed-request status."""
        response = map_error_to_response(AnnotationCancelled(attempts=2))

        assert response.http_status == 499
        assert response.details == {"attempts": 2}

    def test_configuration_error(self) -> None:
        """Should flag a server misconfiguration."""
        response = map_error_to_response(
            ConfigurationError("Missing INFERENCE_API_KEY server environment variable")
        )

        assert response.category == ErrorCategory.SERVER_MISCONFIGURED
        assert response.http_status == 500
        assert "details" not in response.to_dict()

    def test_store_error(self) -> None:
        """Should hide store internals behind a fixed message."""
        response = map_error_to_response(StoreConnectionError("disk on fire"))

        assert response.category == ErrorCategory.SERVER_ERROR
        assert response.http_status == 500
        assert response.message == "Failed to save entry"

    @pytest.mark.parametrize("exc", [RuntimeError("boom"), KeyError("x")])
    def test_unknown_error(self, exc: Exception) -> None:
        """Should not leak the message of unexpected exceptions."""
        response = map_error_to_response(exc)

        assert response.category == ErrorCategory.SERVER_ERROR
        assert response.message == "Unexpected server error"
        assert response.details == {"type": type(exc).__name__}
