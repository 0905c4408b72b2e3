"""Unit tests for the annotation client factory."""

import pytest

from perfscore.errors import ConfigurationError
from perfscore.features.annotate.client import UpstreamAnnotationClient
from perfscore.features.annotate.factory import create_annotation_client
from perfscore.settings import AppSettings


class TestCreateAnnotationClient:
    """Tests for create_annotation_client."""

    def test_missing_key_raises(self) -> None:
        """Should raise ConfigurationError without an API key."""
        settings = AppSettings(inference_api_key=None, _env_file=None)

        with pytest.raises(ConfigurationError, match="INFERENCE_API_KEY"):
            create_annotation_client(settings)

    def test_blank_key_raises(self) -> None:
        """Should treat a whitespace key as missing."""
        settings = AppSettings(inference_api_key="  ", _env_file=None)

        with pytest.raises(ConfigurationError):
            create_annotation_client(settings)

    def test_builds_client_from_settings(self) -> None:
        """Should pass settings through to the client config."""
        settings = AppSettings(
            inference_api_key="key",
            inference_model="custom/model",
            request_timeout_seconds=12,
            strict_annotation=True,
            _env_file=None,
        )

        client = create_annotation_client(settings)

        assert isinstance(client, UpstreamAnnotationClient)
        assert client.config.model == "custom/model"
        assert client.config.request_timeout_seconds == 12
        assert client.config.strict_validation is True
