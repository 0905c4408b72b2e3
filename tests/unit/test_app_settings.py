"""Unit tests for environment-driven application settings."""

from pathlib import Path

import pytest

from perfscore.settings import AppSettings, get_settings


class TestAppSettings:
    """Tests for AppSettings environment loading."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should fall back to documented defaults."""
        for name in (
            "INFERENCE_API_KEY",
            "INFERENCE_API_URL",
            "INFERENCE_MODEL",
            "INFERENCE_TIMEOUT_SECONDS",
            "ANNOTATION_STRICT",
            "PERFSCORE_DB_PATH",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = AppSettings(_env_file=None)

        assert settings.inference_api_key is None
        assert settings.inference_api_url == (
            "https://api.inference.net/v1/chat/completions"
        )
        assert settings.inference_model == "inference-net/cliptagger-12b"
        assert settings.request_timeout_seconds == 45.0
        assert settings.strict_annotation is False
        assert settings.db_path == Path("state/perfscore.sqlite")

    def test_reads_environment(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """Should read every setting from its environment variable."""
        monkeypatch.setenv("INFERENCE_API_KEY", "env-key")
        monkeypatch.setenv("INFERENCE_API_URL", "https://upstream.test/v1/chat")
        monkeypatch.setenv("INFERENCE_MODEL", "vendor/model")
        monkeypatch.setenv("INFERENCE_TIMEOUT_SECONDS", "20")
        monkeypatch.setenv("ANNOTATION_STRICT", "true")
        monkeypatch.setenv("PERFSCORE_DB_PATH", str(tmp_path / "db.sqlite"))

        settings = get_settings()

        assert settings.inference_api_key == "env-key"
        assert settings.inference_api_url == "https://upstream.test/v1/chat"
        assert settings.inference_model == "vendor/model"
        assert settings.request_timeout_seconds == 20.0
        assert settings.strict_annotation is True
        assert settings.db_path == tmp_path / "db.sqlite"

    def test_annotation_config(self) -> None:
        """Should build an immutable client config from settings."""
        settings = AppSettings(
            inference_api_url="https://upstream.test/v1/chat",
            strict_annotation=True,
            _env_file=None,
        )

        config = settings.annotation_config()

        assert config.api_url == "https://upstream.test/v1/chat"
        assert config.strict_validation is True
        assert config.retry_policy.max_attempts == 3

    def test_timeout_out_of_range(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should reject a timeout outside 1-300 seconds."""
        monkeypatch.setenv("INFERENCE_TIMEOUT_SECONDS", "0")

        with pytest.raises(ValueError):
            AppSettings(_env_file=None)
