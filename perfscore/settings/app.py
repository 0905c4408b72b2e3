"""Application settings powered by Pydantic BaseSettings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from perfscore.features.annotate.config import AnnotationClientConfig
from perfscore.features.annotate.constants import (
    DEFAULT_API_URL,
    DEFAULT_MODEL,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
)


class AppSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    inference_api_key: str | None = Field(
        default=None, validation_alias="INFERENCE_API_KEY"
    )
    inference_api_url: str = Field(
        default=DEFAULT_API_URL, validation_alias="INFERENCE_API_URL"
    )
    inference_model: str = Field(
        default=DEFAULT_MODEL, validation_alias="INFERENCE_MODEL"
    )
    request_timeout_seconds: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS,
        ge=1.0,
        le=300.0,
        validation_alias="INFERENCE_TIMEOUT_SECONDS",
    )
    strict_annotation: bool = Field(
        default=False, validation_alias="ANNOTATION_STRICT"
    )
    db_path: Path = Field(
        default=Path("state/perfscore.sqlite"), validation_alias="PERFSCORE_DB_PATH"
    )

    def annotation_config(self) -> AnnotationClientConfig:
        """Build the immutable annotation client configuration."""
        return AnnotationClientConfig(
            api_url=self.inference_api_url,
            model=self.inference_model,
            request_timeout_seconds=self.request_timeout_seconds,
            strict_validation=self.strict_annotation,
        )


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
