"""Factory for creating the annotation client from application settings."""

import httpx
import structlog

from perfscore.errors import ConfigurationError
from perfscore.features.annotate.client import UpstreamAnnotationClient
from perfscore.settings import AppSettings


logger = structlog.get_logger()


def create_annotation_client(
    settings: AppSettings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> UpstreamAnnotationClient:
    """Create an annotation client using configured credentials.

    Args:
        settings: Application settings.
        transport: Optional httpx transport override.

    Returns:
        UpstreamAnnotationClient ready for use.

    Raises:
        ConfigurationError: If no API key is configured.
    """
    log = logger.bind(component="annotate", subcomponent="factory")

    api_key = (settings.inference_api_key or "").strip()
    if not api_key:
        log.error("annotation_client_unconfigured", missing="INFERENCE_API_KEY")
        msg = "Missing INFERENCE_API_KEY server environment variable"
        raise ConfigurationError(msg)

    config = settings.annotation_config()
    log.info(
        "annotation_client_created",
        model=config.model,
        strict_validation=config.strict_validation,
        timeout_seconds=config.request_timeout_seconds,
    )
    return UpstreamAnnotationClient(config, api_key, transport=transport)
