"""Observability helpers: structured logging setup and context binding."""

from perfscore.features.observability.logging import (
    bind_request_context,
    clear_request_context,
    configure_logging,
)


__all__ = [
    "bind_request_context",
    "clear_request_context",
    "configure_logging",
]
