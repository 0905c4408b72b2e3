"""Constants for the upstream annotation call.

Centralizes defaults so the effective values can be overridden through
configuration rather than edited in place.
"""

from http import HTTPStatus


DEFAULT_API_URL = "https://api.inference.net/v1/chat/completions"
DEFAULT_MODEL = "inference-net/cliptagger-12b"

DEFAULT_TEMPERATURE = 0.1
DEFAULT_MAX_TOKENS = 2000
DEFAULT_IMAGE_DETAIL = "high"

# Hard upper bound for a single upstream call, independent of retries.
DEFAULT_REQUEST_TIMEOUT_SECONDS = 45.0

DEFAULT_MAX_ATTEMPTS = 3

# Transient conditions: timeout, conflict, too early, rate limit, server errors.
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset(
    {
        HTTPStatus.REQUEST_TIMEOUT,
        HTTPStatus.CONFLICT,
        HTTPStatus.TOO_EARLY,
        HTTPStatus.TOO_MANY_REQUESTS,
        HTTPStatus.INTERNAL_SERVER_ERROR,
        HTTPStatus.BAD_GATEWAY,
        HTTPStatus.SERVICE_UNAVAILABLE,
        HTTPStatus.GATEWAY_TIMEOUT,
    }
)

# Delay before attempt N+1 is BACKOFF_SCHEDULE_MS[N-1]. The third value is
# only reachable when max_attempts is raised above 3.
BACKOFF_SCHEDULE_MS: tuple[int, ...] = (400, 900, 1500)
BACKOFF_JITTER_MS = 200

# Snippet length kept from unparsable upstream content.
CONTENT_SNIPPET_CHARS = 200

MAX_OBJECTS = 10
MAX_ACTIONS = 5

HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300
