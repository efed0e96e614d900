# =============================================================================
# Multimodal Vision Demo - Server Error Classification
# =============================================================================
# Maps an arbitrary provider failure to one of six fixed error kinds, each
# with a user-facing message and an HTTP status.  Classification is a
# case-insensitive substring match on the error message, checked in a fixed
# priority order.  It is a heuristic: a message that mentions "rate" for an
# unrelated reason is classified as rate limiting.
# =============================================================================

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from fastapi.responses import JSONResponse

from shared.schemas import ErrorResponse

logger = logging.getLogger(__name__)


class ServerErrorKind(str, Enum):
    """Error kinds reported in the ``errorType`` field of failure responses."""

    SERVER_ERROR = "server_error"
    QUOTA_EXCEEDED = "quota_exceeded"
    RATE_LIMITED = "rate_limited"
    INVALID_KEY = "invalid_key"
    CONTENT_FILTERED = "content_filtered"
    TIMEOUT = "timeout"


# kind -> (user-facing message, HTTP status)
ERROR_DETAILS: Dict[ServerErrorKind, Tuple[str, int]] = {
    ServerErrorKind.SERVER_ERROR: (
        "An error occurred while processing your request", 500,
    ),
    ServerErrorKind.QUOTA_EXCEEDED: (
        "API quota exceeded. Please try again later.", 429,
    ),
    ServerErrorKind.RATE_LIMITED: (
        "Rate limit exceeded. Please try again in a few moments.", 429,
    ),
    ServerErrorKind.INVALID_KEY: (
        "Invalid API key. Please check your API key configuration.", 401,
    ),
    ServerErrorKind.CONTENT_FILTERED: (
        "The content was flagged as inappropriate or unsafe.", 400,
    ),
    ServerErrorKind.TIMEOUT: (
        "The request timed out. Please try again.", 408,
    ),
}

# Checked in order; the first matching substring wins.
_MESSAGE_PATTERNS: Tuple[Tuple[str, ServerErrorKind], ...] = (
    ("quota", ServerErrorKind.QUOTA_EXCEEDED),
    ("rate", ServerErrorKind.RATE_LIMITED),
    ("invalid", ServerErrorKind.INVALID_KEY),
    ("content", ServerErrorKind.CONTENT_FILTERED),
    ("timeout", ServerErrorKind.TIMEOUT),
)


@dataclass(frozen=True)
class ClassifiedServerError:
    """A raw failure mapped onto the fixed server error taxonomy."""

    kind: ServerErrorKind
    message: str
    http_status: int


def detect_error_kind(message: str) -> ServerErrorKind:
    """
    Pick the error kind for a raw error message.

    Args:
        message: The failure's message text.

    Returns:
        The first kind whose pattern occurs in the message, or SERVER_ERROR.
    """
    lowered = message.lower()
    for pattern, kind in _MESSAGE_PATTERNS:
        if pattern in lowered:
            return kind
    return ServerErrorKind.SERVER_ERROR


def classify_error(error: object) -> ClassifiedServerError:
    """
    Classify an exception or error value.

    Exceptions are classified by ``str(error)`` and plain strings by their
    content.  Anything else is a generic server error.

    Args:
        error: The failure raised by (or returned from) the provider call.

    Returns:
        ClassifiedServerError with the kind, user-facing message and status.
    """
    if isinstance(error, BaseException):
        kind = detect_error_kind(str(error))
    elif isinstance(error, str):
        kind = detect_error_kind(error)
    else:
        kind = ServerErrorKind.SERVER_ERROR

    message, status = ERROR_DETAILS[kind]
    return ClassifiedServerError(kind=kind, message=message, http_status=status)


def error_response(error: object) -> JSONResponse:
    """
    Build the JSON failure response for a provider failure.

    Args:
        error: The raw failure.

    Returns:
        JSONResponse with body ``{text: "", error, errorType}`` and the
        mapped status code.
    """
    logger.error(
        "Model provider error: %s", error, exc_info=isinstance(error, BaseException),
    )
    classified = classify_error(error)
    body = ErrorResponse(
        text="",
        error=classified.message,
        error_type=classified.kind.value,
    )
    return JSONResponse(status_code=classified.http_status, content=body.to_wire())
