"""
Client-facing error messages.

DraftwiseError messages are written for users and pass through unless they
look like they carry internals. Anything else is replaced with a generic
message for its status code; the original is only logged.
"""

from __future__ import annotations

import re

from draftwise.errors import DraftwiseError
from draftwise.observability.logging import get_logger

logger = get_logger(__name__)

_SENSITIVE = re.compile(
    "|".join(
        (
            r"/[^\s]+\.py",
            r"[A-Za-z]:\\[^\s]+",
            r"Traceback \(most recent call last\)",
            r"File \".*\"",
            r"sqlite3?\.",
            r"constraint failed",
            r"no such (?:table|column)",
            r"Bearer [A-Za-z0-9._-]+",
            r"AIza[0-9A-Za-z_-]{20,}",
            r"draftwise\.[a-z_.]+",
        )
    ),
    re.IGNORECASE,
)

GENERIC_MESSAGES = {
    400: "Invalid request. Please check your input and try again.",
    401: "Authentication required.",
    403: "Access denied.",
    404: "Resource not found.",
    409: "The document changed. Please refresh suggestions.",
    422: "Invalid data format.",
    429: "Too many requests. Please try again later.",
    500: "An internal error occurred. Please try again later.",
    502: "The writing assistant is temporarily unavailable.",
    503: "Service temporarily unavailable.",
}


def sanitize_error_message(message: str, status_code: int = 500) -> str:
    generic = GENERIC_MESSAGES.get(status_code, "An error occurred.")
    if not message or len(message) > 200 or _SENSITIVE.search(message):
        return generic
    return message


def get_safe_error_detail(error: Exception, status_code: int = 500) -> str:
    """Log the full error, return something safe to show the caller."""
    logger.error("Error (status=%d): %s - %s", status_code, type(error).__name__, error)

    if isinstance(error, DraftwiseError):
        return sanitize_error_message(error.message, status_code)
    return GENERIC_MESSAGES.get(status_code, "An error occurred.")
