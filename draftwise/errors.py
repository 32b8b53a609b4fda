"""
Error taxonomy for Draftwise.

Every error carries the HTTP status the API layer should answer with and a
short machine-readable code. The app registers a single handler for
DraftwiseError, so services raise these instead of HTTPException.
"""

from __future__ import annotations


class DraftwiseError(Exception):
    """Base exception for Draftwise errors."""

    status_code: int = 500
    code: str = "internal"

    def __init__(self, message: str = "", **details: object):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or (self.__class__.__doc__ or self.code).strip()
        self.details = details


class InvalidRequest(DraftwiseError):
    """Request is missing required fields or has malformed input."""

    status_code = 400
    code = "invalid-argument"


class Unauthenticated(DraftwiseError):
    """Caller identity is missing."""

    status_code = 401
    code = "unauthenticated"


class PermissionDenied(DraftwiseError):
    """Caller does not own the requested resource."""

    status_code = 403
    code = "permission-denied"


class NotFound(DraftwiseError):
    """Resource not found."""

    status_code = 404
    code = "not-found"


class RateLimited(DraftwiseError):
    """Sliding-window request quota exceeded."""

    status_code = 429
    code = "resource-exhausted"

    def __init__(self, message: str = "", retry_after: int = 0, **details: object):
        super().__init__(message, retry_after=retry_after, **details)
        self.retry_after = retry_after


class ModelCallFailed(DraftwiseError):
    """The language model provider could not be reached or errored."""

    status_code = 502
    code = "model-unavailable"


class ResponseParseFailed(DraftwiseError):
    """Model output was not a JSON object with a suggestions array."""

    status_code = 502
    code = "bad-model-response"


class AnalysisFailed(DraftwiseError):
    """Model output could not be parsed even after the constrained retry."""

    status_code = 502
    code = "analysis-failed"


class StaleSuggestionIndex(DraftwiseError):
    """Suggestion text no longer exists in the document."""

    status_code = 409
    code = "stale-suggestion"


class CacheWriteFailed(DraftwiseError):
    """Analysis cache write failed. Never surfaced to callers."""

    code = "cache-write-failed"
