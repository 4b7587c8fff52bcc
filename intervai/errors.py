"""
Error taxonomy shared by the API and the worker.

Each error carries the HTTP status the API answers with. The worker never
maps them to responses; it re-raises so the queue's retry policy applies.
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for errors that map to a structured API response."""

    status_code = 500

    def __init__(self, message: str, *, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message, **self.extra}


class ValidationError(AppError):
    """Malformed or missing request fields."""
    status_code = 400


class AuthenticationError(AppError):
    """No valid session cookie."""
    status_code = 401


class AuthorizationError(AppError):
    """The resource exists but belongs to someone else."""
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class QuotaExceededError(AppError):
    """The session already holds the maximum number of questions."""
    status_code = 400


class UpstreamServiceError(AppError):
    """The text-generation service could not serve the request."""
    status_code = 502


class UpstreamAuthError(UpstreamServiceError):
    pass


class UpstreamRateLimitError(UpstreamServiceError):
    status_code = 429


class UpstreamUnavailableError(UpstreamServiceError):
    status_code = 503


class ParseError(AppError):
    """Generated text could not be turned into question/answer pairs."""
    status_code = 502


class PersistenceError(AppError):
    """A write to the document store failed."""
    status_code = 500


class QueueUnavailableError(AppError):
    """The job could not be enqueued. Never fail-open."""
    status_code = 503
