"""
Domain exceptions raised by the session engine.

Each subclass of :class:`SessionError` carries the HTTP status it maps to;
``app.main`` converts them into ``{"error": message}`` responses at the
request boundary. None of them are retried.
"""

from typing import Optional

from fastapi import status

from app.core.error_responses import ErrorMessages


class SessionError(Exception):
    """Base class for expected failures of session operations."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = ErrorMessages.INTERNAL_SERVER_ERROR

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(SessionError):
    """Session, owner or question does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = ErrorMessages.SESSION_NOT_FOUND


class InvalidStateError(SessionError):
    """Session is no longer ACTIVE."""

    default_message = ErrorMessages.SESSION_NOT_ACTIVE


class OutOfOrderError(SessionError):
    """Submitted question is not the one at the session's current index."""

    default_message = ErrorMessages.INVALID_QUESTION_ORDER


class NoQuestionsAvailableError(SessionError):
    """Question sampling for a new session returned nothing."""

    default_message = ErrorMessages.NO_QUESTIONS_AVAILABLE


class DatabaseOperationError(Exception):
    """A database operation failed outside a request context.

    Used by batch jobs where an HTTP error response is not appropriate.

    Attributes:
        operation_name: Human-readable name of the operation that failed
        original_error: The underlying exception that caused the failure
    """

    def __init__(self, operation_name: str, original_error: Exception):
        self.operation_name = operation_name
        self.original_error = original_error
        self.message = f"Failed to {operation_name}: {original_error}"
        super().__init__(self.message)
