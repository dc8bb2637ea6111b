"""Service-layer errors and result envelopes.

Services raise these with a user-facing German message; the exception
handler registered in ``storefront.main`` turns them into
``{"detail": <message>}`` responses so routes never inspect SQLAlchemy
or driver errors directly.
"""

import logging
from dataclasses import dataclass

from fastapi import status

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "Ein unbekannter Fehler ist aufgetreten."


class StorefrontError(Exception):
    """Base error carrying a human-readable message and an HTTP status."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class NotFoundError(StorefrontError):
    """Raised when a referenced row does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ValidationFailedError(StorefrontError):
    """Raised before any write when input breaks a business rule."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class PersistenceError(StorefrontError):
    """Raised when the database call itself failed."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


@dataclass
class OperationResult:
    """Outcome of an operation that reports instead of raising."""

    success: bool
    message: str = ""
    deleted_count: int = 0


def get_error_message(error: object) -> str:
    """Extract a user-safe message from any raised value."""
    if isinstance(error, StorefrontError):
        return error.message
    if isinstance(error, Exception) and str(error):
        return str(error)
    if isinstance(error, str):
        return error
    return UNKNOWN_ERROR_MESSAGE


def log_service_error(context: str, error: object) -> None:
    """Log a service-layer error with consistent formatting."""
    logger.error(f"[{context}] {get_error_message(error)}", exc_info=isinstance(error, Exception))
