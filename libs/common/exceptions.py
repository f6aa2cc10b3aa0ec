"""Application error taxonomy.

Service code raises these; ``libs.common.error_handler`` turns them into
``{"error": ..., "details": ...}`` responses with the matching status code.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(AppError):
    """Malformed or out-of-range input."""

    status_code = 400


class NotFoundError(AppError):
    """A primary entity (order, document) does not exist."""

    status_code = 404


class ConflictError(AppError):
    """Request conflicts with current state, e.g. an order already past enrichment."""

    status_code = 409


class UpstreamError(AppError):
    """An external store or API failed or timed out."""

    status_code = 502


class InternalError(AppError):
    status_code = 500
