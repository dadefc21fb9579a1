"""Application error hierarchy.

Every error carries the HTTP status the API layer responds with. Services
raise these directly; atomic operations re-raise them unchanged on abort so
the status survives the rollback path.
"""

from typing import Optional


class AppError(Exception):
    """Base exception for all product service failures."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(AppError):
    """Raised when a request or a store write cannot be honoured."""

    status_code = 400


class NotFoundError(AppError):
    """Raised when a requested record does not exist."""

    status_code = 404


class AlreadyDeletedError(NotFoundError):
    """Raised when soft-deleting a record that is already deleted.

    Kept a subclass of NotFoundError so callers that only know the
    not-found kind keep working.
    """


class ConflictError(AppError):
    """Raised when a write conflicts with the current state of a record."""

    status_code = 409


class TransactionConflictError(ConflictError):
    """Raised when a transactional batch loses an optimistic concurrency check."""


def format_validation_errors(errors: list[dict]) -> list[dict[str, str]]:
    """Flatten pydantic error entries into {path, message} pairs."""
    return [
        {
            "path": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", ""),
        }
        for error in errors
    ]
