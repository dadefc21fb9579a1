"""Error module."""

from src.errors.app_error import (
    AlreadyDeletedError,
    AppError,
    BadRequestError,
    ConflictError,
    NotFoundError,
    TransactionConflictError,
    format_validation_errors,
)

__all__ = [
    "AlreadyDeletedError",
    "AppError",
    "BadRequestError",
    "ConflictError",
    "NotFoundError",
    "TransactionConflictError",
    "format_validation_errors",
]
