"""Exception handlers producing the uniform error envelope.

AppError subclasses answer with their own status; request validation
failures answer 400; anything else is logged and answers 500 without
leaking internal details.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.errors import AppError, format_validation_errors

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str, error_messages: list[dict]) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "statusCode": status_code,
            "message": message,
            "errorMessages": error_messages,
        },
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return _error_response(
        exc.status_code,
        exc.message,
        [{"path": "", "message": exc.message}],
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(400, "Validation Error", format_validation_errors(exc.errors()))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return _error_response(
        500,
        "Something went wrong!",
        [{"path": "", "message": "Internal server error"}],
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach the handlers to the application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
