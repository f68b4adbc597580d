"""Error taxonomy and the handlers that map it to HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Operation failed"


class AppError(Exception):
    """Base class for errors that carry their own HTTP status."""

    status_code = 500

    def __init__(self, detail: str = GENERIC_FAILURE):
        super().__init__(detail)
        self.detail = detail


class BadRequestError(AppError):
    """Missing or invalid input."""

    status_code = 400


class ForbiddenError(AppError):
    """Caller does not own the entity."""

    status_code = 403


class NotFoundError(AppError):
    """Entity does not exist."""

    status_code = 404


class OperationFailedError(AppError):
    """Storage or unexpected failure."""

    status_code = 500


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError using its own status code."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report request validation failures as 400 with the first bad field."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        # loc is e.g. ("body", "title") or ("query", "page")
        field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request"
        detail = f"Invalid {field}: {first.get('msg', 'invalid value')}"
    else:
        detail = "Invalid request"
    return JSONResponse(status_code=400, content={"detail": detail})


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Hide storage failures behind a generic message."""
    logger.error(
        f"Storage failure on {request.method} {request.url.path}", exc_info=exc
    )
    return JSONResponse(status_code=500, content={"detail": GENERIC_FAILURE})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for anything that escaped the routes."""
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}", exc_info=exc
    )
    return JSONResponse(status_code=500, content={"detail": GENERIC_FAILURE})


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error taxonomy handlers to an application."""
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
