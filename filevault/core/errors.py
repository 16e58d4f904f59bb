"""Domain errors and the handlers that render them as JSON responses.

Every error body has the shape ``{"message": <text>}``. Internal failures never
carry exception details to the caller.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


class ServiceError(Exception):
    """Base class for errors that map to a fixed HTTP status and message."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationFailed(ServiceError):
    """Bad input shape or policy violation."""

    status_code = status.HTTP_400_BAD_REQUEST


class Unauthenticated(ServiceError):
    """No credential was presented."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class InvalidCredentials(Unauthenticated):
    """Login failed. Same message for unknown user and wrong password."""

    def __init__(self) -> None:
        super().__init__("Invalid credentials")


class Forbidden(ServiceError):
    """Credential rejected, or valid credential without permission."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class NotFound(ServiceError):
    """Referenced account or file does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class InternalError(ServiceError):
    """Store or dependency failure. The message is always the generic one."""

    def __init__(self) -> None:
        super().__init__(INTERNAL_ERROR_MESSAGE)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return error_response(exc.status_code, exc.message)


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request", "errors": errors},
    )


async def _store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception(
        "Store failure on %s %s", request.method, request.url.path, exc_info=exc
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)


def register_error_handlers(app: FastAPI) -> None:
    """Install the JSON error handlers shared by every service."""
    app.add_exception_handler(ServiceError, _service_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, _store_error_handler)
