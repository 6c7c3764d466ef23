import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    code: str
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    default_code = "error"

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        code: str | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.code = code or self.default_code
        super().__init__(self.message)


class Unauthenticated(AppError):
    """No caller identity was supplied."""

    default_code = "unauthenticated"

    def __init__(self, message: str = "Authentication required", code: str | None = None) -> None:
        super().__init__(message, status.HTTP_401_UNAUTHORIZED, code)


class Unauthorized(AppError):
    """Actor lacks the role or ownership required for the action."""

    default_code = "unauthorized"

    def __init__(self, message: str = "Not authorized", code: str | None = None) -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN, code)


class InvalidTransition(AppError):
    """A transition guard failed for the record's current state."""

    default_code = "invalid_transition"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT, code)


class NotFound(AppError):
    default_code = "not_found"

    def __init__(self, message: str = "Request not found", code: str | None = None) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND, code)


class Conflict(AppError):
    """A concurrent transition resolved the record first."""

    default_code = "conflict"

    def __init__(
        self,
        message: str = "Request was already resolved by another action",
        code: str | None = None,
    ) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT, code)


class UpstreamFailure(AppError):
    default_code = "service_unavailable"

    def __init__(self, message: str = "Service temporarily unavailable", code: str | None = None) -> None:
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE, code)


class ValidationFailed(AppError):
    """Business validation failed while creating a record."""

    default_code = "validation_failed"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST, code)


def _error_response(exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            code=exc.code,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return _error_response(exc)


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            code="validation_error",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


async def _store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Store failure while handling %s %s", request.method, request.url.path)
    return _error_response(UpstreamFailure())


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _store_exception_handler)  # type: ignore[arg-type]
