"""Centralized error handling for the market API endpoints."""

from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cryptonique.utils.config import config
from cryptonique.utils.logger import StructuredLogger

logger = StructuredLogger("ErrorHandlers", config.logging.log_file)


class MarketError:
    """Standard error codes for the market API."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNSUPPORTED_CURRENCY = "UNSUPPORTED_CURRENCY"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class ErrorResponse:
    """Standardized error response format."""

    def __init__(
        self,
        error_code: str,
        message: str,
        details: dict[str, Any] | list[str] | None = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        response = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            response["details"] = self.details
        return response

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(status_code=self.status_code, detail=self.to_dict())

    def to_json_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


def create_validation_error_response(errors: list[dict[str, Any]]) -> ErrorResponse:
    """
    Create standardized validation error response from request validation errors.

    Args:
        errors: List of validation errors reported by FastAPI

    Returns:
        ErrorResponse with field-specific validation errors
    """
    field_errors = {}
    for error in errors:
        field_path = ".".join(str(loc) for loc in error["loc"])
        field_errors[field_path] = error["msg"]

    return ErrorResponse(
        error_code=MarketError.VALIDATION_ERROR,
        message="Validation failed for one or more fields",
        details=field_errors,
        status_code=status.HTTP_400_BAD_REQUEST,
    )


def create_unsupported_currency_error(vs: str) -> ErrorResponse:
    return ErrorResponse(
        error_code=MarketError.UNSUPPORTED_CURRENCY,
        message=f"Unsupported quote currency: {vs}",
        details={"vs": vs, "supported": ["usd"]},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


def create_internal_error(message: str = "An unexpected error occurred") -> ErrorResponse:
    """Create internal server error; the message stays generic."""
    return ErrorResponse(
        error_code=MarketError.INTERNAL_ERROR,
        message=message,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI validation errors with standardized format."""
    return create_validation_error_response(exc.errors()).to_json_response()


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Pass standardized details through; wrap plain string details."""
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = exc.detail
    else:
        code = (
            MarketError.NOT_FOUND
            if exc.status_code == status.HTTP_404_NOT_FOUND
            else MarketError.VALIDATION_ERROR
        )
        content = ErrorResponse(code, str(exc.detail), status_code=exc.status_code).to_dict()
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected exceptions and return a generic 500."""
    logger.error(
        "Unhandled exception while serving request",
        context={"path": request.url.path, "method": request.method},
        exception=exc,
    )
    return create_internal_error().to_json_response()


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
