"""Shared exception handlers producing ``{"error": ..., "details": [...]}`` bodies.

Services raise subclasses of ``ServiceError`` that carry their HTTP status
and the public error text; ``add_exception_handlers`` maps them (and
request validation failures) to JSON responses.
"""

from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from libs.common.logging import get_logger

logger = get_logger(__name__)


class ServiceError(Exception):
    """Base exception for errors that map to an HTTP response."""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    # Client-facing text; server errors never echo ``message``
    public_error: Optional[str] = "Internal server error"

    def __init__(self, message: str, details: Optional[list[str]] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def log_fields(self) -> dict[str, Any]:
        return {}


def error_response(status_code: int, error: str, details=None) -> JSONResponse:
    content = {"error": error}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def format_validation_errors(errors) -> list[str]:
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        field = ".".join(loc) or "body"
        details.append(f"{field}: {err.get('msg', 'invalid value')}")
    return details


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "Invalid request",
        format_validation_errors(exc.errors()),
    )


async def service_error_handler(request: Request, exc: ServiceError):
    if exc.http_status >= 500:
        logger.error(
            f"{type(exc).__name__} on {request.url.path}: {exc.message}",
            extra={"extra_fields": exc.log_fields()},
        )
        return error_response(exc.http_status, exc.public_error)
    return error_response(
        exc.http_status, exc.public_error or exc.message, exc.details
    )


def add_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ServiceError, service_error_handler)
