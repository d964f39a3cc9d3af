"""Error handlers for API routes.

Every error leaving the service uses the ErrorResponse body. Backend
failures are not handled here: ProxyCore turns them into a generic payload
before they reach a route.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from search_proxy.core.exceptions import CacheRotationError
from search_proxy.core.logging import get_logger


logger = get_logger(__name__)


ERROR_TYPES: dict[int, str] = {
    400: "BadRequest",
    401: "Unauthorized",
    403: "Forbidden",
    404: "NotFound",
    405: "MethodNotAllowed",
    409: "Conflict",
    422: "ValidationError",
    500: "InternalServerError",
    503: "ServiceUnavailable",
}


class ErrorResponse(BaseModel):
    """Standard error response model.

    Attributes:
        error: Error type/category
        detail: Human-readable error description
        code: Optional machine-readable error code
        path: Optional request path that caused the error
    """

    error: str = Field(..., description="Error type or category")
    detail: str = Field(..., description="Human-readable error description")
    code: str | None = Field(default=None, description="Machine-readable error code")
    path: str | None = Field(default=None, description="Request path that caused the error")


def _error(status_code: int, request: Request, detail: str, code: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=ERROR_TYPES.get(status_code, "Error"),
            detail=detail,
            code=code,
            path=str(request.url.path),
        ).model_dump(),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTPException with the ErrorResponse schema."""
    return _error(exc.status_code, request, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation errors with per-field details."""
    field_errors = [
        f"{'.'.join(str(part) for part in error.get('loc', []))}: {error.get('msg', 'Invalid value')}"
        for error in exc.errors()
    ]
    detail = "; ".join(field_errors) if field_errors else "Validation error"
    return _error(422, request, detail, code="VALIDATION_ERROR")


async def cache_rotation_handler(request: Request, exc: CacheRotationError) -> JSONResponse:
    logger.warning(
        "Cache rotation rejected",
        target_version=exc.target_version,
        known_versions=exc.known_versions,
    )
    return _error(409, request, str(exc), code="UNKNOWN_CACHE_VERSION")


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions without leaking internals."""
    logger.exception(
        "Unhandled exception",
        path=str(request.url.path),
        error_type=type(exc).__name__,
    )
    return _error(500, request, "An unexpected error occurred", code="INTERNAL_ERROR")


def register_error_handlers(app: FastAPI) -> None:
    """Register all error handlers with the FastAPI app."""
    app.add_exception_handler(
        StarletteHTTPException,
        http_exception_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        RequestValidationError,
        validation_exception_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        CacheRotationError,
        cache_rotation_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, generic_exception_handler)


__all__ = [
    "ErrorResponse",
    "register_error_handlers",
]
