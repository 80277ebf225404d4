"""
Domain errors and the FastAPI handlers that render them.

Every error leaves the API in the same envelope:
{
    "error": {
        "code": "INVALID_TRANSITION",
        "message": "Request cannot move from 'new' to 'in_progress'",
        "details": {"current_status": "new", ...},
        "request_id": "uuid",
        "timestamp": "ISO8601",
        "path": "/api/v1/requests/.../start",
        "method": "POST"
    }
}
"""
import uuid
from datetime import datetime, timezone
from typing import Any

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from housing_desk.core.logging import get_logger

logger = get_logger(__name__)

HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMIT_EXCEEDED",
}


class HousingDeskException(Exception):
    """Base for errors raised by services; carries its own HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str = "An error occurred",
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        if code:
            self.code = code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(HousingDeskException):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} '{identifier}' not found",
            details={"resource": resource, "identifier": str(identifier)},
        )


class UnauthorizedError(HousingDeskException):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ForbiddenError(HousingDeskException):
    """The actor's role or relation to the record does not allow the action."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message)


class ConflictError(HousingDeskException):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class InvalidTransitionError(ConflictError):
    """A status change the workflow does not allow from the current status."""

    def __init__(
        self,
        entity: str,
        current: str,
        target: str,
        allowed_from: list[str] | None = None,
    ):
        super().__init__(
            f"{entity} cannot move from '{current}' to '{target}'",
            code="INVALID_TRANSITION",
            details={
                "entity": entity,
                "current_status": current,
                "target_status": target,
                "allowed_from": allowed_from or [],
            },
        )


class ValidationError(HousingDeskException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details=details)


def _request_id(request: Request) -> str:
    return (
        getattr(request.state, "request_id", None)
        or request.headers.get("X-Request-ID")
        or str(uuid.uuid4())
    )


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: dict | None = None,
) -> ORJSONResponse:
    request_id = _request_id(request)
    return ORJSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
                "request_id": request_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "path": request.url.path,
                "method": request.method,
            }
        },
        headers={"X-Request-ID": request_id},
    )


async def housing_desk_exception_handler(request: Request, exc: HousingDeskException) -> ORJSONResponse:
    logger.warning(
        "Request rejected",
        error_code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        path=request.url.path,
    )
    if exc.status_code >= 500:
        sentry_sdk.capture_exception(exc)
    return error_response(request, exc.status_code, exc.code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> ORJSONResponse:
    code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    logger.warning("HTTP error", error_code=code, status_code=exc.status_code, path=request.url.path)
    return error_response(request, exc.status_code, code, str(exc.detail))


def _validation_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors to `{"field": "body.title", ...}` entries."""
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", "Invalid value"),
            "type": err.get("type", "value_error"),
        }
        for err in exc.errors()
    ]


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    errors = _validation_errors(exc)
    logger.info("Validation failed", path=request.url.path, fields=[e["field"] for e in errors])
    return error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        f"Validation failed: {len(errors)} error(s)",
        {"validation_errors": errors},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    logger.exception("Unhandled exception", path=request.url.path, error_type=type(exc).__name__)
    sentry_sdk.capture_exception(exc)
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "An unexpected error occurred. Please try again later.",
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HousingDeskException, housing_desk_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
