from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiError:
    code: str
    message: str


STATUS_TO_ERROR_CODE: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMITED",
    500: "INTERNAL_SERVER_ERROR",
    503: "STORE_UNAVAILABLE",
}


class ShortlinkError(Exception):
    """Base class for errors that map onto a JSON error response."""

    status_code = 500
    code = "INTERNAL_SERVER_ERROR"
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message is not None:
            self.message = message

    def to_api_error(self) -> ApiError:
        return ApiError(code=self.code, message=self.message)


class LinkNotFound(ShortlinkError):
    # Also used when the caller does not own the link, so the two cases
    # cannot be told apart from the response.
    status_code = 404
    code = "NOT_FOUND"
    message = "Link not found"


class LinkExpired(LinkNotFound):
    pass


class ValidationFailed(ShortlinkError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Validation error"


class InvalidUrl(ValidationFailed):
    code = "INVALID_URL"
    message = "Please provide a valid URL"


class AliasInvalid(ValidationFailed):
    code = "ALIAS_INVALID"
    message = "Alias can only contain letters, numbers, hyphens, and underscores"


class AliasReserved(ValidationFailed):
    code = "ALIAS_RESERVED"
    message = "This alias is reserved"


class AliasTaken(ShortlinkError):
    status_code = 409
    code = "ALIAS_TAKEN"
    message = "Custom alias already exists"


class StoreFailure(ShortlinkError):
    status_code = 503
    code = "STORE_UNAVAILABLE"
    message = "Service temporarily unavailable"


def normalize_http_exception(exc: HTTPException) -> ApiError:
    """
    Converts HTTPException.detail into (code, message).

    Supports:
    - detail as str -> message=str, code inferred from status
    - detail as {"code": "...", "message": "..."} -> use directly
    - detail as {"error": {"code": "...", "message": "..."}} -> use directly
    """
    status = exc.status_code
    default_code = STATUS_TO_ERROR_CODE.get(status, "ERROR")

    detail: Any = exc.detail
    if isinstance(detail, dict):
        if "error" in detail and isinstance(detail["error"], dict):
            inner = detail["error"]
            if "code" in inner and "message" in inner:
                return ApiError(code=str(inner["code"]), message=str(inner["message"]))
        if "code" in detail and "message" in detail:
            return ApiError(code=str(detail["code"]), message=str(detail["message"]))

    # fallback
    msg = detail if isinstance(detail, str) else "Request failed"
    return ApiError(code=default_code, message=str(msg))


def error_response(
    status_code: int,
    error: ApiError,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    content = {"success": False, "code": error.code, "message": error.message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def shortlink_error_handler(request: Request, exc: ShortlinkError) -> JSONResponse:
    logger.warning("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code)
    return error_response(exc.status_code, exc.to_api_error())


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error = normalize_http_exception(exc)
    logger.warning("%s %s -> %s %s", request.method, request.url.path, exc.status_code, error.code)
    return error_response(exc.status_code, error, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return error_response(
        422,
        ApiError(code="VALIDATION_ERROR", message="Invalid request data"),
        errors=errors,
    )


async def store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Store error at %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(StoreFailure.status_code, StoreFailure().to_api_error())


async def internal_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error at %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(500, ApiError(code="INTERNAL_SERVER_ERROR", message="Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ShortlinkError, shortlink_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, store_exception_handler)
    app.add_exception_handler(Exception, internal_exception_handler)
