from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map onto an HTTP status.

    ``message`` is what the caller sees; it must never carry internal detail.
    """

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def headers(self) -> dict[str, str] | None:
        return None


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Authentication failed"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class NotAllowedError(AppError):
    status_code = 405
    default_message = "Method Not Allowed"

    def __init__(self, allowed: Iterable[str], message: str | None = None) -> None:
        self.allowed = sorted({method.upper() for method in allowed})
        super().__init__(message)

    @property
    def headers(self) -> dict[str, str] | None:
        return {"Allow": ", ".join(self.allowed)}


class InternalError(AppError):
    status_code = 500
    default_message = "Internal server error"


def _render(exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
        headers=exc.headers,
    )


def _describe_validation(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return ValidationError.default_message
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    field = ".".join(loc)
    if first.get("type") == "json_invalid":
        return "Invalid JSON body"
    if first.get("type") == "missing":
        return f"{field} is required" if field else "Request body is required"
    msg = first.get("msg") or ValidationError.default_message
    return f"{field}: {msg}" if field else msg


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _render(exc)


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 405:
        allow = (exc.headers or {}).get("Allow", "")
        allowed = [item.strip() for item in allow.split(",") if item.strip()]
        return _render(NotAllowedError(allowed, f"Method {request.method} Not Allowed"))
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=exc.headers,
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _render(InternalError())


# 注册统一错误处理：所有错误响应均为 {"error": message}
def register_error_handlers(
    app: FastAPI,
    authenticate: Callable[[str], Any] | None = None,
) -> None:
    """Install the JSON error handlers.

    FastAPI parses the request body before resolving dependencies, so a body
    that fails validation would otherwise be reported before the credential is
    checked. When ``authenticate`` is given it is called with the
    Authorization header first, and its error wins over the 400.
    """

    async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        if authenticate is not None:
            try:
                authenticate(request.headers.get("authorization", ""))
            except AppError as auth_exc:
                return _render(auth_exc)
        return _render(ValidationError(_describe_validation(exc)))

    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
