"""
Application error taxonomy and the HTTP handlers that render it.

Every error that reaches a client is shaped as
``{"error": {"code": <status>, "message": <text>}}``.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.responses import JSONResponse

log = structlog.get_logger()


class AppError(Exception):
    """Operational error with an HTTP status code."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400


class AuthError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class DispatchError(AppError):
    """An email or push delivery attempt failed."""

    status_code = 502

    def __init__(self, message: str, channel: str):
        super().__init__(message)
        self.channel = channel


class BroadcasterNotInitializedError(RuntimeError):
    """Raised when the real-time layer is used before process startup wired it."""


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": status_code, "message": message}},
    )


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log.info(
        "request.failed",
        path=request.url.path,
        method=request.method,
        status=exc.status_code,
        error=exc.message,
    )
    return error_response(exc.status_code, exc.message)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = f"{location}: {first.get('msg', 'Invalid request')}" if location else "Invalid request"
    return error_response(400, message)


async def _integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    log.warning("request.integrity_error", path=request.url.path, error=str(exc.orig))
    return error_response(409, "Unique constraint violation")


async def _database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log.error("request.database_error", path=request.url.path, exc_info=exc)
    return error_response(500, "Database error")


def register_error_handlers(app: FastAPI) -> None:
    """Install the JSON error handlers on an application."""
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(IntegrityError, _integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, _database_error_handler)
