"""
Error taxonomy for the club backend.

Engines raise these; the handlers registered by ``register_error_handlers``
turn them into JSON bodies that always carry a ``message`` field.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ClubError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ClientError(ClubError):
    """Malformed or missing request data."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ClubError):
    status_code = status.HTTP_404_NOT_FOUND


class AuthError(ClubError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class DependencyError(ClubError):
    """A store or identity-provider call failed. The message is safe to show."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def _body(message: str, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    body.update(extra)
    return body


async def club_error_handler(request: Request, exc: ClubError) -> JSONResponse:
    extra = {"details": exc.details} if exc.details else {}
    return JSONResponse(status_code=exc.status_code, content=_body(exc.message, **extra))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=_body(message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_body("Invalid request payload", errors=jsonable_encoder(exc.errors())),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_body("Internal server error"),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ClubError, club_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
