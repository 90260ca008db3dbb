# ecopoints/errors.py
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class APIError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error"

    def __init__(self, message: str | None = None, *, error: str | None = None):
        self.message = message or self.default_message
        self.error = error
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        if self.error:
            body["error"] = self.error
        return body


# -------- 400 --------

class ValidationError(APIError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class InvalidInput(ValidationError):
    pass


class WeakPassword(ValidationError):
    default_message = "Registration failed"


# -------- 401 / 403 --------

class Unauthorized(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class InvalidCredentials(Unauthorized):
    default_message = "Invalid credentials"


class Forbidden(APIError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Unauthorized access"


# -------- 404 / 409 --------

class NotFound(APIError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(APIError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class AlreadyProcessed(Conflict):
    default_message = "Redemption request has already been processed"


class DuplicateIdentity(Conflict):
    default_message = "Registration failed"


class InsufficientPoints(Conflict):
    default_message = "Insufficient points"


# -------- 500 --------

class UpstreamError(APIError):
    pass


class RegistrationFailed(UpstreamError):
    default_message = "Registration failed"


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(APIError)
    async def _api_error(request: Request, exc: APIError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(exc.to_body(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        return JSONResponse(
            {"message": "Missing or invalid fields", "error": _validation_message(exc)},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(SQLAlchemyError)
    async def _database_error(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse({"message": "Server error"}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse({"message": "Server error"}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
