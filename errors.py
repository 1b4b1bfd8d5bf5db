"""
API errors and their HTTP mapping.

Every expected failure is an ApiError subclass carrying its status code
and a client-safe message. Unexpected exceptions become an opaque 500;
details only go to the server log.
"""

import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

HTTP_400 = 400
HTTP_401 = 401
HTTP_403 = 403
HTTP_404 = 404
HTTP_500 = 500


class ApiError(Exception):
    """Base class for errors that map to a client-visible response."""

    status_code = HTTP_400
    message = "Bad request"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(ApiError):
    """Request body failed one or more field rules."""

    message = "Validation failed"

    def __init__(self, errors: List[Dict[str, str]], message: Optional[str] = None):
        super().__init__(message)
        self.errors = errors


class DuplicateEmailError(ApiError):
    message = "Email already exists"


class InvalidEnumError(ApiError):
    message = "Invalid value"


class MissingFieldError(ApiError):
    message = "Missing required field"


class InvalidCredentialsError(ApiError):
    status_code = HTTP_401
    message = "Invalid credentials"


class MissingTokenError(ApiError):
    status_code = HTTP_401
    message = "Authentication required"


class InvalidTokenError(ApiError):
    status_code = HTTP_401
    message = "Invalid token"


class UnknownUserError(ApiError):
    """Token verified but its user no longer exists."""

    status_code = HTTP_401
    message = "Invalid token"


class ForbiddenError(ApiError):
    status_code = HTTP_403
    message = "Forbidden"


class NotFoundError(ApiError):
    status_code = HTTP_404
    message = "Not found"


def _error_response(status_code: int, error: str, errors: Optional[List[Dict[str, str]]] = None) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: Dict[str, object] = {"error": error}
    if errors is not None:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body)


def _field_name(loc) -> str:
    # loc looks like ("body", "email"); drop the source prefix
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def register_error_handlers(app: FastAPI) -> None:
    """Register the API error handlers on the application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation(_request: Request, exc: ValidationError) -> JSONResponse:
        logger.warning("Validation failed: %s", ", ".join(e["field"] for e in exc.errors))
        return _error_response(exc.status_code, exc.message, exc.errors)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(_request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [{"field": _field_name(e.get("loc", ())), "message": e.get("msg", "Invalid value")} for e in exc.errors()]
        return await handle_validation(_request, ValidationError(errors))

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error on %s %s: %s", request.method, request.url.path, type(exc).__name__)
        return _error_response(HTTP_500, "Server error")
