"""
Error Taxonomy and JSON Error Handlers.

Every failure leaving the API is rendered with one payload shape::

    {"error": str, "message": str, "timestamp": str, "requestId": str,
     "details": ... (validation errors only)}

Domain code raises the ``ApiError`` subclasses below; ``register_error_handlers``
maps them, Werkzeug HTTP errors, and any unexpected exception onto that shape.
"""

from __future__ import annotations

import logging
import traceback
from datetime import datetime, timezone
from typing import Any

from flask import Flask, Response, current_app, jsonify, request
from werkzeug.exceptions import HTTPException, NotFound

logger = logging.getLogger(__name__)

GENERIC_500_MESSAGE = "An internal server error occurred"
DEBUG_500_MESSAGE = "An unexpected error occurred"


class ApiError(Exception):
    """Base class for errors that map to a known HTTP status."""

    status_code = 500
    error = "Internal Server Error"
    default_message = DEBUG_500_MESSAGE

    def __init__(self, message: str | None = None, details: Any = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details


class ValidationError(ApiError):
    """Malformed or out-of-range payload; ``details`` lists each failing field."""

    status_code = 400
    error = "Validation Error"
    default_message = "Invalid request data"


class UnauthorizedError(ApiError):
    status_code = 401
    error = "Unauthorized"
    default_message = "Authentication required"


class NotFoundError(ApiError):
    """
    Resource is missing or not owned by the caller.

    The two causes are deliberately indistinguishable so that a caller
    cannot probe for the existence of other users' tasks.
    """

    status_code = 404
    error = "Not Found"
    default_message = "Resource not found"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def error_payload(
    error: str, message: str, details: Any = None, **extra: Any
) -> dict[str, Any]:
    """Build the JSON body shared by every error response."""
    payload: dict[str, Any] = {
        "error": error,
        "message": message,
        "timestamp": _timestamp(),
        "requestId": request.headers.get("X-Request-ID", "unknown"),
    }
    if details is not None:
        payload["details"] = details
    payload.update(extra)
    return payload


def _handle_api_error(exc: ApiError) -> tuple[Response, int]:
    if exc.status_code >= 500:
        logger.error("API error on %s %s: %s", request.method, request.path, exc.message)
    return jsonify(error_payload(exc.error, exc.message, exc.details)), exc.status_code


def _handle_http_exception(exc: HTTPException) -> tuple[Response, int]:
    """Render Werkzeug errors (404 routes, 405, 415, bad JSON) as JSON."""
    status_code = exc.code or 500
    if isinstance(exc, NotFound):
        message = f"Route {request.method} {request.path} not found"
    else:
        message = exc.description or exc.name
    return jsonify(error_payload(exc.name, message)), status_code


def _handle_unexpected_error(exc: Exception) -> tuple[Response, int]:
    """Log the traceback and return a generic 500 body."""
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    if current_app.config.get("EXPOSE_INTERNAL_ERRORS"):
        payload = error_payload(
            "Internal Server Error",
            DEBUG_500_MESSAGE,
            stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        )
    else:
        payload = error_payload("Internal Server Error", GENERIC_500_MESSAGE)
    return jsonify(payload), 500


def register_error_handlers(app: Flask) -> None:
    """Attach the JSON error handlers to *app* (application-wide, not per blueprint)."""
    app.register_error_handler(ApiError, _handle_api_error)
    app.register_error_handler(HTTPException, _handle_http_exception)
    app.register_error_handler(Exception, _handle_unexpected_error)
