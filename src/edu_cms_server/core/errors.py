"""
Global Error Handling

This module defines the application error taxonomy and the FastAPI exception
handlers that turn it into HTTP responses.

Design Goals
------------
- Never leak internal exception details to clients
- Always return deterministic, machine-readable error responses
- Log full stack traces internally for debugging
- Keep domain errors raisable from services without importing FastAPI types

Error Body
----------
Every error response carries::

    {title, message, success: false, status, errors, timestamp}
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger("edu.errors")


def utc_timestamp() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class APIError(Exception):
    """
    Base class for all errors that map to a structured client response.

    Subclasses fix ``status_code`` and ``title``; both may be overridden per
    instance (e.g. ``NotFoundError(..., title="CATEGORY_NOT_FOUND")``).
    """

    status_code: int = 500
    title: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        title: Optional[str] = None,
        status_code: Optional[int] = None,
        errors: Any = None,
    ) -> None:
        super().__init__(message or "")
        self.message = message
        if title is not None:
            self.title = title
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors

    def to_payload(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "message": self.message,
            "success": False,
            "status": self.status_code,
            "errors": self.errors,
            "timestamp": utc_timestamp(),
        }

    def __str__(self) -> str:
        return f"APIError: {self.status_code} - {self.title} - {self.message}"


class ValidationFailedError(APIError):
    """Structural or referential validation failed. ``errors`` is the issue list."""
    status_code = 400
    title = "VALIDATION_ERROR"


class DuplicateKeyError(APIError):
    """One or more unique titles already exist. ``errors`` lists the titles."""
    status_code = 409
    title = "DUPLICATE_KEY_ERROR"


class NotFoundError(APIError):
    status_code = 404
    title = "NOT_FOUND"


class InvalidObjectIdError(APIError):
    status_code = 400
    title = "INVALID_OBJECTID"


class InvalidInputError(APIError):
    status_code = 400
    title = "INVALID_INPUT"


class AuthError(APIError):
    """Session or authorization failures."""
    status_code = 401
    title = "AUTHORIZATION_ERROR"


class SessionInvalidatedError(AuthError):
    title = "SESSION_INVALIDATED"

    def __init__(self, message: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message or "The session was invalidated. Please login again.", **kwargs)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def issues_from_validation_error(
    exc: ValidationError,
    index: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Flatten a pydantic ValidationError into field-level issues.

    Parameters
    ----------
    exc : ValidationError
        The error raised by ``model_validate``.
    index : Optional[int]
        Position of the payload within a bulk request, if any.
    """
    issues = []
    for err in exc.errors(include_url=False, include_context=False):
        issue: Dict[str, Any] = {
            "path": [str(part) for part in err.get("loc", ())],
            "message": err.get("msg", "Invalid value"),
            "code": err.get("type", "invalid"),
        }
        if index is not None:
            issue["index"] = index
        issues.append(issue)
    return issues


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when a database IntegrityError was caused by a unique constraint."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    return code == "23505"


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """
    Serialize an APIError into the standard error body.
    """
    if exc.status_code >= 500:
        logger.error("API error on %s %s: %s", request.method, request.url.path, exc)
    else:
        logger.info("Client error on %s %s: %s", request.method, request.url.path, exc)

    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(exc.to_payload()),
    )


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Map FastAPI request validation failures onto VALIDATION_ERROR.
    """
    issues = [
        {
            "path": [str(part) for part in err.get("loc", ())],
            "message": err.get("msg", "Invalid value"),
            "code": err.get("type", "invalid"),
        }
        for err in exc.errors()
    ]
    error = ValidationFailedError("Validation error in provided data.", errors=issues)
    return JSONResponse(
        status_code=error.status_code,
        content=jsonable_encoder(error.to_payload()),
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Behavior
    --------
    - Logs the full exception stack trace for internal diagnostics.
    - Returns a generic 500 error to the client with no internal details.
    - Ensures consistent error response format across the entire API.
    """

    # Log full traceback internally (never returned to client)
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {
        "title": "INTERNAL_SERVER_ERROR",
        "message": "Internal server error",
        "success": False,
        "status": 500,
        "errors": None,
        "timestamp": utc_timestamp(),
    }

    return JSONResponse(
        status_code=500,
        content=payload,
    )
