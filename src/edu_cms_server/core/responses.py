"""
Success Envelope

All successful JSON responses share one shape::

    {message, data?, ...extra, success: true, status, timestamp}
"""

from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .errors import utc_timestamp


_MISSING = object()


def respond(
    message: str,
    data: Any = _MISSING,
    status_code: int = 200,
    **extra: Any,
) -> JSONResponse:
    """
    Build a success response.

    Parameters
    ----------
    message : str
        Human readable summary.
    data : Any
        Payload; omitted from the body when not given. Pydantic models are
        serialized by alias.
    status_code : int
        HTTP status (200 or 201).
    **extra : Any
        Additional top-level keys (pagination metadata).
    """
    content = {"message": message}
    if data is not _MISSING:
        content["data"] = data
    content.update(extra)
    content.update(
        success=True,
        status=status_code,
        timestamp=utc_timestamp(),
    )

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(content, by_alias=True),
    )
