"""
Session Token Helpers

Signs and verifies the short-lived session JWT stored in the
``access_token`` cookie.

Key characteristics:
- HS256 by default, signed with ``JWT_SECRET``
- Short TTL (``ACCESS_TOKEN_TTL_SECONDS``), re-issued on every request
- Every failure to verify maps to SESSION_INVALIDATED
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import jwt
from pydantic import ValidationError

from ..config import settings
from ..core.errors import SessionInvalidatedError
from .models import SessionUser

logger = logging.getLogger("edu.auth")


# ---------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------

def _get_current_timestamp() -> int:
    """Return current UNIX timestamp in UTC as integer seconds."""
    return int(time.time())


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def sign_session_token(user: SessionUser, ttl_seconds: Optional[int] = None) -> str:
    """
    Encode ``user`` into a session JWT.

    Parameters
    ----------
    user : SessionUser
        Identity to embed as claims.
    ttl_seconds : Optional[int]
        Lifetime override; defaults to ``settings.access_token_ttl_seconds``.

    Returns
    -------
    str
        Encoded JWT.
    """
    now = _get_current_timestamp()
    ttl = settings.access_token_ttl_seconds if ttl_seconds is None else ttl_seconds

    payload = {
        **user.to_claims(),
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(
        payload,
        settings.jwt_secret.get_secret_value(),
        algorithm=settings.jwt_algo,
    )


def verify_session_token(token: Optional[str]) -> SessionUser:
    """
    Decode a session JWT back into a SessionUser.

    Raises
    ------
    SessionInvalidatedError
        If the token is missing, expired, tampered with or lacks identity claims.
    """
    if not token:
        raise SessionInvalidatedError()

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret.get_secret_value(),
            algorithms=[settings.jwt_algo],
            options={"require": ["exp", "iat", "id", "email", "role"]},
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Session token expired")
        raise SessionInvalidatedError() from None
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected session token: %s", exc)
        raise SessionInvalidatedError() from None

    try:
        return SessionUser.model_validate(payload)
    except ValidationError:
        raise SessionInvalidatedError() from None
