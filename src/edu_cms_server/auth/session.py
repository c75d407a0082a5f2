"""
Cookie Sessions

A session is an ``access_token`` JWT cookie plus an opaque ``session_id``
cookie. ``SessionCookieMiddleware`` runs on every request:

1. No session cookies: the request proceeds anonymously.
2. Valid token: the SessionUser is attached to ``request.state.user`` and
   both cookies are re-issued with a fresh expiry (sliding session).
3. Invalid or expired token: the request proceeds anonymously and the
   cookies are cleared; protected routes then fail with SESSION_INVALIDATED.

Routes read the identity through ``get_current_user`` / ``require_user``.
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import Depends, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from ..config import settings
from ..core.errors import SessionInvalidatedError
from .models import SessionUser
from .tokens import sign_session_token, verify_session_token

logger = logging.getLogger("edu.auth")

ACCESS_COOKIE = "access_token"
SESSION_COOKIE = "session_id"


# ---------------------------------------------------------------------
# Cookie Helpers
# ---------------------------------------------------------------------

def _set_cookie(response: Response, key: str, value: str) -> None:
    response.set_cookie(
        key,
        value,
        max_age=settings.access_token_ttl_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        domain=settings.cookie_domain,
    )


def issue_session(
    response: Response,
    user: SessionUser,
    session_id: Optional[str] = None,
) -> str:
    """
    Write fresh session cookies for ``user`` onto ``response``.

    Returns the session id used (a new one is generated when not given).
    """
    session_id = session_id or secrets.token_urlsafe(24)
    _set_cookie(response, ACCESS_COOKIE, sign_session_token(user))
    _set_cookie(response, SESSION_COOKIE, session_id)
    return session_id


def clear_session(response: Response) -> None:
    for key in (ACCESS_COOKIE, SESSION_COOKIE):
        response.delete_cookie(
            key,
            secure=settings.cookie_secure,
            httponly=True,
            samesite=settings.cookie_samesite,
            domain=settings.cookie_domain,
        )


# ---------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------

class SessionCookieMiddleware(BaseHTTPMiddleware):
    """
    Resolves the session identity before the route runs and refreshes or
    clears the cookies afterwards.

    Routes may replace ``request.state.user`` (sign-up, identity changes);
    the cookies written follow the final value.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        access_token = request.cookies.get(ACCESS_COOKIE)
        session_id = request.cookies.get(SESSION_COOKIE)
        had_session = bool(access_token or session_id)

        user: Optional[SessionUser] = None
        if had_session:
            try:
                user = verify_session_token(access_token)
            except SessionInvalidatedError:
                logger.debug("Dropping invalid session on %s", request.url.path)

        request.state.user = user
        response = await call_next(request)

        current = getattr(request.state, "user", None)
        if current is not None:
            issue_session(response, current, session_id)
        elif had_session:
            clear_session(response)
        return response


# ---------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------

def get_current_user(request: Request) -> Optional[SessionUser]:
    return getattr(request.state, "user", None)


def require_user(user: Optional[SessionUser] = Depends(get_current_user)) -> SessionUser:
    """
    Reject anonymous requests with SESSION_INVALIDATED.
    """
    if user is None:
        raise SessionInvalidatedError()
    return user
