"""
Cookie session middleware tests against a minimal app.
"""

import uuid

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from edu_cms_server.auth.models import SessionUser
from edu_cms_server.auth.session import (
    ACCESS_COOKIE,
    SESSION_COOKIE,
    SessionCookieMiddleware,
    get_current_user,
    require_user,
)
from edu_cms_server.auth.tokens import sign_session_token, verify_session_token
from edu_cms_server.core.errors import APIError, api_error_handler

USER = SessionUser(id=uuid.uuid4(), email="mentor@example.com", role="mentor")


@pytest.fixture
def client():
    app = FastAPI()
    app.add_middleware(SessionCookieMiddleware)
    app.add_exception_handler(APIError, api_error_handler)

    @app.get("/whoami")
    def whoami(user=Depends(get_current_user)):
        return {"email": user.email if user else None}

    @app.get("/protected")
    def protected(user: SessionUser = Depends(require_user)):
        return {"id": str(user.id)}

    @app.post("/login")
    def login(request: Request):
        request.state.user = USER
        return {"ok": True}

    with TestClient(app) as c:
        yield c


def _set_cookies(response):
    cookies = {}
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        cookies[name] = rest.split(";", 1)[0]
    return cookies


def _cookie_header(**cookies):
    return {"Cookie": "; ".join(f"{k}={v}" for k, v in cookies.items())}


def test_anonymous_request_sets_no_cookies(client):
    response = client.get("/whoami")

    assert response.json() == {"email": None}
    assert response.headers.get_list("set-cookie") == []


def test_valid_session_is_attached_and_refreshed(client):
    token = sign_session_token(USER)
    response = client.get("/whoami", headers=_cookie_header(access_token=token, session_id="abc"))

    assert response.json() == {"email": "mentor@example.com"}
    cookies = _set_cookies(response)
    assert cookies[SESSION_COOKIE] == "abc"
    assert verify_session_token(cookies[ACCESS_COOKIE]) == USER


def test_invalid_token_clears_cookies(client):
    response = client.get("/whoami", headers=_cookie_header(access_token="broken", session_id="abc"))

    assert response.json() == {"email": None}
    cookies = _set_cookies(response)
    assert cookies[ACCESS_COOKIE] in ("", '""')
    assert cookies[SESSION_COOKIE] in ("", '""')


def test_protected_route_requires_session(client):
    response = client.get("/protected")

    assert response.status_code == 401
    body = response.json()
    assert body["title"] == "SESSION_INVALIDATED"
    assert body["success"] is False


def test_protected_route_with_session(client):
    token = sign_session_token(USER)
    response = client.get("/protected", headers=_cookie_header(access_token=token))

    assert response.status_code == 200
    assert response.json() == {"id": str(USER.id)}


def test_route_can_start_a_session(client):
    response = client.post("/login")

    cookies = _set_cookies(response)
    assert verify_session_token(cookies[ACCESS_COOKIE]) == USER
    assert cookies[SESSION_COOKIE]
