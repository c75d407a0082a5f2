import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from edu_cms_server.api.dependencies import (
    get_account_service,
    get_google_client,
    get_user_service,
)
from edu_cms_server.auth.accounts import AccountService
from edu_cms_server.auth.models import SessionUser
from edu_cms_server.auth.oauth import GoogleOAuthClient, OAuthIdentity
from edu_cms_server.auth.session import ACCESS_COOKIE
from edu_cms_server.auth.tokens import sign_session_token, verify_session_token
from edu_cms_server.core.errors import APIError
from edu_cms_server.main import create_app
from edu_cms_server.users.models import StudentProfileOut
from edu_cms_server.users.service import UserService

USER_ID = uuid.uuid4()
STAMP = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_user(**overrides):
    fields = {
        "id": USER_ID,
        "email": "student@example.com",
        "username": None,
        "role": "student",
        "is_verified": False,
        "image_url": None,
        "fullname": None,
        "first_name": None,
        "last_name": None,
        "permissions": [],
        "created_at": STAMP,
        "updated_at": STAMP,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def session_cookie(user=None):
    user = user or SessionUser(id=USER_ID, email="student@example.com", role="student")
    return {"Cookie": f"{ACCESS_COOKIE}={sign_session_token(user)}"}


def issued_user(response):
    for header in response.headers.get_list("set-cookie"):
        if header.startswith(f"{ACCESS_COOKIE}="):
            return verify_session_token(header.split("=", 1)[1].split(";", 1)[0])
    return None


@pytest.fixture
def user_service():
    return AsyncMock(spec=UserService)


@pytest.fixture
def account_service():
    return AsyncMock(spec=AccountService)


@pytest.fixture
def google_client():
    client = AsyncMock(spec=GoogleOAuthClient)
    client.authorization_url.return_value = "https://accounts.google.com/o/oauth2/v2/auth?client_id=cid"
    return client


@pytest.fixture
def client(user_service, account_service, google_client):
    app = create_app(use_lifespan=False)
    app.dependency_overrides[get_user_service] = lambda: user_service
    app.dependency_overrides[get_account_service] = lambda: account_service
    app.dependency_overrides[get_google_client] = lambda: google_client

    with TestClient(app, raise_server_exceptions=False) as c:
        yield c

    app.dependency_overrides = {}


# ---------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------

def test_register_starts_session(client, user_service):
    user_service.register.return_value = make_user()

    response = client.post("/users/register", json={"email": "student@example.com", "password": "hunter22"})

    assert response.status_code == 201
    assert response.json()["data"]["email"] == "student@example.com"
    assert "password" not in response.json()["data"]
    assert issued_user(response).id == USER_ID


def test_protected_routes_need_a_session(client):
    for method, path in [("get", "/users/profile"), ("post", "/users/verify"), ("get", f"/users/{USER_ID}")]:
        response = getattr(client, method)(path)
        assert response.status_code == 401
        assert response.json()["title"] == "SESSION_INVALIDATED"


def test_verify_refreshes_claims(client, user_service):
    user_service.verify_user.return_value = make_user(is_verified=True)

    response = client.post("/users/verify", headers=session_cookie())

    assert response.json()["data"]["isVerified"] is True
    assert issued_user(response).is_verified is True
    user_service.verify_user.assert_awaited_once_with(USER_ID)


def test_update_limit_error_passes_through(client, user_service):
    user_service.update_user.side_effect = APIError(
        "User details can only be updated once every 30 days",
        title="UPDATE_LIMIT_REACHED",
        status_code=429,
    )

    response = client.put("/users/update", json={"username": "ada"}, headers=session_cookie())

    assert response.status_code == 429
    assert response.json()["title"] == "UPDATE_LIMIT_REACHED"


def test_profile_uses_role_shape(client, user_service):
    user_service.get_profile.return_value = SimpleNamespace(
        user_id=USER_ID, grade="11th", school="dps", bio="", awards=[], target_exam="JEE", target_year=2030,
    )
    user_service.profile_store.return_value = SimpleNamespace(profile_out=StudentProfileOut)

    response = client.get("/users/profile", headers=session_cookie())

    assert response.status_code == 200
    assert response.json()["data"]["targetExam"] == "JEE"
    user_service.get_profile.assert_awaited_once_with(USER_ID, "student")


def test_get_user_by_id(client, user_service):
    user_service.get_user_by_id.return_value = make_user()

    response = client.get(f"/users/{USER_ID}", headers=session_cookie())

    assert response.json()["data"]["id"] == str(USER_ID)


# ---------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------

def test_google_redirect(client, account_service):
    response = client.get("/auth/accounts/google", headers=session_cookie(), follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"].startswith("https://accounts.google.com/")
    account_service.ensure_not_linked.assert_awaited_once()


def test_google_callback_links_account(client, account_service, google_client):
    identity = OAuthIdentity(provider_id="g-1", email="student@example.com")
    google_client.fetch_identity.return_value = identity
    account_service.link_from_identity.return_value = make_user(image_url="https://img/p.png")

    response = client.get("/auth/accounts/google/callback", params={"code": "abc"}, headers=session_cookie())

    assert response.status_code == 200
    assert response.json()["data"]["imageUrl"] == "https://img/p.png"
    google_client.fetch_identity.assert_awaited_once_with("abc")
    assert issued_user(response).image_url == "https://img/p.png"


def test_unlink_wrong_provider(client, account_service):
    account_service.verify_provider = MagicMock(side_effect=APIError("bad", title="WRONG_PROVIDER", status_code=400))

    response = client.delete("/auth/accounts/unlink", params={"provider": "github"}, headers=session_cookie())

    assert response.status_code == 400
    assert response.json()["title"] == "WRONG_PROVIDER"
