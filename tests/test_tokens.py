import time
import uuid

import jwt
import pytest

from edu_cms_server.auth.models import SessionUser
from edu_cms_server.auth.tokens import sign_session_token, verify_session_token
from edu_cms_server.config import settings
from edu_cms_server.core.errors import SessionInvalidatedError


def make_user(**overrides):
    fields = {
        "id": uuid.uuid4(),
        "email": "student@example.com",
        "role": "student",
        "is_verified": True,
        "image_url": None,
    }
    fields.update(overrides)
    return SessionUser(**fields)


def create_token(payload, secret=None):
    secret = secret or settings.jwt_secret.get_secret_value()
    return jwt.encode(payload, secret, algorithm=settings.jwt_algo)


def test_round_trip():
    user = make_user(image_url="https://img.example.com/a.png")
    assert verify_session_token(sign_session_token(user)) == user


def test_claims_use_public_names():
    token = sign_session_token(make_user())
    claims = jwt.decode(token, options={"verify_signature": False})

    assert claims["isVerified"] is True
    assert "imageUrl" in claims
    assert claims["exp"] - claims["iat"] == settings.access_token_ttl_seconds


def test_expired_token_rejected():
    token = sign_session_token(make_user(), ttl_seconds=-10)
    with pytest.raises(SessionInvalidatedError):
        verify_session_token(token)


def test_wrong_secret_rejected():
    user = make_user()
    now = int(time.time())
    token = create_token({**user.to_claims(), "iat": now, "exp": now + 60}, secret="another-secret-that-is-long-enough-too")

    with pytest.raises(SessionInvalidatedError):
        verify_session_token(token)


def test_missing_identity_claims_rejected():
    now = int(time.time())
    token = create_token({"id": str(uuid.uuid4()), "iat": now, "exp": now + 60})

    with pytest.raises(SessionInvalidatedError):
        verify_session_token(token)


def test_malformed_id_rejected():
    now = int(time.time())
    token = create_token({
        "id": "not-a-uuid",
        "email": "a@b.co",
        "role": "student",
        "iat": now,
        "exp": now + 60,
    })

    with pytest.raises(SessionInvalidatedError):
        verify_session_token(token)


@pytest.mark.parametrize("token", [None, "", "garbage"])
def test_absent_or_garbage_token(token):
    with pytest.raises(SessionInvalidatedError) as excinfo:
        verify_session_token(token)
    assert excinfo.value.status_code == 401
    assert excinfo.value.title == "SESSION_INVALIDATED"
