import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from edu_cms_server.core.errors import ValidationFailedError
from edu_cms_server.db.user_store import AccountStore, UserStore
from edu_cms_server.users.profiles import RoleProfileStore
from edu_cms_server.users.registration import (
    RegistrationFailedError,
    UserAlreadyExistsError,
    UserRegistration,
    hash_password,
    verify_password,
)


class Savepoint:
    """Stands in for ``session.begin_nested()``."""

    def __init__(self):
        self.exited_with = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exited_with = exc_type
        return False


def _assign_id(user):
    user.id = uuid.uuid4()
    return user


@pytest.fixture
def savepoint():
    return Savepoint()


@pytest.fixture
def session(savepoint):
    session = MagicMock()
    session.begin_nested = MagicMock(return_value=savepoint)
    session.commit = AsyncMock()
    return session


@pytest.fixture
def users():
    users = AsyncMock(spec=UserStore)
    users.find_by_email.return_value = None
    users.add.side_effect = _assign_id
    return users


@pytest.fixture
def accounts():
    return AsyncMock(spec=AccountStore)


@pytest.fixture
def profile_store():
    return AsyncMock(spec=RoleProfileStore)


@pytest.fixture
def profiles(profile_store):
    return MagicMock(return_value=profile_store)


@pytest.fixture
def registration(session, users, accounts, profiles):
    return UserRegistration(session, users=users, accounts=accounts, profiles=profiles)


def test_password_hashing():
    hashed = hash_password("hunter22")
    assert hashed != "hunter22"
    assert verify_password("hunter22", hashed)
    assert not verify_password("hunter23", hashed)


async def test_registers_local_user(registration, session, users, accounts, profiles, profile_store, savepoint):
    user = await registration.register({
        "email": "New.Student@Example.com",
        "password": "hunter22",
        "role": "student",
    })

    assert user.email == "new.student@example.com"
    assert user.role == "student"
    assert user.is_verified is False

    account = accounts.add.await_args.args[0]
    assert account.provider == "local"
    assert account.user_id == user.id
    assert verify_password("hunter22", account.password)

    profiles.assert_called_once_with("student")
    profile_store.create.assert_awaited_once_with(user.id)
    assert savepoint.exited_with is None
    session.commit.assert_awaited_once()


async def test_oauth_registration_stores_no_password(registration, accounts, profiles):
    await registration.register({
        "email": "mentor@example.com",
        "provider": "google",
        "providerId": "g-123",
        "role": "mentor",
    })

    account = accounts.add.await_args.args[0]
    assert account.provider == "google"
    assert account.provider_id == "g-123"
    assert account.password is None
    profiles.assert_called_once_with("mentor")


async def test_existing_email_rejected(registration, users, session):
    users.find_by_email.return_value = SimpleNamespace(is_deleted=True)

    with pytest.raises(UserAlreadyExistsError) as excinfo:
        await registration.register({"email": "taken@example.com", "password": "hunter22"})

    assert excinfo.value.title == "USER_ALREADY_EXISTS"
    users.find_by_email.assert_awaited_once_with("taken@example.com", include_deleted=True)
    users.add.assert_not_awaited()
    session.commit.assert_not_awaited()


@pytest.mark.parametrize("password", [None, "short"])
async def test_local_accounts_need_a_password(registration, password):
    with pytest.raises(ValidationFailedError):
        await registration.register({"email": "a@example.com", "password": password})


async def test_invalid_email_rejected(registration):
    with pytest.raises(ValidationFailedError):
        await registration.register({"email": "not-an-email", "password": "hunter22"})


async def test_failed_step_rolls_back_savepoint(registration, profile_store, session, savepoint):
    profile_store.create.side_effect = OperationalError("INSERT", {}, Exception("connection lost"))

    with pytest.raises(RegistrationFailedError) as excinfo:
        await registration.register({"email": "a@example.com", "password": "hunter22"})

    assert excinfo.value.status_code == 500
    assert savepoint.exited_with is OperationalError
    session.commit.assert_not_awaited()


async def test_unique_violation_inside_savepoint(registration, accounts):
    accounts.add.side_effect = IntegrityError("INSERT", {}, SimpleNamespace(pgcode="23505"))

    with pytest.raises(UserAlreadyExistsError):
        await registration.register({"email": "a@example.com", "password": "hunter22"})
