import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from edu_cms_server.core.errors import (
    APIError,
    InvalidInputError,
    InvalidObjectIdError,
    NotFoundError,
)
from edu_cms_server.db.user_store import AccountStore, UserStore
from edu_cms_server.users.profiles import RoleProfileStore
from edu_cms_server.users.registration import UserAlreadyExistsError
from edu_cms_server.users.service import UserService

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_user(**overrides):
    fields = {
        "id": uuid.uuid4(),
        "email": "student@example.com",
        "role": "student",
        "is_verified": False,
        "is_deleted": False,
        "first_name": None,
        "last_name": None,
        "identity_updated_at": None,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def _apply(user):
    async def update(user_id, values):
        for key, value in values.items():
            setattr(user, key, value)
        return user
    return update


@pytest.fixture
def user():
    return make_user()


@pytest.fixture
def session():
    session = MagicMock()
    session.commit = AsyncMock()
    return session


@pytest.fixture
def users(user):
    users = AsyncMock(spec=UserStore)
    users.find_by_id.return_value = user
    users.find_by_email.return_value = user
    users.update.side_effect = _apply(user)
    return users


@pytest.fixture
def accounts():
    return AsyncMock(spec=AccountStore)


@pytest.fixture
def profile_store():
    return AsyncMock(spec=RoleProfileStore)


@pytest.fixture
def service(session, users, accounts, profile_store):
    return UserService(
        session,
        users=users,
        accounts=accounts,
        profiles=lambda role: profile_store,
        clock=lambda: NOW,
    )


class TestLookups:
    async def test_get_by_id(self, service, user):
        assert await service.get_user_by_id(str(user.id)) is user

    async def test_get_by_malformed_id(self, service):
        with pytest.raises(InvalidObjectIdError):
            await service.get_user_by_id("nope")

    async def test_missing_user(self, service, users):
        users.find_by_id.return_value = None
        with pytest.raises(NotFoundError) as excinfo:
            await service.get_user_by_id(str(uuid.uuid4()))
        assert excinfo.value.title == "USER_NOT_FOUND"

    async def test_get_by_email(self, service, users, user):
        assert await service.get_user_by_email({"email": "student@example.com"}) is user
        users.find_by_email.assert_awaited_once_with("student@example.com")


class TestLifecycle:
    async def test_verify(self, service, user, session):
        await service.verify_user(user.id)
        assert user.is_verified is True
        session.commit.assert_awaited_once()

    async def test_verify_twice(self, service, user):
        user.is_verified = True
        with pytest.raises(APIError) as excinfo:
            await service.verify_user(user.id)
        assert excinfo.value.title == "ALREADY_VERIFIED"
        assert excinfo.value.status_code == 400

    async def test_deactivate_cascades(self, service, user, accounts, profile_store):
        await service.deactivate_user(user.id)

        assert user.is_deleted is True
        accounts.set_deleted.assert_awaited_once_with(user.id, True)
        profile_store.set_deleted.assert_awaited_once_with(user.id, True)

    async def test_activate_restores(self, service, user, users, accounts, profile_store):
        user.is_deleted = True
        await service.activate_user(user.email)

        users.find_by_email.assert_awaited_once_with(user.email, include_deleted=True)
        assert user.is_deleted is False
        accounts.set_deleted.assert_awaited_once_with(user.id, False)
        profile_store.set_deleted.assert_awaited_once_with(user.id, False)

    async def test_activate_active_user(self, service, user):
        with pytest.raises(APIError) as excinfo:
            await service.activate_user(user.email)
        assert excinfo.value.title == "ALREADY_ACTIVE"


class TestIdentityUpdate:
    async def test_updates_and_derives_fullname(self, service, user):
        await service.update_user(user.id, {"first_name": "Ada", "last_name": "Lovelace"})

        assert user.fullname == "Ada Lovelace"
        assert user.identity_updated_at == NOW

    async def test_email_lowercased(self, service, user):
        await service.update_user(user.id, {"email": "Ada@Example.com"})
        assert user.email == "ada@example.com"

    async def test_limited_to_once_per_window(self, service, user):
        user.identity_updated_at = NOW - timedelta(days=10)

        with pytest.raises(APIError) as excinfo:
            await service.update_user(user.id, {"username": "ada"})

        assert excinfo.value.title == "UPDATE_LIMIT_REACHED"
        assert excinfo.value.status_code == 429

    async def test_allowed_after_window(self, service, user):
        user.identity_updated_at = NOW - timedelta(days=31)
        await service.update_user(user.id, {"username": "Ada"})
        assert user.username == "ada"

    async def test_nothing_to_update(self, service, user):
        with pytest.raises(InvalidInputError):
            await service.update_user(user.id, {"role": "mentor"})

    async def test_taken_username(self, service, user, users):
        users.update.side_effect = IntegrityError("UPDATE", {}, SimpleNamespace(pgcode="23505"))
        with pytest.raises(UserAlreadyExistsError):
            await service.update_user(user.id, {"username": "taken"})

    async def test_change_image(self, service, user):
        await service.change_image_url(user.id, {"newImageUrl": "https://img.example.com/x.png"})
        assert user.image_url == "https://img.example.com/x.png"


class TestProfiles:
    async def test_profile_goes_through_role_store(self, service, user, profile_store, session):
        profile_store.update_profile.return_value = SimpleNamespace(bio="hi")

        profile = await service.update_profile(user.id, "student", {"bio": "hi"})

        assert profile.bio == "hi"
        profile_store.update_profile.assert_awaited_once_with(user.id, {"bio": "hi"})
        session.commit.assert_awaited_once()

    async def test_preferences(self, service, user, profile_store):
        profile_store.get_preferences.return_value = SimpleNamespace(language="Hindi")
        preferences = await service.get_preferences(user.id, "student")
        assert preferences.language == "Hindi"
