"""
User Service

Lifecycle and profile operations for an existing user: lookups,
verification, soft deactivation, identity updates and the role-specific
profile and preferences.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import APIError, InvalidInputError, NotFoundError, is_unique_violation
from ..core.validation import parse_object_id, validate_payload
from ..db.models import User
from ..db.user_store import AccountStore, UserStore
from .models import EmailLookup, ImageUpdate, UserUpdate
from .profiles import RoleProfileStore, get_profile_store
from .registration import UserAlreadyExistsError, UserRegistration

logger = logging.getLogger("edu.users")

IDENTITY_UPDATE_WINDOW = timedelta(days=30)


def _user_not_found() -> NotFoundError:
    return NotFoundError("User not found", title="USER_NOT_FOUND")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserService:
    """
    Parameters
    ----------
    session : AsyncSession
        Session bound to the current request.
    users, accounts : Optional stores
        Defaults bound to ``session``.
    profiles : Optional[Callable[[str], RoleProfileStore]]
        Role to profile store factory; defaults to the registry.
    clock : Callable[[], datetime]
        Current time source for the identity update window.
    """

    def __init__(
        self,
        session: AsyncSession,
        users: Optional[UserStore] = None,
        accounts: Optional[AccountStore] = None,
        profiles: Optional[Callable[[str], RoleProfileStore]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session = session
        self._users = users or UserStore(session)
        self._accounts = accounts or AccountStore(session)
        self._profiles = profiles or (lambda role: get_profile_store(role, session))
        self._clock = clock

    # ------------------------------------------------------------------
    # Registration & lookups
    # ------------------------------------------------------------------

    async def register(self, payload: Mapping[str, Any]) -> User:
        registration = UserRegistration(
            self._session,
            users=self._users,
            accounts=self._accounts,
            profiles=self._profiles,
        )
        return await registration.register(payload)

    async def get_user_by_id(self, user_id: Any) -> User:
        user = await self._users.find_by_id(parse_object_id(user_id, "user"))
        if user is None:
            raise _user_not_found()
        return user

    async def get_user_by_email(self, payload: Mapping[str, Any]) -> User:
        lookup = validate_payload(EmailLookup, payload)
        user = await self._users.find_by_email(str(lookup.email))
        if user is None:
            raise _user_not_found()
        return user

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def verify_user(self, user_id: uuid.UUID) -> User:
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise _user_not_found()
        if user.is_verified:
            raise APIError("User is already verified", title="ALREADY_VERIFIED", status_code=400)

        user = await self._users.update(user_id, {"is_verified": True})
        await self._session.commit()
        logger.info("Verified user %s", user_id)
        return user

    async def deactivate_user(self, user_id: uuid.UUID) -> User:
        """
        Soft-delete the user together with its accounts, profile and
        preferences.
        """
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise _user_not_found()
        return await self._set_deleted(user, True)

    async def activate_user(self, email: str) -> User:
        """
        Restore a deactivated user and everything deactivated with it.
        """
        user = await self._users.find_by_email(email, include_deleted=True)
        if user is None:
            raise _user_not_found()
        if not user.is_deleted:
            raise APIError("User is already active", title="ALREADY_ACTIVE", status_code=400)
        return await self._set_deleted(user, False)

    async def _set_deleted(self, user: User, is_deleted: bool) -> User:
        profiles = self._profiles(user.role)
        updated = await self._users.update(user.id, {"is_deleted": is_deleted})
        await self._accounts.set_deleted(user.id, is_deleted)
        await profiles.set_deleted(user.id, is_deleted)
        await self._session.commit()

        logger.info("%s user %s", "Deactivated" if is_deleted else "Activated", user.id)
        return updated

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    async def update_user(self, user_id: uuid.UUID, payload: Mapping[str, Any]) -> User:
        """
        Change identity fields, at most once per update window.

        Raises
        ------
        APIError
            ``UPDATE_LIMIT_REACHED`` (429) inside the window.
        InvalidInputError
            Nothing updatable in the payload.
        UserAlreadyExistsError
            The new email or username is taken.
        """
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise _user_not_found()

        now = self._clock()
        last = user.identity_updated_at
        if last is not None and now - last < IDENTITY_UPDATE_WINDOW:
            raise APIError(
                "User details can only be updated once every 30 days",
                title="UPDATE_LIMIT_REACHED",
                status_code=429,
            )

        values = validate_payload(UserUpdate, payload).to_values()
        if not values:
            raise InvalidInputError("No valid fields to update")

        first = values.get("first_name", user.first_name)
        last_name = values.get("last_name", user.last_name)
        if ("first_name" in values or "last_name" in values) and first and last_name:
            values["fullname"] = f"{first} {last_name}"
        values["identity_updated_at"] = now

        try:
            updated = await self._users.update(user_id, values)
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise UserAlreadyExistsError() from exc
            raise

        await self._session.commit()
        logger.info("Updated identity of user %s: %s", user_id, sorted(values))
        return updated

    async def change_image_url(self, user_id: uuid.UUID, payload: Mapping[str, Any]) -> User:
        image = validate_payload(ImageUpdate, payload)
        updated = await self._users.update(user_id, {"image_url": image.new_image_url})
        if updated is None:
            raise _user_not_found()
        await self._session.commit()
        return updated

    # ------------------------------------------------------------------
    # Profile & preferences
    # ------------------------------------------------------------------

    def profile_store(self, role: str) -> RoleProfileStore:
        return self._profiles(role)

    async def get_profile(self, user_id: uuid.UUID, role: str):
        return await self._profiles(role).get_profile(user_id)

    async def update_profile(self, user_id: uuid.UUID, role: str, payload: Mapping[str, Any]):
        profile = await self._profiles(role).update_profile(user_id, payload)
        await self._session.commit()
        return profile

    async def get_preferences(self, user_id: uuid.UUID, role: str):
        return await self._profiles(role).get_preferences(user_id)

    async def update_preferences(self, user_id: uuid.UUID, role: str, payload: Mapping[str, Any]):
        preferences = await self._profiles(role).update_preferences(user_id, payload)
        await self._session.commit()
        return preferences
