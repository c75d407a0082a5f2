"""
Role Profile Stores

Each user role keeps its profile and preferences in its own pair of tables.
``RoleProfileStore`` is the single interface over them; the per-role variants
only declare their tables and the update schema, and ``PROFILE_STORE_REGISTRY``
maps a role to its variant.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Mapping, Optional, Type

from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.validation import validate_payload
from ..core.errors import InvalidInputError, NotFoundError
from ..db.models import (
    Base,
    InstitutePreferences,
    InstituteProfile,
    MentorPreferences,
    MentorProfile,
    StudentPreferences,
    StudentProfile,
)
from .models import (
    InstituteProfileOut,
    InstituteProfileUpdate,
    MentorProfileOut,
    MentorProfileUpdate,
    PreferencesUpdate,
    StudentProfileOut,
    StudentProfileUpdate,
    UserRole,
)

logger = logging.getLogger("edu.users")


def _update_values(payload: BaseModel) -> Dict[str, Any]:
    """
    Column values for the fields present in ``payload``. Nested models are
    stored as camelCase JSON.
    """
    values = payload.model_dump(mode="json", exclude_unset=True)
    for name in values:
        nested = getattr(payload, name)
        if isinstance(nested, BaseModel):
            values[name] = nested.model_dump(mode="json", by_alias=True, exclude_none=True)
    return values


class RoleProfileStore:
    """
    Profile and preferences access for one role.

    Subclasses set the backing tables, the profile update schema and the
    profile response shape.
    """

    role: UserRole
    profile_model: Type[Base]
    preferences_model: Type[Base]
    profile_update: Type[BaseModel]
    profile_out: Type[BaseModel]

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, user_id: uuid.UUID) -> None:
        """
        Stage empty profile and preferences rows for a new user.
        """
        self._session.add(self.profile_model(user_id=user_id))
        self._session.add(self.preferences_model(user_id=user_id))
        await self._session.flush()

    async def set_deleted(self, user_id: uuid.UUID, is_deleted: bool) -> None:
        for model in (self.profile_model, self.preferences_model):
            await self._session.execute(
                update(model).where(model.user_id == user_id).values(is_deleted=is_deleted)
            )

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def get_profile(self, user_id: uuid.UUID):
        return await self._get(self.profile_model, user_id, "PROFILE_NOT_FOUND")

    async def update_profile(self, user_id: uuid.UUID, payload: Mapping[str, Any]):
        values = _update_values(validate_payload(self.profile_update, payload))
        return await self._update(self.profile_model, user_id, values, "PROFILE_NOT_FOUND")

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def get_preferences(self, user_id: uuid.UUID):
        return await self._get(self.preferences_model, user_id, "PREFERENCES_NOT_FOUND")

    async def update_preferences(self, user_id: uuid.UUID, payload: Mapping[str, Any]):
        values = _update_values(validate_payload(PreferencesUpdate, payload))
        values = {k: v for k, v in values.items() if v is not None}
        return await self._update(self.preferences_model, user_id, values, "PREFERENCES_NOT_FOUND")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _get(self, model: Type[Base], user_id: uuid.UUID, missing_title: str):
        result = await self._session.scalars(
            select(model).where(model.user_id == user_id, model.is_deleted.is_(False))
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError(f"No {self.role.value} record for this user", title=missing_title)
        return row

    async def _update(
        self,
        model: Type[Base],
        user_id: uuid.UUID,
        values: Dict[str, Any],
        missing_title: str,
    ):
        if not values:
            return await self._get(model, user_id, missing_title)

        stmt = (
            update(model)
            .where(model.user_id == user_id, model.is_deleted.is_(False))
            .values(**values)
            .returning(model)
            .execution_options(synchronize_session="fetch")
        )
        result = await self._session.scalars(stmt)
        row = result.one_or_none()
        if row is None:
            raise NotFoundError(f"No {self.role.value} record for this user", title=missing_title)

        logger.info("Updated %s %s fields: %s", self.role.value, model.__tablename__, sorted(values))
        return row


class StudentProfileStore(RoleProfileStore):
    role = UserRole.STUDENT
    profile_model = StudentProfile
    preferences_model = StudentPreferences
    profile_update = StudentProfileUpdate
    profile_out = StudentProfileOut


class MentorProfileStore(RoleProfileStore):
    role = UserRole.MENTOR
    profile_model = MentorProfile
    preferences_model = MentorPreferences
    profile_update = MentorProfileUpdate
    profile_out = MentorProfileOut


class InstituteProfileStore(RoleProfileStore):
    role = UserRole.INSTITUTE
    profile_model = InstituteProfile
    preferences_model = InstitutePreferences
    profile_update = InstituteProfileUpdate
    profile_out = InstituteProfileOut


PROFILE_STORE_REGISTRY: Dict[UserRole, Type[RoleProfileStore]] = {
    UserRole.STUDENT: StudentProfileStore,
    UserRole.MENTOR: MentorProfileStore,
    UserRole.INSTITUTE: InstituteProfileStore,
}


def get_profile_store(role: Optional[str], session: AsyncSession) -> RoleProfileStore:
    """
    Instantiate the profile store registered for ``role``.

    Raises
    ------
    InvalidInputError
        If the role is unknown.
    """
    try:
        store_cls = PROFILE_STORE_REGISTRY[UserRole(role)]
    except (KeyError, ValueError):
        raise InvalidInputError(f"Invalid user role: {role}", title="INVALID_ROLE") from None
    return store_cls(session)
