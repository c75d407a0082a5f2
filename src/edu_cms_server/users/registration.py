"""
User Registration

Creating a user is a multi-row operation: the user, its first login account,
and the role's profile and preferences rows. ``UserRegistration`` runs all of
them inside one SAVEPOINT so a failure at any step leaves nothing behind.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional, Union

import bcrypt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import APIError, is_unique_violation
from ..core.validation import validate_payload
from ..db.models import Account, User
from ..db.user_store import AccountStore, UserStore
from .models import Provider, RegisterRequest
from .profiles import RoleProfileStore, get_profile_store

logger = logging.getLogger("edu.users")

BCRYPT_ROUNDS = 10

ProfileStoreFactory = Callable[[str], RoleProfileStore]


# ---------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------

class UserAlreadyExistsError(APIError):
    status_code = 400
    title = "USER_ALREADY_EXISTS"

    def __init__(self, message: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(
            message or "The user already exists. Please use a different email address or username",
            **kwargs,
        )


class RegistrationFailedError(APIError):
    status_code = 500
    title = "REGISTRATION_FAILED"


# ---------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


# ---------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------

class UserRegistration:
    """
    Parameters
    ----------
    session : AsyncSession
        Session the whole registration runs on.
    users, accounts : Optional stores
        Defaults bound to ``session``.
    profiles : Optional[ProfileStoreFactory]
        Maps a role to its RoleProfileStore; defaults to the registry.
    """

    def __init__(
        self,
        session: AsyncSession,
        users: Optional[UserStore] = None,
        accounts: Optional[AccountStore] = None,
        profiles: Optional[ProfileStoreFactory] = None,
    ) -> None:
        self._session = session
        self._users = users or UserStore(session)
        self._accounts = accounts or AccountStore(session)
        self._profiles = profiles or (lambda role: get_profile_store(role, session))

    async def register(self, payload: Union[RegisterRequest, Mapping[str, Any]]) -> User:
        """
        Create a user with its account, profile and preferences.

        Steps
        -----
        1. Validate the payload; local accounts need a password.
        2. Refuse emails already taken (deactivated users included).
        3. Inside a SAVEPOINT: insert user, account, profile, preferences.
        4. Commit.

        Raises
        ------
        ValidationFailedError
            Malformed payload.
        UserAlreadyExistsError
            Email (or another unique field) already in use.
        RegistrationFailedError
            Any step of the SAVEPOINT failed; nothing was persisted.
        """
        request = payload if isinstance(payload, RegisterRequest) else validate_payload(RegisterRequest, payload)
        email = str(request.email).strip().lower()

        if await self._users.find_by_email(email, include_deleted=True) is not None:
            raise UserAlreadyExistsError()

        password_hash = None
        if request.provider == Provider.LOCAL:
            password_hash = hash_password(request.password)

        profile_store = self._profiles(request.role.value)

        try:
            async with self._session.begin_nested():
                user = await self._users.add(
                    User(
                        email=email,
                        role=request.role.value,
                        image_url=request.image_url,
                        is_verified=False,
                        is_deleted=False,
                        permissions=[],
                    )
                )
                await self._accounts.add(
                    Account(
                        user_id=user.id,
                        provider=request.provider.value,
                        provider_id=request.provider_id,
                        password=password_hash,
                        is_deleted=False,
                    )
                )
                await profile_store.create(user.id)
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise UserAlreadyExistsError() from exc
            logger.exception("Registration failed for %s", email)
            raise RegistrationFailedError("Could not complete registration.") from exc
        except SQLAlchemyError as exc:
            logger.exception("Registration failed for %s", email)
            raise RegistrationFailedError("Could not complete registration.") from exc

        await self._session.commit()
        logger.info("Registered %s user %s via %s", request.role.value, user.id, request.provider.value)
        return user
