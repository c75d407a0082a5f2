"""
User & Account Stores

Soft-delete aware persistence for users and their linked login accounts.
Deleted rows are invisible to the default lookups.
"""

from __future__ import annotations

import uuid
from typing import Any, List, Mapping, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Account, User


class UserStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, user: User) -> User:
        """
        Stage a new user and flush so database defaults (id, timestamps) are populated.
        """
        self._session.add(user)
        await self._session.flush()
        await self._session.refresh(user)
        return user

    async def find_by_id(
        self,
        user_id: uuid.UUID,
        include_deleted: bool = False,
    ) -> Optional[User]:
        user = await self._session.get(User, user_id)
        if user is None or (user.is_deleted and not include_deleted):
            return None
        return user

    async def find_by_email(
        self,
        email: str,
        include_deleted: bool = False,
    ) -> Optional[User]:
        stmt = select(User).where(User.email == email.strip().lower())
        if not include_deleted:
            stmt = stmt.where(User.is_deleted.is_(False))
        result = await self._session.scalars(stmt)
        return result.one_or_none()

    async def update(self, user_id: uuid.UUID, values: Mapping[str, Any]) -> Optional[User]:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .returning(User)
            .execution_options(synchronize_session="fetch")
        )
        result = await self._session.scalars(stmt)
        return result.one_or_none()


class AccountStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, account: Account) -> Account:
        self._session.add(account)
        await self._session.flush()
        return account

    async def find(self, user_id: uuid.UUID, provider: str) -> Optional[Account]:
        """
        Return the live account linking ``user_id`` to ``provider``, if any.
        """
        stmt = select(Account).where(
            Account.user_id == user_id,
            Account.provider == provider,
            Account.is_deleted.is_(False),
        )
        result = await self._session.scalars(stmt)
        return result.one_or_none()

    async def list_for_user(self, user_id: uuid.UUID) -> List[Account]:
        stmt = select(Account).where(
            Account.user_id == user_id,
            Account.is_deleted.is_(False),
        )
        result = await self._session.scalars(stmt)
        return list(result.all())

    async def count_for_user(self, user_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(Account).where(
            Account.user_id == user_id,
            Account.is_deleted.is_(False),
        )
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def set_deleted(self, user_id: uuid.UUID, is_deleted: bool) -> None:
        await self._session.execute(
            update(Account)
            .where(Account.user_id == user_id)
            .values(is_deleted=is_deleted)
        )

    async def remove(self, account_id: uuid.UUID) -> None:
        await self._session.execute(delete(Account).where(Account.id == account_id))
