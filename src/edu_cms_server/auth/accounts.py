"""
Linked Accounts

Links and unlinks OAuth login methods (Google, Discord) on an existing user.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import APIError, InvalidInputError, NotFoundError
from ..db.models import Account, User
from ..db.user_store import AccountStore, UserStore
from ..users.models import Provider
from .models import SessionUser
from .oauth import OAuthIdentity

logger = logging.getLogger("edu.auth")

LINKABLE_PROVIDERS = frozenset({Provider.GOOGLE, Provider.DISCORD})


class AccountService:
    def __init__(
        self,
        session: AsyncSession,
        users: Optional[UserStore] = None,
        accounts: Optional[AccountStore] = None,
    ) -> None:
        self._session = session
        self._users = users or UserStore(session)
        self._accounts = accounts or AccountStore(session)

    @staticmethod
    def verify_provider(provider: Optional[str]) -> Provider:
        """
        Parse a linkable provider name.

        Raises
        ------
        InvalidInputError
            ``WRONG_PROVIDER`` for unknown or non-linkable providers.
        """
        try:
            parsed = Provider(provider)
        except ValueError:
            parsed = None
        if parsed not in LINKABLE_PROVIDERS:
            raise InvalidInputError(f"Unsupported provider: {provider}", title="WRONG_PROVIDER")
        return parsed

    async def find(self, user_id: uuid.UUID, provider: Provider) -> Optional[Account]:
        return await self._accounts.find(user_id, provider.value)

    async def ensure_not_linked(self, user_id: uuid.UUID, provider: Provider) -> None:
        if await self.find(user_id, provider) is not None:
            raise APIError(
                f"{provider.value} account is already linked",
                title="ACCOUNT_ALREADY_LINKED",
                status_code=400,
            )

    async def link(self, user_id: uuid.UUID, provider: Provider, provider_id: str) -> Account:
        await self.ensure_not_linked(user_id, provider)
        account = await self._accounts.add(
            Account(
                user_id=user_id,
                provider=provider.value,
                provider_id=provider_id,
                is_deleted=False,
            )
        )
        logger.info("Linked %s account to user %s", provider.value, user_id)
        return account

    async def link_from_identity(
        self,
        session_user: SessionUser,
        provider: Provider,
        identity: OAuthIdentity,
    ) -> User:
        """
        Link the provider identity returned by an OAuth callback.

        The identity's email must belong to the signed-in user. A missing
        user image is back-filled from the provider.
        """
        if not identity.email:
            raise InvalidInputError(f"{provider.value} did not share an email address")

        user = await self._users.find_by_email(identity.email)
        if user is None:
            raise NotFoundError("User not found", title="USER_NOT_FOUND")
        if user.id != session_user.id:
            raise APIError(
                f"The {provider.value} account belongs to a different email address",
                title="ACCOUNT_MISMATCH",
                status_code=400,
            )

        await self.link(user.id, provider, identity.provider_id)

        if not user.image_url and identity.image_url:
            user = await self._users.update(user.id, {"image_url": identity.image_url})

        await self._session.commit()
        return user

    async def unlink(self, user_id: uuid.UUID, provider: Provider) -> None:
        """
        Remove a linked provider account.

        Raises
        ------
        NotFoundError
            ``ACCOUNT_NOT_LINKED`` when the provider is not linked.
        APIError
            ``LAST_ACCOUNT`` when it is the user's only login method.
        """
        account = await self.find(user_id, provider)
        if account is None:
            raise NotFoundError(f"{provider.value} account is not linked", title="ACCOUNT_NOT_LINKED")

        if await self._accounts.count_for_user(user_id) <= 1:
            raise APIError(
                "Cannot unlink the only login method",
                title="LAST_ACCOUNT",
                status_code=400,
            )

        await self._accounts.remove(account.id)
        await self._session.commit()
        logger.info("Unlinked %s account from user %s", provider.value, user_id)
