"""
Request Dependencies

Wires stores and services to the request's database session. The category
loader is created once per request so that every lookup made while handling
it shares one batching window and one cache.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.accounts import AccountService
from ..auth.oauth import DiscordOAuthClient, GoogleOAuthClient, discord_client, google_client
from ..cms.categories import CategoryService
from ..cms.loader import CategoryLoader, create_category_loader
from ..cms.questions import QuestionService
from ..db import CategoryStore, QuestionStore, get_async_session
from ..users.service import UserService


# ---------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------

def get_category_store(session: AsyncSession = Depends(get_async_session)) -> CategoryStore:
    return CategoryStore(session)


def get_question_store(session: AsyncSession = Depends(get_async_session)) -> QuestionStore:
    return QuestionStore(session)


def get_category_loader(store: CategoryStore = Depends(get_category_store)) -> CategoryLoader:
    return create_category_loader(store)


# ---------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------

def get_category_service(
    store: CategoryStore = Depends(get_category_store),
    loader: CategoryLoader = Depends(get_category_loader),
) -> CategoryService:
    return CategoryService(store, loader)


def get_question_service(
    store: QuestionStore = Depends(get_question_store),
    categories: CategoryService = Depends(get_category_service),
) -> QuestionService:
    return QuestionService(store, categories)


def get_user_service(session: AsyncSession = Depends(get_async_session)) -> UserService:
    return UserService(session)


def get_account_service(session: AsyncSession = Depends(get_async_session)) -> AccountService:
    return AccountService(session)


# ---------------------------------------------------------------------
# OAuth clients
# ---------------------------------------------------------------------

@lru_cache
def get_google_client() -> GoogleOAuthClient:
    return google_client()


@lru_cache
def get_discord_client() -> DiscordOAuthClient:
    return discord_client()
