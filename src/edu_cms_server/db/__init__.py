"""
Database Package

Provides SQLAlchemy async session management, model definitions and the
store classes for PostgreSQL.
"""

from .session import get_async_session, async_engine, AsyncSessionLocal, create_all_tables
from .models import (
    Base,
    Category,
    Question,
    User,
    Account,
    StudentProfile,
    MentorProfile,
    InstituteProfile,
    StudentPreferences,
    MentorPreferences,
    InstitutePreferences,
)
from .document_store import DocumentStore
from .category_store import CategoryStore
from .question_store import QuestionStore
from .user_store import UserStore, AccountStore

__all__ = [
    "get_async_session",
    "async_engine",
    "AsyncSessionLocal",
    "create_all_tables",
    "Base",
    "Category",
    "Question",
    "User",
    "Account",
    "StudentProfile",
    "MentorProfile",
    "InstituteProfile",
    "StudentPreferences",
    "MentorPreferences",
    "InstitutePreferences",
    "DocumentStore",
    "CategoryStore",
    "QuestionStore",
    "UserStore",
    "AccountStore",
]
