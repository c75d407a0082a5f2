"""
SQLAlchemy Models

Defines the database schema for:
- Content catalog (categories and questions)
- Users and linked provider accounts
- Role-specific profiles and preferences

Category references inside questions are plain title arrays; referential
integrity is enforced by the question validation pipeline, not by foreign
keys.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


def _uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)


# ---------------------------------------------------------------------
# Content Catalog
# ---------------------------------------------------------------------

class Category(TimestampMixin, Base):
    """
    Taxonomy entry (subject, chapter, topic, tag or other).

    ``title`` is unique across the whole table regardless of ``type``.
    """
    __tablename__ = "category"

    id: Mapped[uuid.UUID] = _uuid_pk()
    title: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    parent: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_category_type_title", "type", "title"),
    )


class Question(TimestampMixin, Base):
    """
    A catalog question referencing categories by title.
    """
    __tablename__ = "question"

    id: Mapped[uuid.UUID] = _uuid_pk()
    title: Mapped[str] = mapped_column(String(512), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False)
    correct_option: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False)
    subjects: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False)
    chapters: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False)
    topics: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False)
    tags: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    type: Mapped[str] = mapped_column(String(8), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(1), nullable=False)
    author: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    hints: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    source: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_question_filters", "difficulty", "type"),
    )


# ---------------------------------------------------------------------
# Users & Accounts
# ---------------------------------------------------------------------

class User(TimestampMixin, Base):
    __tablename__ = "app_user"

    id: Mapped[uuid.UUID] = _uuid_pk()
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    username: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, unique=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="student")
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    fullname: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    permissions: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    # Last change of identity fields (email, username, names); None until first change
    identity_updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )


class Account(TimestampMixin, Base):
    """
    A login method linked to a user (local password or OAuth provider).
    """
    __tablename__ = "account"

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("app_user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider: Mapped[str] = mapped_column(String(16), nullable=False)
    provider_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    password: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_account_user_provider"),
    )


# ---------------------------------------------------------------------
# Role Profiles & Preferences
# ---------------------------------------------------------------------

class _PerUserMixin(TimestampMixin):
    """One row per user; soft-deleted together with the user."""

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("app_user.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class StudentProfile(_PerUserMixin, Base):
    __tablename__ = "student_profile"

    grade: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    school: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bio: Mapped[str] = mapped_column(Text, nullable=False, default="")
    awards: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    target_exam: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    target_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class MentorProfile(_PerUserMixin, Base):
    __tablename__ = "mentor_profile"

    expertise: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    bio: Mapped[str] = mapped_column(Text, nullable=False, default="")
    experience: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    qualifications: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    availability: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)


class InstituteProfile(_PerUserMixin, Base):
    __tablename__ = "institute_profile"

    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bio: Mapped[str] = mapped_column(Text, nullable=False, default="")
    contact: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)
    availability: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)


class _PreferencesMixin(_PerUserMixin):
    language: Mapped[str] = mapped_column(String(32), nullable=False, default="English")


class StudentPreferences(_PreferencesMixin, Base):
    __tablename__ = "student_preferences"


class MentorPreferences(_PreferencesMixin, Base):
    __tablename__ = "mentor_preferences"


class InstitutePreferences(_PreferencesMixin, Base):
    __tablename__ = "institute_preferences"
