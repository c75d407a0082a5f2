"""
CMS Models

Pydantic schemas for the content catalog: request payloads (structural
validation and title normalization), listing filters and camelCase response
shapes.

Design Goals
------------
- Titles are normalized (trimmed, lower-cased) at the schema boundary so
  every layer below sees canonical values
- Payload field names follow the public camelCase API (``correctOption``)
  while records use column names
- Referential checks (do the categories exist?) are NOT done here; they need
  the store and live in the question service
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, model_validator
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------

class CategoryType(str, Enum):
    SUBJECTS = "subjects"
    CHAPTERS = "chapters"
    TOPICS = "topics"
    TAGS = "tags"
    OTHERS = "others"


class QuestionType(str, Enum):
    MCQ = "mcq"
    MSQ = "msq"
    NTQ = "ntq"


class DifficultyLevel(str, Enum):
    S = "S"
    A = "A"
    B = "B"
    C = "C"
    D = "D"


def normalize_title(title: str) -> str:
    """Canonical form of a category or question title."""
    return title.strip().lower()


Title = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_lower=True, min_length=1, max_length=255),
]
QuestionTitle = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_lower=True, min_length=1, max_length=512),
]
NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]


# ---------------------------------------------------------------------
# Category Payloads
# ---------------------------------------------------------------------

class CategoryCreate(BaseModel):
    title: Title
    type: CategoryType
    parent: Optional[Title] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "type": self.type.value,
            "parent": self.parent,
        }


class CategoryUpdate(BaseModel):
    title: Optional[Title] = None
    type: Optional[CategoryType] = None
    parent: Optional[Title] = None

    def to_values(self) -> Dict[str, Any]:
        values = self.model_dump(mode="json", exclude_unset=True)
        return {k: v for k, v in values.items() if v is not None or k == "parent"}


class CategoryFilter(BaseModel):
    type: Optional[CategoryType] = None

    def to_filters(self) -> Dict[str, Any]:
        return {"type": self.type.value if self.type else None}


# ---------------------------------------------------------------------
# Question Payloads
# ---------------------------------------------------------------------

# Fields holding category titles, with the category type they must reference
CATEGORY_FIELDS = {
    "subjects": CategoryType.SUBJECTS,
    "chapters": CategoryType.CHAPTERS,
    "topics": CategoryType.TOPICS,
    "tags": CategoryType.TAGS,
}


def check_correct_options(
    question_type: Optional[QuestionType],
    options: Optional[List[str]],
    correct_option: Optional[List[str]],
) -> None:
    if question_type not in (QuestionType.MCQ, QuestionType.MSQ):
        return
    if options is None or correct_option is None:
        return
    unknown = [c for c in correct_option if c not in options]
    if unknown:
        raise ValueError(f"correctOption entries not found in options: {unknown}")


class QuestionCreate(BaseModel):
    """
    Full question payload as submitted by JSON or parsed from a CSV row.
    """
    title: QuestionTitle
    description: NonEmptyStr
    options: List[str] = Field(..., min_length=1)
    correct_option: List[str] = Field(..., alias="correctOption", min_length=1)
    subjects: List[Title] = Field(..., min_length=1)
    chapters: List[Title] = Field(..., min_length=1)
    topics: List[Title] = Field(..., min_length=1)
    type: QuestionType
    difficulty: DifficultyLevel
    author: Optional[str] = None
    tags: Optional[List[Title]] = None
    hints: Optional[str] = None
    points: int = 0
    source: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _correct_options_within_options(self) -> "QuestionCreate":
        check_correct_options(self.type, self.options, self.correct_option)
        return self

    def to_record(self) -> Dict[str, Any]:
        record = self.model_dump(mode="json")
        record["tags"] = record["tags"] or []
        return record


_NULLABLE_QUESTION_FIELDS = {"author", "hints", "source"}


class QuestionUpdate(BaseModel):
    """
    Partial question payload; only the fields present are validated and applied.
    """
    title: Optional[QuestionTitle] = None
    description: Optional[NonEmptyStr] = None
    options: Optional[List[str]] = Field(default=None, min_length=1)
    correct_option: Optional[List[str]] = Field(default=None, alias="correctOption", min_length=1)
    subjects: Optional[List[Title]] = Field(default=None, min_length=1)
    chapters: Optional[List[Title]] = Field(default=None, min_length=1)
    topics: Optional[List[Title]] = Field(default=None, min_length=1)
    type: Optional[QuestionType] = None
    difficulty: Optional[DifficultyLevel] = None
    author: Optional[str] = None
    tags: Optional[List[Title]] = None
    hints: Optional[str] = None
    points: Optional[int] = None
    source: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _correct_options_within_options(self) -> "QuestionUpdate":
        check_correct_options(self.type, self.options, self.correct_option)
        return self

    def to_values(self) -> Dict[str, Any]:
        values = self.model_dump(mode="json", exclude_unset=True)
        return {k: v for k, v in values.items() if v is not None or k in _NULLABLE_QUESTION_FIELDS}


class QuestionFilter(BaseModel):
    difficulty: Optional[DifficultyLevel] = None
    type: Optional[QuestionType] = None

    def to_filters(self) -> Dict[str, Any]:
        return {
            "difficulty": self.difficulty.value if self.difficulty else None,
            "type": self.type.value if self.type else None,
        }


# ---------------------------------------------------------------------
# Response Shapes
# ---------------------------------------------------------------------

class _Out(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class CategoryOut(_Out):
    id: uuid.UUID
    title: str
    type: str
    parent: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QuestionOut(_Out):
    id: uuid.UUID
    title: str
    description: str
    options: List[str]
    correct_option: List[str]
    subjects: List[str]
    chapters: List[str]
    topics: List[str]
    tags: List[str] = Field(default_factory=list)
    type: str
    difficulty: str
    author: Optional[str] = None
    hints: Optional[str] = None
    points: int = 0
    source: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
