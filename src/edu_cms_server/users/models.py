"""
User Models

Pydantic schemas for users, linked accounts, role profiles and preferences.

Profile and preference update schemas only declare the fields a role may
change; anything else in the request body is ignored.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, time, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------

class UserRole(str, Enum):
    STUDENT = "student"
    MENTOR = "mentor"
    INSTITUTE = "institute"


class Provider(str, Enum):
    GOOGLE = "google"
    DISCORD = "discord"
    LOCAL = "local"


class Permission(str, Enum):
    READ = "read"
    WRITE = "write"
    UPDATE = "update"
    DELETE = "delete"
    ADMIN = "admin"


class Grade(str, Enum):
    SIXTH = "6th"
    SEVENTH = "7th"
    EIGHTH = "8th"
    NINTH = "9th"
    TENTH = "10th"
    ELEVENTH = "11th"
    TWELFTH = "12th"


class TargetExam(str, Enum):
    JEE = "JEE"
    NEET = "NEET"


class Expertise(str, Enum):
    MATHEMATICS = "Mathematics"
    PHYSICS = "Physics"
    CHEMISTRY = "Chemistry"
    BIOLOGY = "Biology"


class DayOfWeek(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


def validate_permission(permission: str) -> bool:
    """True for ``resource:perm`` strings with a known perm."""
    resource, _, perm = permission.partition(":")
    return bool(resource) and perm in {p.value for p in Permission}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------
# User Requests
# ---------------------------------------------------------------------

class RegisterRequest(_CamelModel):
    email: EmailStr
    password: Optional[str] = None
    provider: Provider = Provider.LOCAL
    provider_id: Optional[str] = None
    image_url: Optional[str] = None
    role: UserRole = UserRole.STUDENT

    @model_validator(mode="after")
    def _local_accounts_need_password(self) -> "RegisterRequest":
        if self.provider == Provider.LOCAL and (not self.password or len(self.password) < 6):
            raise ValueError("Local accounts need a password of at least 6 characters")
        if self.password and len(self.password.encode("utf-8")) > 72:
            raise ValueError("Password must be at most 72 bytes")
        return self


Username = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_lower=True, min_length=3, max_length=64),
]


class UserUpdate(BaseModel):
    """
    Identity fields a user may change (at most once per update window).
    """
    fullname: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[Username] = None
    email: Optional[EmailStr] = None

    def to_values(self) -> Dict[str, Any]:
        values = self.model_dump(exclude_none=True)
        if "email" in values:
            values["email"] = values["email"].lower()
        return values


class ImageUpdate(_CamelModel):
    new_image_url: str = Field(..., min_length=1)


class EmailLookup(BaseModel):
    email: EmailStr


# ---------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------

_TIME_PATTERN = re.compile(r"^\d{2}:\d{2}:\d{2}$")


class TimeRange(BaseModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _hh_mm_ss(cls, value: str) -> str:
        if not _TIME_PATTERN.match(value):
            raise ValueError("Invalid time format, expected HH:MM:SS")
        time.fromisoformat(value)
        return value

    @model_validator(mode="after")
    def _end_after_start(self) -> "TimeRange":
        if time.fromisoformat(self.end) <= time.fromisoformat(self.start):
            raise ValueError("End time must be after start time.")
        return self


class Availability(_CamelModel):
    days: List[DayOfWeek] = Field(default_factory=list)
    time_range: Optional[TimeRange] = None


class Contact(BaseModel):
    phone: Optional[Annotated[str, StringConstraints(pattern=r"^\+?[1-9]\d{1,14}$")]] = None
    email: Optional[EmailStr] = None


# ---------------------------------------------------------------------
# Profile & Preference Updates
# ---------------------------------------------------------------------

class StudentProfileUpdate(_CamelModel):
    grade: Optional[Grade] = None
    school: Optional[Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True)]] = None
    bio: Optional[str] = None
    awards: Optional[List[str]] = None
    target_exam: Optional[TargetExam] = None
    target_year: Optional[int] = None

    @field_validator("target_year")
    @classmethod
    def _future_year(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= datetime.now(timezone.utc).year:
            raise ValueError("Target year must be greater than the current year.")
        return value


class MentorProfileUpdate(_CamelModel):
    expertise: Optional[List[Expertise]] = None
    bio: Optional[str] = None
    availability: Optional[Availability] = None
    experience: Optional[int] = Field(default=None, ge=0)
    qualifications: Optional[List[str]] = None


class InstituteProfileUpdate(_CamelModel):
    address: Optional[Annotated[str, StringConstraints(strip_whitespace=True)]] = None
    contact: Optional[Contact] = None
    bio: Optional[str] = None
    availability: Optional[Availability] = None


class PreferencesUpdate(BaseModel):
    language: Optional[Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]] = None


# ---------------------------------------------------------------------
# Response Shapes
# ---------------------------------------------------------------------

class _Out(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class UserOut(_Out):
    id: uuid.UUID
    email: str
    username: Optional[str] = None
    is_verified: bool = False
    role: str
    image_url: Optional[str] = None
    fullname: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StudentProfileOut(_Out):
    user_id: uuid.UUID
    grade: Optional[str] = None
    school: Optional[str] = None
    bio: str = ""
    awards: List[str] = Field(default_factory=list)
    target_exam: Optional[str] = None
    target_year: Optional[int] = None


class MentorProfileOut(_Out):
    user_id: uuid.UUID
    expertise: List[str] = Field(default_factory=list)
    bio: str = ""
    experience: Optional[int] = None
    qualifications: List[str] = Field(default_factory=list)
    availability: Optional[Dict[str, Any]] = None


class InstituteProfileOut(_Out):
    user_id: uuid.UUID
    address: Optional[str] = None
    bio: str = ""
    contact: Optional[Dict[str, Any]] = None
    availability: Optional[Dict[str, Any]] = None


class PreferencesOut(_Out):
    user_id: uuid.UUID
    language: str = "English"
