"""
Authentication Models

The session identity carried in the ``access_token`` cookie and attached to
each authenticated request.
"""

import uuid
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SessionUser(BaseModel):
    """
    Authenticated user derived from a verified session token.

    Claims use the public camelCase names (``isVerified``, ``imageUrl``).
    """

    id: uuid.UUID
    email: str = Field(..., min_length=3)
    role: str = Field(..., min_length=1)
    is_verified: bool = False
    image_url: Optional[str] = None

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",             # Registered claims (iat, exp) are dropped
    )

    def to_claims(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
