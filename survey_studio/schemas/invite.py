"""Pydantic schemas for invites."""

import re
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from survey_studio.schemas.base import CamelModel

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class CreateInviteRequest(CamelModel):
    """Payload for creating an invite.

    Attributes:
        expires_at: Optional ISO-8601 expiry timestamp
        email: Optional participant email (stored lowercase)
    """
    expires_at: Optional[datetime] = Field(None, description="Invite expiry")
    email: Optional[str] = Field(None, max_length=320, description="Participant email")

    @field_validator("email")
    @classmethod
    def email_format(cls, v: Optional[str]) -> Optional[str]:
        """Validate and lowercase the participant email."""
        if v is None:
            return v
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Enter a valid email")
        return v


class InviteOut(CamelModel):
    id: str
    survey_id: str
    token: str
    email: Optional[str] = None
    expires_at: Optional[datetime] = None
    status: str
    created_at: datetime


class InviteListResponse(CamelModel):
    invites: List[InviteOut]


class CreateInviteResponse(CamelModel):
    """Created invite plus the participant link and a ready-to-send message."""
    invite: InviteOut
    link: str
    message: str
