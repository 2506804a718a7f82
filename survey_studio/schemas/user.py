"""Pydantic schemas for users, roles and the audit log."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from survey_studio.schemas.base import CamelModel


class Role(str, Enum):
    """Application roles."""
    ADMIN = "admin"
    CREATOR = "creator"
    PARTICIPANT = "participant"


class UserOut(CamelModel):
    id: str
    email: str
    full_name: str
    role: str


class MeResponse(CamelModel):
    user: UserOut


class UserListResponse(CamelModel):
    users: List[UserOut]


class SetRoleRequest(CamelModel):
    role: Role


class AuditEntryOut(CamelModel):
    id: str
    actor_user_id: Optional[str] = None
    actor_name: str
    action: str
    resource_type: str
    resource_id: str
    details: Dict[str, Any]
    created_at: datetime


class AuditListResponse(CamelModel):
    logs: List[AuditEntryOut]
