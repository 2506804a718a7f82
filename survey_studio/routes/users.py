"""Current user, user administration and audit log endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from survey_studio.middleware.auth import get_current_user
from survey_studio.models.database import ensure_utc, get_db
from survey_studio.models.user import User
from survey_studio.schemas.user import (
    AuditEntryOut,
    AuditListResponse,
    MeResponse,
    SetRoleRequest,
    UserListResponse,
    UserOut,
)
from survey_studio.services.access import require_role
from survey_studio.services.audit import list_audit
from survey_studio.services.users import UserService

router = APIRouter(prefix="/api")


@router.get("/me", response_model=MeResponse)
def me(user: User = Depends(get_current_user)) -> MeResponse:
    return MeResponse(user=UserOut.model_validate(user))


@router.get("/users", response_model=UserListResponse)
def list_users(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> UserListResponse:
    users = UserService(db).list_users(user)
    return UserListResponse(users=[UserOut.model_validate(u) for u in users])


@router.put("/users/{user_id}/role", response_model=UserOut)
def set_role(
    user_id: str,
    request: SetRoleRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> UserOut:
    """Change a user's role (admin only)."""
    updated = UserService(db).set_role(user, user_id, request.role.value)
    return UserOut.model_validate(updated)


@router.get("/audit", response_model=AuditListResponse)
def list_audit_log(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> AuditListResponse:
    """Return the latest audit entries with the acting user's name (admin only)."""
    require_role(user, ["admin"])
    entries = list_audit(db)
    return AuditListResponse(logs=[
        AuditEntryOut(
            id=entry.id,
            actor_user_id=entry.actor_user_id,
            actor_name=entry.actor.full_name if entry.actor else "Unknown",
            action=entry.action,
            resource_type=entry.resource_type,
            resource_id=entry.resource_id,
            details=entry.details or {},
            created_at=ensure_utc(entry.created_at),
        )
        for entry in entries
    ])
