"""Audit trail for state-changing actions."""

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from survey_studio.models.user import AuditLog, User
from survey_studio.logging_config import get_logger

logger = get_logger(__name__)

AUDIT_LIST_LIMIT = 200


def record_audit(
    db: Session,
    actor: User,
    action: str,
    resource_type: str,
    resource_id: str,
    details: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Add an audit entry to the current transaction.

    The caller commits; an entry therefore only persists together with the
    change it describes.
    """
    entry = AuditLog(
        actor_user_id=actor.id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details or {},
    )
    db.add(entry)
    logger.info(
        f"Audit {action} on {resource_type} {resource_id}",
        extra={"actor_id": actor.id}
    )
    return entry


def list_audit(db: Session, limit: int = AUDIT_LIST_LIMIT) -> List[AuditLog]:
    """Return the most recent audit entries, newest first."""
    return list(
        db.execute(
            select(AuditLog)
            .options(joinedload(AuditLog.actor))
            .order_by(AuditLog.created_at.desc())
            .limit(limit)
        ).scalars()
    )
