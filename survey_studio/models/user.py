"""User and AuditLog models.

Users are provisioned from identity provider claims on first sign in; the
audit log records every state-changing action performed by an internal user.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Index,
    String,
    DateTime,
    JSON,
    ForeignKey,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from survey_studio.models.database import Base, new_id, utcnow


class User(Base):
    """Internal user known to the application.

    Attributes:
        id: Identity provider subject (oid/sub claim)
        email: Lowercase email address
        full_name: Display name
        role: One of admin, creator, participant
        created_at: When the user was first provisioned
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(200),
        primary_key=True,
        comment="Identity provider subject"
    )
    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        index=True,
    )
    full_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="creator",
        comment="admin, creator or participant"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class AuditLog(Base):
    """Append-only record of internal user actions.

    Attributes:
        id: Primary key
        actor_user_id: User who performed the action (NULL once the user is gone)
        action: Action name (e.g., "publish_survey")
        resource_type: Kind of resource acted on (survey, invite, user, question)
        resource_id: Identifier of the resource
        details: JSON payload with action-specific context
        created_at: When the action happened
    """

    __tablename__ = "audit_log"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    actor_user_id: Mapped[Optional[str]] = mapped_column(
        String(200),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False)
    resource_id: Mapped[str] = mapped_column(String(200), nullable=False)
    details: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    actor: Mapped[Optional["User"]] = relationship("User")

    __table_args__ = (
        Index("idx_audit_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<AuditLog(action={self.action}, "
            f"resource={self.resource_type}:{self.resource_id})>"
        )
