"""Invite model for tokenized participant access.

Each invite grants one participant anonymous access to the published
version of a survey through an unguessable token.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Index,
    String,
    DateTime,
    ForeignKey,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from survey_studio.models.database import Base, new_id, utcnow


class Invite(Base):
    """Model for a single-participant access grant.

    Status moves sent -> started on first load and started -> completed on
    submission. A completed invite is never reopened.

    Attributes:
        id: Primary key (UUID string)
        survey_id: Survey the invite grants access to
        token: Opaque unguessable token embedded in the participant link
        email: Optional participant email
        expires_at: Optional expiry timestamp
        status: sent, started, completed or expired
        created_at: When the invite was created
    """

    __tablename__ = "invites"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    survey_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("surveys.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        unique=True,
        comment="Opaque participant access token"
    )
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="sent",
        comment="sent, started, completed or expired"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    survey: Mapped["Survey"] = relationship("Survey", back_populates="invites")
    response: Mapped[Optional["Response"]] = relationship(
        "Response",
        back_populates="invite",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_invites_survey_status", "survey_id", "status"),
    )

    def mark_started(self) -> None:
        """Move a freshly sent invite to started."""
        if self.status == "sent":
            self.status = "started"

    def mark_completed(self) -> None:
        self.status = "completed"

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Invite(id={self.id}, "
            f"token={self.token[:8]}..., "
            f"status={self.status})>"
        )
