"""Response model for storing participant answer sets.

This module defines the Response model which stores one participant's
answers for one invite, either as an autosaved draft or a completed
submission.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Index,
    String,
    DateTime,
    ForeignKey,
    JSON,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from survey_studio.models.database import Base, new_id, utcnow


class Response(Base):
    """Model for a participant's answer set.

    At most one response exists per invite (unique invite_id); draft saves
    and the final submission upsert the same row. Responses are deleted
    together with their survey (CASCADE).

    Attributes:
        id: Primary key (UUID string)
        invite_id: Invite the answers belong to
        survey_id: Survey being answered
        status: draft or completed
        answers_json: Mapping of question id -> string or list of strings
        started_at: When the participant first saved answers
        completed_at: When the participant submitted (NULL for drafts)
        created_at: Row creation timestamp
        updated_at: Last update timestamp
    """

    __tablename__ = "responses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    invite_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("invites.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        comment="One response per invite"
    )
    survey_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("surveys.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="draft",
        comment="draft or completed"
    )
    answers_json: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        server_default=text("'{}'"),
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the response was submitted (NULL for drafts)"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    invite: Mapped["Invite"] = relationship("Invite", back_populates="response")
    survey: Mapped["Survey"] = relationship("Survey", back_populates="responses")

    __table_args__ = (
        Index("idx_responses_survey_created", "survey_id", "created_at"),
    )

    def replace_answers(self, answers: dict) -> None:
        """Replace the stored answer map.

        Note:
            A new dict is assigned so SQLAlchemy's change tracking notices
            the update on the JSON column.
        """
        self.answers_json = dict(answers)

    def mark_completed(self) -> None:
        """Mark the response as submitted at the current UTC time."""
        self.status = "completed"
        self.completed_at = datetime.now(timezone.utc)

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<Response(id={self.id}, "
            f"invite_id={self.invite_id}, "
            f"status={self.status})>"
        )
