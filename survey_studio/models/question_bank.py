"""QuestionBankItem model for reusable question definitions."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    String,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from survey_studio.models.database import Base, new_id, utcnow


class QuestionBankItem(Base):
    """Reusable question stored independently of any survey.

    Surveys built from the bank receive copies of the question payload, so
    archiving or deleting a bank item never affects existing surveys.

    Attributes:
        id: Primary key; also used as the question id inside the payload
        label: Question label (duplicated from payload for searching)
        question_json: Question definition in wire format
        created_by: User who added the question
        created_by_name: Display name of that user at creation time
        is_archived: Hidden from the bank listing when True
        created_at: When the question was added
        updated_at: Last edit timestamp
    """

    __tablename__ = "question_bank"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    label: Mapped[str] = mapped_column(String(1000), nullable=False)
    question_json: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_by: Mapped[Optional[str]] = mapped_column(
        String(200),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_by_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
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

    creator: Mapped[Optional["User"]] = relationship("User")

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<QuestionBankItem(id={self.id}, label={self.label[:30]!r})>"
