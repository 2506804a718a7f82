"""Survey and SurveyVersion models.

A Survey is the addressable entity an author manages. Its editable content
lives in append-only SurveyVersion snapshots; at most one version per survey
is published at any time.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Index,
    String,
    Text,
    Integer,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from survey_studio.models.database import Base, new_id, utcnow


class Survey(Base):
    """Top-level authored survey.

    Attributes:
        id: Primary key (UUID string)
        owner_user_id: User who owns the survey
        title: Denormalized title of the latest version (for listings)
        description: Denormalized description of the latest version
        status: draft, published or archived
        is_template: Whether the survey is offered as a template
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    __tablename__ = "surveys"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    owner_user_id: Mapped[str] = mapped_column(
        String(200),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="draft",
        comment="draft, published or archived"
    )
    is_template: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
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

    owner: Mapped["User"] = relationship("User")
    versions: Mapped[list["SurveyVersion"]] = relationship(
        "SurveyVersion",
        back_populates="survey",
        cascade="all, delete-orphan",
        order_by="SurveyVersion.version",
    )
    invites: Mapped[list["Invite"]] = relationship(
        "Invite",
        back_populates="survey",
        cascade="all, delete-orphan",
    )
    responses: Mapped[list["Response"]] = relationship(
        "Response",
        back_populates="survey",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_surveys_updated_at", "updated_at"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Survey(id={self.id}, title={self.title!r}, status={self.status})>"


class SurveyVersion(Base):
    """Immutable snapshot of a survey's editable content.

    Attributes:
        id: Primary key (UUID string)
        survey_id: Owning survey
        version: 1-based version number, unique per survey
        is_published: Whether this is the published version
        title, description, intro_text, consent_blurb, thank_you_text: Content
        tags: List of tag strings
        questions_json: Ordered list of question dicts (wire format)
        created_by: User who saved this version
        created_at: When the version was saved
    """

    __tablename__ = "survey_versions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    survey_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("surveys.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    intro_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    consent_blurb: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    thank_you_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    questions_json: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_by: Mapped[Optional[str]] = mapped_column(
        String(200),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    survey: Mapped["Survey"] = relationship("Survey", back_populates="versions")

    __table_args__ = (
        # Rejects colliding version numbers from concurrent draft saves
        UniqueConstraint("survey_id", "version", name="uq_survey_version"),
        Index("idx_survey_published", "survey_id", "is_published"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<SurveyVersion(survey_id={self.survey_id}, "
            f"version={self.version}, "
            f"published={self.is_published})>"
        )
