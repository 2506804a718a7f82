"""Invite issuing and listing.

An invite grants one anonymous participant access to a survey's published
version through an unguessable token embedded in the participant link.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from survey_studio.config import get_settings
from survey_studio.models.invite import Invite
from survey_studio.models.user import User
from survey_studio.services.access import AUTHOR_ROLES, ensure_survey_access, require_role
from survey_studio.services.audit import record_audit
from survey_studio.services.invite_renderer import get_invite_renderer
from survey_studio.logging_config import get_logger

logger = get_logger(__name__)


def generate_invite_token() -> str:
    """Return a 64 character hex token built from two random UUIDs."""
    return uuid.uuid4().hex + uuid.uuid4().hex


def truncate_token_for_logging(token: str) -> str:
    """Shorten a token so logs never carry a usable credential.

    Example:
        >>> truncate_token_for_logging("0123456789abcdef" * 4)
        '01234567...'
    """
    return f"{token[:8]}..."


def participant_link(token: str) -> str:
    """Build the participant URL for a token."""
    return f"{get_settings().site_url.rstrip('/')}/participant/{token}"


@dataclass
class IssuedInvite:
    """A freshly created invite with its shareable link and message."""
    invite: Invite
    link: str
    message: str


class InviteService:
    """Service for creating and listing survey invites."""

    def __init__(self, db: Session):
        """Initialize invite service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def create(
        self,
        actor: User,
        survey_id: str,
        expires_at: Optional[datetime] = None,
        email: Optional[str] = None,
    ) -> IssuedInvite:
        """Issue a new invite for a survey.

        Args:
            actor: Owner of the survey or an admin
            survey_id: Survey to invite to
            expires_at: Optional expiry timestamp
            email: Optional participant email

        Returns:
            IssuedInvite with the participant link and rendered message
        """
        require_role(actor, AUTHOR_ROLES)
        try:
            survey = ensure_survey_access(self.db, actor, survey_id)
            invite = Invite(
                survey_id=survey.id,
                token=generate_invite_token(),
                email=email,
                expires_at=expires_at,
                status="sent",
            )
            self.db.add(invite)
            self.db.flush()

            # Rendered before commit so a broken template stores no invite
            link = participant_link(invite.token)
            message = get_invite_renderer().render(survey.title, link, expires_at)

            record_audit(self.db, actor, "create_invite", "invite", invite.id, {"survey_id": survey.id})
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Created invite {truncate_token_for_logging(invite.token)}",
            extra={"survey_id": survey_id, "invite_id": invite.id}
        )
        return IssuedInvite(invite=invite, link=link, message=message)

    def list_for_survey(self, actor: User, survey_id: str) -> List[Invite]:
        """List a survey's invites, newest first."""
        require_role(actor, AUTHOR_ROLES)
        ensure_survey_access(self.db, actor, survey_id)
        return list(
            self.db.execute(
                select(Invite)
                .where(Invite.survey_id == survey_id)
                .order_by(Invite.created_at.desc())
            ).scalars()
        )
