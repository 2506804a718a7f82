"""Role and ownership checks for internal users."""

from typing import Iterable

from sqlalchemy.orm import Session

from survey_studio.models.survey import Survey
from survey_studio.models.user import User
from survey_studio.services.errors import AuthorizationError, NotFoundError
from survey_studio.logging_config import get_logger

logger = get_logger(__name__)

AUTHOR_ROLES = ("admin", "creator")


def require_role(actor: User, allowed: Iterable[str]) -> None:
    """Reject actors whose role is not in `allowed`.

    Raises:
        AuthorizationError: If the actor's role is not allowed
    """
    allowed = tuple(allowed)
    if actor.role not in allowed:
        logger.warning(
            f"Role {actor.role} denied, requires one of {allowed}",
            extra={"actor_id": actor.id}
        )
        raise AuthorizationError("Forbidden")


def can_manage_survey(actor: User, survey: Survey) -> bool:
    """Owners and admins may manage a survey."""
    return actor.is_admin or survey.owner_user_id == actor.id


def ensure_survey_access(db: Session, actor: User, survey_id: str) -> Survey:
    """Load a survey the actor is allowed to manage.

    Args:
        db: Database session
        actor: Authenticated user
        survey_id: Survey to load

    Returns:
        Survey

    Raises:
        NotFoundError: If the survey does not exist
        AuthorizationError: If the actor is neither owner nor admin
    """
    survey = db.get(Survey, survey_id)
    if survey is None:
        raise NotFoundError("Survey not found")
    if not can_manage_survey(actor, survey):
        logger.warning(
            "Survey access denied",
            extra={"actor_id": actor.id, "survey_id": survey_id}
        )
        raise AuthorizationError("Forbidden")
    return survey
