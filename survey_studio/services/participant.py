"""Anonymous participant flow: load, autosave and submit.

Participants authenticate with nothing but their invite token. Every action
is rate limited per token, and once an invite is completed neither draft
saves nor submissions may touch its response again.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

import httpx
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from survey_studio.config import get_settings
from survey_studio.models.database import ensure_utc, utcnow
from survey_studio.models.invite import Invite
from survey_studio.models.response import Response
from survey_studio.models.survey import SurveyVersion
from survey_studio.schemas.question import Answers, Question
from survey_studio.services.errors import (
    AnswerValidationError,
    ConflictError,
    NotFoundError,
    RateLimitError,
    TerminalStateError,
)
from survey_studio.services.invites import truncate_token_for_logging
from survey_studio.services.rate_limiter import RateLimiter, get_rate_limiter
from survey_studio.services.validation import build_survey_schema
from survey_studio.services.visibility import VisibilityEvaluator
from survey_studio.logging_config import get_logger

logger = get_logger(__name__)


def is_invite_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """Return True only when `expires_at` is strictly in the past.

    Example:
        >>> is_invite_expired(None)
        False
    """
    if expires_at is None:
        return False
    return ensure_utc(expires_at) < (now or utcnow())


def resolve_started_at(existing: Optional[datetime], now: datetime) -> datetime:
    """Keep the first recorded start time, falling back to `now`."""
    return existing or now


@dataclass
class ParticipantSession:
    """What a participant sees when opening their invite link."""
    invite: Invite
    version: SurveyVersion
    draft_answers: Answers


class ParticipantService:
    """Service implementing the token-authenticated participant actions."""

    def __init__(self, db: Session, rate_limiter: Optional[RateLimiter] = None):
        """Initialize participant service.

        Args:
            db: SQLAlchemy database session
            rate_limiter: Limiter for per-token buckets (defaults to the global one)
        """
        self.db = db
        self.settings = get_settings()
        self.rate_limiter = rate_limiter or get_rate_limiter()

    def load(self, token: str) -> ParticipantSession:
        """Open an invite and return the published survey with any saved draft.

        A sent invite moves to started.

        Raises:
            RateLimitError: If the load bucket is exhausted
            NotFoundError: If the invite or the published version is missing
            TerminalStateError: If the invite is expired
        """
        self._check_rate("load", token, self.settings.rate_limit_load)

        try:
            invite = self._get_invite(token)
            self._ensure_not_expired(invite)
            version = self._published_version(invite)

            response = self._response_for(invite)
            draft_answers = dict(response.answers_json) if response is not None else {}

            if invite.status == "sent":
                invite.mark_started()
                self.db.commit()
                logger.info("Invite started", extra={"invite_id": invite.id, "survey_id": invite.survey_id})
        except Exception:
            self.db.rollback()
            raise

        return ParticipantSession(invite=invite, version=version, draft_answers=draft_answers)

    def save_draft(self, token: str, answers: Answers) -> Response:
        """Autosave answers without validating them.

        The first draft records the start time; later saves keep it.

        Raises:
            TerminalStateError: If the invite is completed or expired
        """
        self._check_rate("draft", token, self.settings.rate_limit_draft)

        try:
            invite = self._get_invite(token)
            self._ensure_open(invite)

            response = self._response_for(invite)
            now = utcnow()
            if response is None:
                response = Response(
                    invite_id=invite.id,
                    survey_id=invite.survey_id,
                    status="draft",
                    started_at=now,
                )
                self.db.add(response)
            else:
                response.status = "draft"
                response.started_at = resolve_started_at(response.started_at, now)
            response.replace_answers(answers)

            self._flush_response()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.debug("Saved draft answers", extra={"invite_id": invite.id})
        return response

    def submit(self, token: str, answers: Answers) -> Response:
        """Validate and record the final answers.

        Only questions visible under the submitted answers are validated.
        The invite becomes completed and the completion webhook, if
        configured, is notified.

        Raises:
            AnswerValidationError: With every failing question id
            TerminalStateError: If the invite is completed or expired
            NotFoundError: If the invite or the published version is missing
        """
        self._check_rate("submit", token, self.settings.rate_limit_submit)

        try:
            invite = self._get_invite(token)
            self._ensure_open(invite)
            version = self._published_version(invite)

            errors = self.validate_answers(version, answers)
            if errors:
                logger.info(
                    f"Submission rejected with {len(errors)} invalid answers",
                    extra={"invite_id": invite.id}
                )
                raise AnswerValidationError(errors)

            now = utcnow()
            response = self._response_for(invite)
            if response is None:
                response = Response(invite_id=invite.id, survey_id=invite.survey_id)
                self.db.add(response)
            response.replace_answers(answers)
            response.started_at = resolve_started_at(response.started_at, now)
            response.mark_completed()
            invite.mark_completed()

            self._flush_response()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Survey submitted",
            extra={"invite_id": invite.id, "survey_id": invite.survey_id}
        )
        self.notify_completion(invite.survey_id, response.id)
        return response

    @staticmethod
    def validate_answers(version: SurveyVersion, answers: Answers) -> Dict[str, str]:
        """Validate answers for the questions currently visible.

        Returns:
            Mapping of question id -> error message (empty when valid)
        """
        questions: List[Question] = [Question.model_validate(q) for q in version.questions_json or []]
        visible = VisibilityEvaluator.visible_questions(questions, answers)
        report = build_survey_schema(questions).validate(answers, only=[q.id for q in visible])
        return report.errors

    def notify_completion(self, survey_id: str, response_id: str) -> None:
        """POST {surveyId, responseId} to the completion webhook.

        Failures are logged and never affect the submission.
        """
        url = self.settings.completion_webhook_url
        if not url:
            return

        try:
            result = httpx.post(
                url,
                json={"surveyId": survey_id, "responseId": response_id},
                timeout=self.settings.completion_webhook_timeout_seconds,
            )
            result.raise_for_status()
            logger.debug("Completion webhook delivered", extra={"survey_id": survey_id})
        except httpx.HTTPError as e:
            logger.warning(
                f"Completion webhook failed: {type(e).__name__}: {e}",
                extra={"survey_id": survey_id}
            )

    def _check_rate(self, action: str, token: str, limit: int) -> None:
        if not self.rate_limiter.allow(f"{action}:{token}", limit):
            logger.warning(f"Rate limit exceeded for {action} on {truncate_token_for_logging(token)}")
            raise RateLimitError("Too many requests, please slow down")

    def _get_invite(self, token: str) -> Invite:
        invite = self.db.execute(
            select(Invite).where(Invite.token == token)
        ).scalar_one_or_none()
        if invite is None:
            logger.info(f"Unknown invite token {truncate_token_for_logging(token)}")
            raise NotFoundError("Invite not found")
        return invite

    def _ensure_not_expired(self, invite: Invite) -> None:
        if invite.status == "expired" or is_invite_expired(invite.expires_at):
            raise TerminalStateError("Invite expired")

    def _ensure_open(self, invite: Invite) -> None:
        if invite.is_completed:
            raise TerminalStateError("Survey already submitted")
        self._ensure_not_expired(invite)

    def _published_version(self, invite: Invite) -> SurveyVersion:
        version = self.db.execute(
            select(SurveyVersion)
            .where(SurveyVersion.survey_id == invite.survey_id, SurveyVersion.is_published.is_(True))
            .order_by(SurveyVersion.version.desc())
            .limit(1)
        ).scalar_one_or_none()
        if version is None:
            raise NotFoundError("Published survey version missing")
        return version

    def _response_for(self, invite: Invite) -> Optional[Response]:
        return self.db.execute(
            select(Response).where(Response.invite_id == invite.id)
        ).scalar_one_or_none()

    def _flush_response(self) -> None:
        try:
            self.db.flush()
        except IntegrityError:
            logger.warning("Concurrent response write for the same invite")
            raise ConflictError("Your answers are being saved in another window, please retry")
