"""Survey version state machine.

Surveys move between draft, published and archived. Content is stored as
append-only versions: every draft save adds version max + 1, and publishing
flags exactly one version as published while clearing the flag on all
others in the same transaction.
"""

from typing import List, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from survey_studio.config import get_settings
from survey_studio.models.invite import Invite
from survey_studio.models.survey import Survey, SurveyVersion
from survey_studio.models.user import User
from survey_studio.schemas.question import Question
from survey_studio.schemas.survey import UpsertSurveyRequest
from survey_studio.services.access import AUTHOR_ROLES, ensure_survey_access, require_role
from survey_studio.services.audit import record_audit
from survey_studio.services.errors import (
    ConflictError,
    NotFoundError,
    TerminalStateError,
)
from survey_studio.services.question_bank import QuestionBankService
from survey_studio.logging_config import get_logger

logger = get_logger(__name__)

COPY_SUFFIX = " (copy)"
BANK_SURVEY_TITLE = "New survey"
BANK_SURVEY_DESCRIPTION = "Created from question bank"


class SurveyVersionService:
    """Service implementing survey draft, publish and lifecycle transitions.

    Every public method commits on success and rolls back on failure, so a
    rejected transition never leaves partial state behind.
    """

    def __init__(self, db: Session):
        """Initialize survey version service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db
        self.settings = get_settings()

    def save_draft(self, actor: User, request: UpsertSurveyRequest) -> SurveyVersion:
        """Create or update a survey and append a new unpublished version.

        Existing publish flags and the survey status are left untouched, so
        a live survey can keep iterating on newer drafts and an archived one
        stays archived.

        Args:
            actor: Authenticated user (admin or creator; owner for updates)
            request: Survey content

        Returns:
            The newly created SurveyVersion

        Raises:
            AuthorizationError: If the actor may not edit the survey
            NotFoundError: If `request.survey_id` does not exist
        """
        require_role(actor, AUTHOR_ROLES)

        try:
            if request.survey_id is None:
                survey = Survey(
                    owner_user_id=actor.id,
                    title=request.title,
                    description=request.description,
                    status="draft",
                    is_template=bool(request.is_template),
                )
                self.db.add(survey)
                self.db.flush()
                logger.info("Created survey", extra={"survey_id": survey.id, "actor_id": actor.id})
            else:
                survey = ensure_survey_access(self.db, actor, request.survey_id)
                survey.title = request.title
                survey.description = request.description
                survey.is_template = bool(request.is_template)

            version = self._append_version(
                survey,
                actor,
                title=request.title,
                description=request.description,
                intro_text=request.intro_text,
                consent_blurb=request.consent_blurb,
                thank_you_text=request.thank_you_text,
                tags=list(request.tags),
                questions=request.questions,
            )
            QuestionBankService(self.db).add_flagged_questions(actor, request.questions)

            record_audit(self.db, actor, "upsert_survey", "survey", survey.id, {"version": version.version})
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Saved draft version {version.version}",
            extra={"survey_id": survey.id, "actor_id": actor.id}
        )
        return version

    def publish(self, actor: User, survey_id: str) -> SurveyVersion:
        """Publish the highest-numbered unpublished version.

        Raises:
            TerminalStateError: If the survey is archived or no unpublished version exists
            AuthorizationError: If the actor is neither owner nor admin
        """
        require_role(actor, AUTHOR_ROLES)
        try:
            survey = ensure_survey_access(self.db, actor, survey_id)
            if survey.status == "archived":
                raise TerminalStateError("Survey is archived")

            draft = self.db.execute(
                select(SurveyVersion)
                .where(SurveyVersion.survey_id == survey.id, SurveyVersion.is_published.is_(False))
                .order_by(SurveyVersion.version.desc())
                .limit(1)
            ).scalar_one_or_none()

            if draft is None:
                raise TerminalStateError("No draft version available")

            self.db.execute(
                update(SurveyVersion)
                .where(SurveyVersion.survey_id == survey.id, SurveyVersion.id != draft.id)
                .values(is_published=False)
                .execution_options(synchronize_session="fetch")
            )
            draft.is_published = True
            survey.status = "published"

            record_audit(self.db, actor, "publish_survey", "survey", survey.id, {"version": draft.version})
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Published version {draft.version}", extra={"survey_id": survey_id})
        return draft

    def duplicate(self, actor: User, survey_id: str) -> Survey:
        """Copy the latest version of a survey into a new draft survey.

        The copy is owned by the actor, starts at version 1 and has its
        title suffixed with " (copy)".

        Raises:
            NotFoundError: If the source survey has no versions
        """
        require_role(actor, AUTHOR_ROLES)
        try:
            ensure_survey_access(self.db, actor, survey_id)
            source = self.latest_version_of(survey_id)
            if source is None:
                raise NotFoundError("Source survey version not found")

            title = f"{source.title}{COPY_SUFFIX}"
            copy = Survey(
                owner_user_id=actor.id,
                title=title,
                description=source.description,
                status="draft",
                is_template=False,
            )
            self.db.add(copy)
            self.db.flush()

            self.db.add(SurveyVersion(
                survey_id=copy.id,
                version=1,
                is_published=False,
                title=title,
                description=source.description,
                intro_text=source.intro_text,
                consent_blurb=source.consent_blurb,
                thank_you_text=source.thank_you_text,
                tags=list(source.tags or []),
                questions_json=list(source.questions_json or []),
                created_by=actor.id,
            ))

            record_audit(self.db, actor, "duplicate_survey", "survey", copy.id, {"source": survey_id})
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Duplicated survey {survey_id}", extra={"survey_id": copy.id})
        return copy

    def archive(self, actor: User, survey_id: str) -> Survey:
        """Archive a survey.

        Versions are kept. Issued invites keep resolving against the last
        published version unless REVOKE_INVITES_ON_ARCHIVE is enabled, in
        which case every invite that is not completed is marked expired.
        """
        require_role(actor, AUTHOR_ROLES)
        try:
            survey = ensure_survey_access(self.db, actor, survey_id)
            survey.status = "archived"

            revoked = 0
            if self.settings.revoke_invites_on_archive:
                revoked = self.db.execute(
                    update(Invite)
                    .where(Invite.survey_id == survey.id, Invite.status != "completed")
                    .values(status="expired")
                    .execution_options(synchronize_session="fetch")
                ).rowcount

            record_audit(self.db, actor, "archive_survey", "survey", survey.id, {"revoked_invites": revoked})
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Archived survey (revoked {revoked} invites)", extra={"survey_id": survey_id})
        return survey

    def delete(self, actor: User, survey_id: str) -> None:
        """Hard-delete a survey with its versions, invites and responses (admin only)."""
        require_role(actor, ["admin"])
        try:
            survey = self.db.get(Survey, survey_id)
            if survey is None:
                raise NotFoundError("Survey not found")

            self.db.delete(survey)
            record_audit(self.db, actor, "delete_survey", "survey", survey_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.warning("Deleted survey", extra={"survey_id": survey_id, "actor_id": actor.id})

    def get_latest_version(self, actor: User, survey_id: str) -> SurveyVersion:
        """Return the newest version regardless of publish state (for authoring).

        Raises:
            NotFoundError: If the survey has no versions
        """
        require_role(actor, AUTHOR_ROLES)
        ensure_survey_access(self.db, actor, survey_id)
        version = self.latest_version_of(survey_id)
        if version is None:
            raise NotFoundError("Survey version not found")
        return version

    def list_surveys(self, actor: User) -> List[Survey]:
        """List surveys visible to the actor, most recently updated first.

        Admins see every survey, creators their own, participants only
        published ones.
        """
        query = select(Survey).order_by(Survey.updated_at.desc())
        if actor.role == "creator":
            query = query.where(Survey.owner_user_id == actor.id)
        elif actor.role == "participant":
            query = query.where(Survey.status == "published")
        return list(self.db.execute(query).scalars())

    def build_from_question_bank(self, actor: User, question_ids: Sequence[str]) -> Survey:
        """Create a draft survey whose version 1 holds copies of bank questions.

        Questions keep their bank ids and the requested order.

        Raises:
            NotFoundError: If any question id is unknown or archived
        """
        require_role(actor, AUTHOR_ROLES)
        try:
            questions = QuestionBankService(self.db).questions_for(question_ids)

            survey = Survey(
                owner_user_id=actor.id,
                title=BANK_SURVEY_TITLE,
                description=BANK_SURVEY_DESCRIPTION,
                status="draft",
                is_template=False,
            )
            self.db.add(survey)
            self.db.flush()

            self._append_version(
                survey,
                actor,
                title=BANK_SURVEY_TITLE,
                description=BANK_SURVEY_DESCRIPTION,
                intro_text=None,
                consent_blurb=None,
                thank_you_text=None,
                tags=[],
                questions=questions,
            )
            record_audit(
                self.db, actor, "build_survey_from_question_bank", "survey", survey.id,
                {"questions": len(questions)}
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Built survey from {len(questions)} bank questions", extra={"survey_id": survey.id})
        return survey

    def latest_version_of(self, survey_id: str) -> Optional[SurveyVersion]:
        """Highest-numbered version of a survey, or None."""
        return self.db.execute(
            select(SurveyVersion)
            .where(SurveyVersion.survey_id == survey_id)
            .order_by(SurveyVersion.version.desc())
            .limit(1)
        ).scalar_one_or_none()

    def published_version_of(self, survey_id: str) -> Optional[SurveyVersion]:
        """The published version of a survey, or None."""
        return self.db.execute(
            select(SurveyVersion)
            .where(SurveyVersion.survey_id == survey_id, SurveyVersion.is_published.is_(True))
            .order_by(SurveyVersion.version.desc())
            .limit(1)
        ).scalar_one_or_none()

    def _next_version_number(self, survey_id: str) -> int:
        current = self.db.execute(
            select(func.max(SurveyVersion.version)).where(SurveyVersion.survey_id == survey_id)
        ).scalar()
        return (current or 0) + 1

    def _append_version(
        self,
        survey: Survey,
        actor: User,
        *,
        title: str,
        description: str,
        intro_text: Optional[str],
        consent_blurb: Optional[str],
        thank_you_text: Optional[str],
        tags: List[str],
        questions: Sequence[Question],
    ) -> SurveyVersion:
        """Insert version max + 1, retrying when a concurrent save took the number.

        Each attempt runs in a savepoint; the unique (survey_id, version)
        constraint turns a lost race into an IntegrityError.

        Raises:
            ConflictError: If no version number could be allocated
        """
        payload = [question.to_payload() for question in questions]
        attempts = self.settings.version_insert_retries

        for attempt in range(1, attempts + 1):
            version = SurveyVersion(
                survey_id=survey.id,
                version=self._next_version_number(survey.id),
                is_published=False,
                title=title,
                description=description,
                intro_text=intro_text,
                consent_blurb=consent_blurb,
                thank_you_text=thank_you_text,
                tags=tags,
                questions_json=payload,
                created_by=actor.id,
            )
            try:
                with self.db.begin_nested():
                    self.db.add(version)
                return version
            except IntegrityError:
                logger.warning(
                    f"Version {version.version} already taken (attempt {attempt}/{attempts})",
                    extra={"survey_id": survey.id}
                )

        raise ConflictError("Could not allocate a survey version, please retry")
