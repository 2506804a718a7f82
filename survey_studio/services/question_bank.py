"""Question bank of reusable question definitions.

Bank items are stored independently of surveys. Labels are compared case
and whitespace insensitively when looking for duplicates, and archived
items are ignored by both the listing and the duplicate check.
"""

import re
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from survey_studio.models.question_bank import QuestionBankItem
from survey_studio.models.user import User
from survey_studio.schemas.question import Question
from survey_studio.services.access import AUTHOR_ROLES, require_role
from survey_studio.services.audit import record_audit
from survey_studio.services.errors import AuthorizationError, ConflictError, NotFoundError
from survey_studio.logging_config import get_logger

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_label(label: str) -> str:
    """Collapse whitespace and lowercase a label for duplicate comparison."""
    return _WHITESPACE.sub(" ", label).strip().lower()


class QuestionBankService:
    """Service for managing question bank items.

    Methods that change state add an audit entry; methods named after an
    API operation commit, helpers used by other services do not.
    """

    def __init__(self, db: Session):
        """Initialize question bank service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def list_items(self, actor: User) -> List[QuestionBankItem]:
        """Return non-archived items, newest first."""
        require_role(actor, AUTHOR_ROLES)
        return list(
            self.db.execute(
                select(QuestionBankItem)
                .where(QuestionBankItem.is_archived.is_(False))
                .order_by(QuestionBankItem.created_at.desc())
            ).scalars()
        )

    def find_duplicate(
        self,
        label: str,
        exclude_question_id: Optional[str] = None,
    ) -> Optional[QuestionBankItem]:
        """Find a non-archived item whose label matches `label`.

        Args:
            label: Label to look for
            exclude_question_id: Item to ignore (the one being edited)

        Returns:
            The first matching item, or None
        """
        wanted = normalize_label(label)
        if not wanted:
            return None

        query = select(QuestionBankItem).where(QuestionBankItem.is_archived.is_(False))
        if exclude_question_id:
            query = query.where(QuestionBankItem.id != exclude_question_id)

        for item in self.db.execute(query.order_by(QuestionBankItem.created_at)).scalars():
            if normalize_label(item.label) == wanted:
                return item
        return None

    def check_duplicate(
        self,
        actor: User,
        label: str,
        exclude_question_id: Optional[str] = None,
    ) -> Optional[QuestionBankItem]:
        require_role(actor, AUTHOR_ROLES)
        return self.find_duplicate(label, exclude_question_id)

    def add(self, actor: User, question: Question, allow_duplicate: bool = False) -> QuestionBankItem:
        """Add a question to the bank.

        Raises:
            ConflictError: If a similar question exists and `allow_duplicate` is False
        """
        require_role(actor, AUTHOR_ROLES)
        try:
            item = self.add_question(actor, question, allow_duplicate=allow_duplicate)
            if item is None:
                raise ConflictError("A similar question already exists in the question bank")
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return item

    def add_question(
        self,
        actor: User,
        question: Question,
        allow_duplicate: bool = False,
    ) -> Optional[QuestionBankItem]:
        """Stage a bank item for `question` without committing.

        The stored payload takes the item's id as its question id, so every
        survey built from the bank receives the same id for this question.

        Returns:
            The new item, or None when skipped as a duplicate
        """
        if not allow_duplicate and self.find_duplicate(question.label) is not None:
            logger.info("Skipped duplicate question bank entry", extra={"actor_id": actor.id})
            return None

        item = QuestionBankItem(
            label=question.label,
            created_by=actor.id,
            created_by_name=actor.full_name,
        )
        self.db.add(item)
        self.db.flush()

        item.question_json = question.model_copy(update={"id": item.id}).to_payload()
        record_audit(self.db, actor, "add_question_to_bank", "question", item.id)
        return item

    def add_flagged_questions(self, actor: User, questions: Sequence[Question]) -> List[QuestionBankItem]:
        """Stage bank items for survey questions flagged for the bank.

        Questions with a blank label are ignored. Duplicates are skipped
        unless the question also asks to force the addition.
        """
        added = []
        for question in questions:
            if not question.add_to_question_bank or not question.label.strip():
                continue
            item = self.add_question(
                actor,
                question,
                allow_duplicate=question.add_to_question_bank_force,
            )
            if item is not None:
                added.append(item)
        return added

    def edit(self, actor: User, question_id: str, question: Question) -> QuestionBankItem:
        """Replace an item's question definition (creator of the item or admin)."""
        require_role(actor, AUTHOR_ROLES)
        try:
            item = self._get_manageable(actor, question_id)
            item.label = question.label
            item.question_json = question.model_copy(update={"id": item.id}).to_payload()
            record_audit(self.db, actor, "edit_question_bank_question", "question", item.id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return item

    def archive(self, actor: User, question_id: str) -> QuestionBankItem:
        """Hide an item from the bank; surveys holding copies are unaffected."""
        require_role(actor, AUTHOR_ROLES)
        try:
            item = self._get_manageable(actor, question_id)
            item.is_archived = True
            record_audit(self.db, actor, "archive_question_bank_question", "question", item.id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return item

    def delete(self, actor: User, question_id: str) -> None:
        require_role(actor, AUTHOR_ROLES)
        try:
            item = self._get_manageable(actor, question_id)
            self.db.delete(item)
            record_audit(self.db, actor, "delete_question_bank_question", "question", question_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def questions_for(self, question_ids: Sequence[str]) -> List[Question]:
        """Load bank questions in the requested order.

        A repeated id is kept at its first position only, so question ids
        stay unique within the resulting survey.

        Raises:
            NotFoundError: If any id is unknown or archived
        """
        question_ids = list(dict.fromkeys(question_ids))
        items = {
            item.id: item
            for item in self.db.execute(
                select(QuestionBankItem).where(
                    QuestionBankItem.id.in_(question_ids),
                    QuestionBankItem.is_archived.is_(False),
                )
            ).scalars()
        }
        missing = [qid for qid in question_ids if qid not in items]
        if missing:
            raise NotFoundError("Question not found in question bank")
        return [Question.model_validate(items[qid].question_json) for qid in question_ids]

    def _get_manageable(self, actor: User, question_id: str) -> QuestionBankItem:
        item = self.db.get(QuestionBankItem, question_id)
        if item is None:
            raise NotFoundError("Question not found")
        if not actor.is_admin and item.created_by != actor.id:
            logger.warning("Question bank access denied", extra={"actor_id": actor.id})
            raise AuthorizationError("Forbidden")
        return item
