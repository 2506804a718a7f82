"""Conditional visibility evaluation for survey questions.

A question may carry a single-level rule that references exactly one other
question's answer. There are no boolean combinations and no chains: the
rule is a plain equality (or membership, for list answers) check that is
re-run whenever any answer changes.
"""

from typing import Dict, List, Optional

from survey_studio.schemas.question import Answer, Question
from survey_studio.logging_config import get_logger

logger = get_logger(__name__)


class VisibilityEvaluator:
    """Service for deciding which questions are currently shown."""

    @staticmethod
    def should_show(question: Question, answers: Dict[str, Answer]) -> bool:
        """Decide whether a question should be presented.

        Rules:
        - No logic: always shown
        - List answer: shown iff the list contains the expected value
        - Scalar answer: shown iff it equals the expected value
        - Missing answer or dangling reference: hidden

        Comparison is strict and case-sensitive. The inputs are never
        mutated, so the result depends only on the current answers.

        Args:
            question: Question whose visibility is being decided
            answers: Answers recorded so far, keyed by question id

        Returns:
            True if the question should be shown

        Example:
            >>> q2 = Question(id="q2", label="Why?", type="short_text",
            ...               logic={"questionId": "q1", "equals": "Yes"})
            >>> VisibilityEvaluator.should_show(q2, {"q1": ["Yes", "Maybe"]})
            True
        """
        if question.logic is None:
            return True

        referenced: Optional[Answer] = answers.get(question.logic.question_id)

        if isinstance(referenced, list):
            return question.logic.equals in referenced
        if isinstance(referenced, str):
            return referenced == question.logic.equals
        return False

    @staticmethod
    def visible_questions(questions: List[Question], answers: Dict[str, Answer]) -> List[Question]:
        """Filter questions down to the ones currently shown, preserving order.

        Args:
            questions: Ordered question definitions
            answers: Answers recorded so far

        Returns:
            New list of visible questions
        """
        visible = [q for q in questions if VisibilityEvaluator.should_show(q, answers)]
        logger.debug(f"{len(visible)} of {len(questions)} questions visible")
        return visible
