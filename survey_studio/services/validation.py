"""Answer validation service for survey submissions.

This module builds a per-question validation rule from each question's
declared type and constraints, and validates an answer map against those
rules. Every field is validated independently and all failures are
collected, one message per question id.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from survey_studio.schemas.question import (
    MAX_ANSWER_LENGTH,
    Answer,
    Question,
    QuestionType,
)
from survey_studio.logging_config import get_logger

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(
    r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)+$"
)
PHONE_PATTERN = re.compile(r"^[0-9+()\-\s]{7,20}$")

# Spellings float() accepts that a participant would not consider numbers
_NON_NUMERIC = {"inf", "+inf", "-inf", "infinity", "+infinity", "-infinity", "nan", "+nan", "-nan"}


@dataclass
class ValidationResult:
    """Result of validating a single answer.

    Attributes:
        is_valid: Whether the answer passed its rule
        error_message: Error message if validation failed
    """
    is_valid: bool
    error_message: Optional[str] = None


@dataclass
class ValidationReport:
    """Outcome of validating a full answer map.

    Attributes:
        errors: Mapping of question id -> error message for failing fields
    """
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _ok() -> ValidationResult:
    return ValidationResult(is_valid=True)


def _fail(message: str) -> ValidationResult:
    return ValidationResult(is_valid=False, error_message=message)


def _format_bound(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_number(value: str) -> Optional[float]:
    """Parse a numeric answer, returning None when it is not a finite number.

    Surrounding whitespace is ignored and whitespace-only strings parse as
    zero, matching how browsers coerce form values.
    """
    stripped = value.strip()
    if stripped == "":
        return 0.0
    if stripped.lower() in _NON_NUMERIC or "_" in stripped:
        return None
    try:
        number = float(stripped)
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


class QuestionRule:
    """Validation rule for one question, derived from its type and constraints."""

    def __init__(self, question: Question):
        """Capture the question the rule validates.

        Args:
            question: Question definition (never mutated)
        """
        self.question = question

    def validate(self, value: Optional[Answer]) -> ValidationResult:
        """Validate one answer.

        A missing answer is treated as not answered: an empty string, or an
        empty list for multiple choice questions.

        Args:
            value: Recorded answer, or None when absent

        Returns:
            ValidationResult
        """
        question_type = self.question.type

        if question_type == QuestionType.MULTIPLE_CHOICE:
            return self._validate_multiple_choice([] if value is None else value)

        if value is None:
            value = ""
        if not isinstance(value, str):
            return _fail("Expected a single answer")

        if question_type == QuestionType.NUMBER:
            return self._validate_number(value)
        elif question_type == QuestionType.EMAIL:
            return self._validate_pattern(value, EMAIL_PATTERN, "Enter a valid email")
        elif question_type == QuestionType.PHONE:
            return self._validate_pattern(value, PHONE_PATTERN, "Enter a valid phone number")
        elif question_type == QuestionType.DATE:
            return self._validate_required(value)
        else:
            return self._validate_text(value)

    def _validate_required(self, value: str) -> ValidationResult:
        if value == "" and self.question.required:
            return _fail("Required")
        return _ok()

    def _validate_multiple_choice(self, value) -> ValidationResult:
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            return _fail("Expected a list of options")
        if self.question.required and len(value) == 0:
            return _fail("Select at least one option")
        return _ok()

    def _validate_number(self, value: str) -> ValidationResult:
        required = self._validate_required(value)
        if not required.is_valid or value == "":
            return required

        number = parse_number(value)
        if number is None:
            return _fail("Enter a valid number")
        if self.question.min is not None and number < self.question.min:
            return _fail(f"Minimum is {_format_bound(self.question.min)}")
        if self.question.max is not None and number > self.question.max:
            return _fail(f"Maximum is {_format_bound(self.question.max)}")
        return _ok()

    def _validate_pattern(self, value: str, pattern: re.Pattern, message: str) -> ValidationResult:
        required = self._validate_required(value)
        if not required.is_valid or value == "":
            return required
        if not pattern.match(value):
            return _fail(message)
        return _ok()

    def _validate_text(self, value: str) -> ValidationResult:
        """Generic rule for text-like and unrecognized question types.

        Checks, in order: the 5000 character ceiling, required-ness, the
        configured max length, then the configured regex.
        """
        if len(value) > MAX_ANSWER_LENGTH:
            return _fail(f"Maximum characters is {MAX_ANSWER_LENGTH}")

        required = self._validate_required(value)
        if not required.is_valid:
            return required

        max_length = self.question.max_length
        if max_length and len(value) > max_length:
            return _fail(f"Maximum characters is {max_length}")

        if self.question.regex and value != "":
            try:
                pattern = re.compile(self.question.regex)
            except re.error as e:
                logger.error(f"Invalid regex pattern on question {self.question.id}: {e}")
                return _fail("Invalid format")
            if not pattern.search(value):
                return _fail("Invalid format")

        return _ok()


class SurveySchema:
    """Validation rules for an ordered list of questions, keyed by question id."""

    def __init__(self, rules: Dict[str, QuestionRule]):
        self.rules = rules

    def validate(
        self,
        answers: Dict[str, Answer],
        only: Optional[Sequence[str]] = None,
    ) -> ValidationReport:
        """Validate an answer map against every rule.

        Failures never stop evaluation of other questions; every failing
        question contributes one message to the report.

        Args:
            answers: Mapping of question id -> answer (never mutated)
            only: Restrict validation to these question ids (e.g., visible ones)

        Returns:
            ValidationReport with all collected errors

        Example:
            >>> schema = build_survey_schema([Question(id="q1", label="Age", type="number", min=18)])
            >>> schema.validate({"q1": "17"}).errors
            {'q1': 'Minimum is 18'}
        """
        report = ValidationReport()
        selected = set(only) if only is not None else None

        for question_id, rule in self.rules.items():
            if selected is not None and question_id not in selected:
                continue
            result = rule.validate(answers.get(question_id))
            if not result.is_valid:
                report.errors[question_id] = result.error_message

        if report.errors:
            logger.debug(f"Answer validation failed for {sorted(report.errors)}")
        return report


def build_survey_schema(questions: List[Question]) -> SurveySchema:
    """Build the validation schema for a list of questions.

    Args:
        questions: Ordered question definitions

    Returns:
        SurveySchema with one rule per question id
    """
    return SurveySchema({question.id: QuestionRule(question) for question in questions})
