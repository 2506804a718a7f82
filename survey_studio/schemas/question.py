"""Pydantic schemas for survey questions.

A question is a flat record whose type-specific fields (options, numeric
bounds, regex, max length) are only meaningful for some question types.
Every parsed Question is normalized for its type, so configuration left
over from a previous type never reaches storage or validation.
"""

from enum import Enum
from typing import Annotated, Dict, List, Optional, Union

from pydantic import Field, StringConstraints, model_validator

from survey_studio.schemas.base import CamelModel


class QuestionType(str, Enum):
    """Question types offered by the survey builder.

    Stored question types are plain strings; an unrecognized value is kept
    as-is and validated with the generic text rule.
    """
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    SHORT_TEXT = "short_text"
    LONG_TEXT = "long_text"
    NUMBER = "number"
    EMAIL = "email"
    PHONE = "phone"
    DATE = "date"
    DROPDOWN = "dropdown"
    YES_NO = "yes_no"
    LIKERT = "likert"
    CONSENT = "consent"


OPTION_TYPES = frozenset({
    QuestionType.SINGLE_CHOICE,
    QuestionType.MULTIPLE_CHOICE,
    QuestionType.DROPDOWN,
    QuestionType.LIKERT,
})
NUMERIC_TYPES = frozenset({QuestionType.NUMBER})
TEXT_TYPES = frozenset({
    QuestionType.SHORT_TEXT,
    QuestionType.LONG_TEXT,
    QuestionType.EMAIL,
    QuestionType.PHONE,
})
KNOWN_TYPES = frozenset(t.value for t in QuestionType)

DEFAULT_OPTIONS = ["Option 1", "Option 2"]

MAX_ANSWER_LENGTH = 5000

AnswerText = Annotated[str, StringConstraints(max_length=MAX_ANSWER_LENGTH)]

# A recorded answer: a single string, or a list of strings for multiple choice
Answer = Union[AnswerText, List[AnswerText]]
Answers = Dict[str, Answer]


def is_option_type(question_type: str) -> bool:
    return question_type in OPTION_TYPES


def is_numeric_type(question_type: str) -> bool:
    return question_type in NUMERIC_TYPES


def is_text_type(question_type: str) -> bool:
    return question_type in TEXT_TYPES


def is_known_type(question_type: str) -> bool:
    return question_type in KNOWN_TYPES


class LogicRule(CamelModel):
    """Single-level visibility rule.

    The owning question is shown only when the answer recorded for
    `question_id` equals `equals` (or contains it, for list answers).
    """
    question_id: str = Field(..., description="Question whose answer is inspected")
    equals: str = Field(..., description="Expected answer value")


class Question(CamelModel):
    """One prompt within a survey.

    Attributes:
        id: Opaque identifier, stable across versions
        label: Display text
        type: Question type (see QuestionType)
        required: Whether an answer is mandatory
        help_text: Optional guidance
        options: Choices for option types
        min: Lower numeric bound (number only)
        max: Upper numeric bound (number only)
        regex: Pattern answers must match (text and unrecognized types)
        max_length: Maximum answer length (text and unrecognized types)
        pii: Marks the answer as personally identifying (no validation effect)
        randomize_options: Shuffle choices when presented (option types only)
        logic: Optional visibility rule
        add_to_question_bank: Request-only flag asking to copy the question
            into the question bank on save
        add_to_question_bank_force: Request-only flag to add it even when a
            similar question already exists in the bank
    """
    id: str = Field(..., min_length=1, description="Question identifier")
    label: str = Field(..., max_length=1000, description="Question text")
    type: str = Field(..., min_length=1, description="Question type")
    required: bool = Field(default=False)
    help_text: Optional[str] = Field(None, description="Guidance shown under the label")
    options: Optional[List[str]] = Field(None, description="Choices for option types")
    min: Optional[Union[int, float]] = Field(None, description="Minimum numeric value")
    max: Optional[Union[int, float]] = Field(None, description="Maximum numeric value")
    regex: Optional[str] = Field(None, description="Pattern for text answers")
    max_length: Optional[int] = Field(None, ge=1, description="Maximum answer length")
    pii: bool = Field(default=False, description="Answer is personally identifying")
    randomize_options: bool = Field(default=False)
    logic: Optional[LogicRule] = Field(None, description="Visibility rule")
    add_to_question_bank: bool = Field(default=False, exclude=True)
    add_to_question_bank_force: bool = Field(default=False, exclude=True)

    @model_validator(mode="after")
    def clear_fields_foreign_to_type(self):
        """Drop configuration that has no meaning for this question type."""
        if not is_option_type(self.type):
            self.options = None
            self.randomize_options = False
        if not is_numeric_type(self.type):
            self.min = None
            self.max = None
        # Unrecognized types fall back to the text rule and keep its settings
        if is_known_type(self.type) and not is_text_type(self.type):
            self.regex = None
            self.max_length = None
        return self

    def with_type(self, next_type: str) -> "Question":
        """Return a copy of this question switched to `next_type`.

        Option types keep existing options or receive two placeholder
        options; every field foreign to the new type is cleared.

        Example:
            >>> q = Question(id="q1", label="Pick", type="dropdown", options=["A"])
            >>> q.with_type("number").options is None
            True
        """
        data = self.model_dump()
        data["type"] = next_type
        if is_option_type(next_type) and not data.get("options"):
            data["options"] = list(DEFAULT_OPTIONS)
        return Question.model_validate(data)

    def to_payload(self) -> dict:
        """Serialize for storage in a survey version or the question bank."""
        return self.model_dump(by_alias=True, exclude_none=True)
