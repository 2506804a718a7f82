"""Pydantic schemas for the question bank."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from survey_studio.schemas.base import CamelModel
from survey_studio.schemas.question import Question


class QuestionBankItemOut(Question):
    """A bank question with authorship metadata."""
    created_by_name: str
    created_at: datetime


class QuestionBankListResponse(CamelModel):
    questions: List[QuestionBankItemOut]


class DuplicateCheckRequest(CamelModel):
    label: str = Field(..., min_length=1, max_length=1000)
    exclude_question_id: Optional[str] = None


class DuplicateCheckResponse(CamelModel):
    duplicate: Optional[QuestionBankItemOut] = None


class AddQuestionRequest(CamelModel):
    question: Question
    allow_duplicate: bool = False


class EditQuestionRequest(CamelModel):
    question: Question


class BuildSurveyRequest(CamelModel):
    question_ids: List[str] = Field(..., min_length=1)

    @field_validator("question_ids")
    @classmethod
    def unique_question_ids(cls, v: List[str]) -> List[str]:
        """Reject repeated ids; each bank question may appear once per survey."""
        duplicates = sorted({qid for qid in v if v.count(qid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate question ids found: {duplicates}")
        return v
