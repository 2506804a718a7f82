"""Pydantic schemas for survey authoring requests and responses."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from survey_studio.models.database import ensure_utc
from survey_studio.schemas.base import CamelModel
from survey_studio.schemas.question import Question


class UpsertSurveyRequest(CamelModel):
    """Payload for saving a survey draft.

    Omitting `survey_id` creates a new survey; either way a new version is
    appended.
    """
    survey_id: Optional[str] = Field(None, description="Existing survey to update")
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=3, max_length=2000)
    intro_text: Optional[str] = Field(None, max_length=5000)
    consent_blurb: Optional[str] = Field(None, max_length=5000)
    thank_you_text: Optional[str] = Field(None, max_length=5000)
    tags: List[str] = Field(default_factory=list)
    questions: List[Question] = Field(default_factory=list)
    is_template: Optional[bool] = Field(None)

    @field_validator("tags")
    @classmethod
    def tags_short(cls, v: List[str]) -> List[str]:
        """Ensure every tag is at most 50 characters."""
        for tag in v:
            if len(tag) > 50:
                raise ValueError("Tags must be at most 50 characters")
        return v

    @model_validator(mode="after")
    def unique_question_ids(self):
        """Reject duplicate question ids within one survey."""
        ids = [question.id for question in self.questions]
        if len(ids) != len(set(ids)):
            duplicates = sorted({qid for qid in ids if ids.count(qid) > 1})
            raise ValueError(f"Duplicate question ids found: {duplicates}")
        return self


class UpsertSurveyResponse(CamelModel):
    survey_id: str
    version_id: str


class SurveyVersionOut(CamelModel):
    """A stored survey version as returned to clients."""
    id: str
    survey_id: str
    version: int
    is_published: bool
    title: str
    description: str
    intro_text: Optional[str] = None
    consent_blurb: Optional[str] = None
    thank_you_text: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    questions: List[Question] = Field(default_factory=list)
    created_at: datetime

    @classmethod
    def from_version(cls, version) -> "SurveyVersionOut":
        """Build from a SurveyVersion row, parsing its stored questions."""
        return cls(
            id=version.id,
            survey_id=version.survey_id,
            version=version.version,
            is_published=version.is_published,
            title=version.title,
            description=version.description,
            intro_text=version.intro_text,
            consent_blurb=version.consent_blurb,
            thank_you_text=version.thank_you_text,
            tags=list(version.tags or []),
            questions=[Question.model_validate(q) for q in version.questions_json or []],
            created_at=ensure_utc(version.created_at),
        )


class SurveyVersionEnvelope(CamelModel):
    version: SurveyVersionOut


class SurveyOut(CamelModel):
    """Survey listing entry."""
    id: str
    owner_user_id: str
    title: str
    description: str
    status: str
    is_template: bool
    created_at: datetime
    updated_at: datetime


class SurveyListResponse(CamelModel):
    surveys: List[SurveyOut]


class SurveyIdResponse(CamelModel):
    survey_id: str


class OkResponse(CamelModel):
    ok: bool = True
