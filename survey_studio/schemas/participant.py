"""Pydantic schemas for the anonymous participant endpoints."""

from pydantic import Field

from survey_studio.schemas.base import CamelModel
from survey_studio.schemas.question import Answers
from survey_studio.schemas.survey import SurveyVersionOut


class ParticipantLoadRequest(CamelModel):
    invite_token: str = Field(..., min_length=20, description="Token from the invite link")


class ParticipantAnswersRequest(CamelModel):
    """Answers keyed by question id (string, or list of strings)."""
    invite_token: str = Field(..., min_length=20, description="Token from the invite link")
    answers: Answers = Field(default_factory=dict)


class ParticipantLoadResponse(CamelModel):
    version: SurveyVersionOut
    invite_id: str
    draft_answers: Answers = Field(default_factory=dict)


class SubmitResponse(CamelModel):
    submission_id: str
