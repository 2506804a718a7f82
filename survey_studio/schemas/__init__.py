"""Pydantic schemas for data validation.

This package contains all Pydantic models for questions, surveys, invites,
participants, reports, the question bank and users.
"""

from survey_studio.schemas.question import (
    QuestionType,
    LogicRule,
    Question,
    Answer,
    Answers,
)
from survey_studio.schemas.survey import (
    UpsertSurveyRequest,
    UpsertSurveyResponse,
    SurveyVersionOut,
    SurveyOut,
)
from survey_studio.schemas.invite import CreateInviteRequest, InviteOut
from survey_studio.schemas.participant import (
    ParticipantLoadRequest,
    ParticipantAnswersRequest,
    ParticipantLoadResponse,
)
from survey_studio.schemas.report import ReportSummary, ReportRow
from survey_studio.schemas.user import Role, UserOut

__all__ = [
    "QuestionType",
    "LogicRule",
    "Question",
    "Answer",
    "Answers",
    "UpsertSurveyRequest",
    "UpsertSurveyResponse",
    "SurveyVersionOut",
    "SurveyOut",
    "CreateInviteRequest",
    "InviteOut",
    "ParticipantLoadRequest",
    "ParticipantAnswersRequest",
    "ParticipantLoadResponse",
    "ReportSummary",
    "ReportRow",
    "Role",
    "UserOut",
]
