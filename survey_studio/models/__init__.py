"""Database models and session management.

This package contains all SQLAlchemy ORM models and database utilities.
"""

from survey_studio.models.database import Base, engine, SessionLocal, get_db
from survey_studio.models.user import User, AuditLog
from survey_studio.models.survey import Survey, SurveyVersion
from survey_studio.models.invite import Invite
from survey_studio.models.response import Response
from survey_studio.models.question_bank import QuestionBankItem

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "User",
    "AuditLog",
    "Survey",
    "SurveyVersion",
    "Invite",
    "Response",
    "QuestionBankItem",
]
