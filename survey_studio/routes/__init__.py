"""Routes package for FastAPI endpoints.

This package contains all API route modules for Survey Studio.
"""

from survey_studio.routes import health, participant, question_bank, surveys, users

__all__ = ["health", "participant", "question_bank", "surveys", "users"]
