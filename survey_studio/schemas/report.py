"""Pydantic schemas for survey reporting."""

from datetime import datetime
from typing import List, Optional

from survey_studio.schemas.base import CamelModel
from survey_studio.schemas.question import Answers


class ReportSummary(CamelModel):
    """Aggregate metrics for one survey.

    Attributes:
        total_invites: Number of invites issued
        started: Invites that were opened (started or completed)
        completed: Invites that were submitted
        completion_rate_percent: completed / total_invites as a rounded percentage
        median_time_seconds: Lower median of start-to-completion durations
    """
    total_invites: int
    started: int
    completed: int
    completion_rate_percent: int
    median_time_seconds: int


class ReportRow(CamelModel):
    """One stored response."""
    response_id: str
    status: str
    answers: Answers
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ReportResponse(CamelModel):
    summary: ReportSummary
    rows: List[ReportRow]


class CsvExportResponse(CamelModel):
    csv: str
