"""Reporting aggregator for survey invites and responses.

Summary metrics are computed from invite statuses and response
timestamps; rows list every stored response, newest first.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from survey_studio.models.database import ensure_utc
from survey_studio.models.invite import Invite
from survey_studio.models.response import Response
from survey_studio.models.user import User
from survey_studio.services.access import AUTHOR_ROLES, ensure_survey_access, require_role
from survey_studio.logging_config import get_logger

logger = get_logger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounding up.

    Python's round() uses banker's rounding, so round(2.5) == 2; this
    returns 3.
    """
    return int(math.floor(value + 0.5))


def completion_rate_percent(completed: int, total: int) -> int:
    """Completed share of invites as a whole percentage (0 when there are none)."""
    if total == 0:
        return 0
    return round_half_up(completed / total * 100)


def elapsed_seconds(started_at: Optional[datetime], completed_at: Optional[datetime]) -> Optional[int]:
    """Whole seconds between start and completion, floored at 0.

    Returns None unless both timestamps are present.
    """
    if started_at is None or completed_at is None:
        return None
    delta = ensure_utc(completed_at) - ensure_utc(started_at)
    return max(0, round_half_up(delta.total_seconds()))


def median_seconds(durations: Iterable[int]) -> int:
    """Element at index len // 2 of the sorted durations; 0 when empty.

    Example:
        >>> median_seconds([30, 10, 20, 40])
        30
    """
    ordered = sorted(durations)
    if not ordered:
        return 0
    return ordered[len(ordered) // 2]


@dataclass
class SurveyReport:
    """Aggregated report for one survey."""
    total_invites: int = 0
    started: int = 0
    completed: int = 0
    completion_rate_percent: int = 0
    median_time_seconds: int = 0
    responses: List[Response] = field(default_factory=list)


def summarize(invites: Iterable[Invite], responses: List[Response]) -> SurveyReport:
    """Compute the report from already-loaded invites and responses.

    Args:
        invites: Every invite of the survey
        responses: Every response of the survey, newest first

    Returns:
        SurveyReport
    """
    statuses = [invite.status for invite in invites]
    total = len(statuses)
    started = sum(1 for status in statuses if status in ("started", "completed"))
    completed = sum(1 for status in statuses if status == "completed")

    durations = [
        seconds
        for seconds in (elapsed_seconds(r.started_at, r.completed_at) for r in responses)
        if seconds is not None
    ]

    return SurveyReport(
        total_invites=total,
        started=started,
        completed=completed,
        completion_rate_percent=completion_rate_percent(completed, total),
        median_time_seconds=median_seconds(durations),
        responses=responses,
    )


class ReportingService:
    """Service loading survey data for reports and exports."""

    def __init__(self, db: Session):
        """Initialize reporting service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def report(self, actor: User, survey_id: str) -> SurveyReport:
        """Build the report for a survey the actor manages."""
        require_role(actor, AUTHOR_ROLES)
        ensure_survey_access(self.db, actor, survey_id)

        invites = self.db.execute(
            select(Invite).where(Invite.survey_id == survey_id)
        ).scalars().all()
        responses = self.responses_newest_first(survey_id)

        report = summarize(invites, responses)
        logger.debug(
            f"Report computed: {report.completed}/{report.total_invites} completed",
            extra={"survey_id": survey_id}
        )
        return report

    def responses_newest_first(self, survey_id: str) -> List[Response]:
        return list(
            self.db.execute(
                select(Response)
                .where(Response.survey_id == survey_id)
                .order_by(Response.created_at.desc())
            ).scalars()
        )
