"""CSV export of survey responses.

One row per response, newest first, with the answer map JSON-encoded into
a single column. Fields containing a comma, quote or newline are quoted
with embedded quotes doubled; rows are joined with "\\n" and the output has
no trailing newline.
"""

import csv
import io
import json
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from survey_studio.models.database import ensure_utc
from survey_studio.models.response import Response
from survey_studio.models.user import User
from survey_studio.services.access import AUTHOR_ROLES, ensure_survey_access, require_role
from survey_studio.services.audit import record_audit
from survey_studio.services.reporting import ReportingService
from survey_studio.logging_config import get_logger

logger = get_logger(__name__)

CSV_HEADER = ("response_id", "status", "started_at", "completed_at", "answers")


def _timestamp(value: Optional[datetime]) -> str:
    return ensure_utc(value).isoformat() if value is not None else ""


def render_csv(responses: Iterable[Response]) -> str:
    """Render responses as CSV text.

    Example:
        >>> render_csv([])
        'response_id,status,started_at,completed_at,answers'
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(CSV_HEADER)
    for response in responses:
        writer.writerow((
            response.id,
            response.status,
            _timestamp(response.started_at),
            _timestamp(response.completed_at),
            json.dumps(response.answers_json or {}, ensure_ascii=False, separators=(",", ":")),
        ))
    return buffer.getvalue().rstrip("\n")


class CsvExportService:
    """Service producing audited CSV exports."""

    def __init__(self, db: Session):
        """Initialize export service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def export(self, actor: User, survey_id: str) -> str:
        """Export a survey's responses as CSV (owner or admin)."""
        require_role(actor, AUTHOR_ROLES)
        try:
            ensure_survey_access(self.db, actor, survey_id)
            responses = ReportingService(self.db).responses_newest_first(survey_id)
            record_audit(self.db, actor, "export_csv", "survey", survey_id, {"rows": len(responses)})
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Exported {len(responses)} responses", extra={"survey_id": survey_id})
        return render_csv(responses)
