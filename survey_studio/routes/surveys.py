"""Survey authoring, invite and reporting endpoints.

Every endpoint requires a bearer token; ownership and role checks happen
in the service layer.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from survey_studio.middleware.auth import get_current_user
from survey_studio.models.database import ensure_utc, get_db
from survey_studio.models.user import User
from survey_studio.schemas.invite import (
    CreateInviteRequest,
    CreateInviteResponse,
    InviteListResponse,
    InviteOut,
)
from survey_studio.schemas.report import (
    CsvExportResponse,
    ReportResponse,
    ReportRow,
    ReportSummary,
)
from survey_studio.schemas.survey import (
    OkResponse,
    SurveyIdResponse,
    SurveyListResponse,
    SurveyOut,
    SurveyVersionEnvelope,
    SurveyVersionOut,
    UpsertSurveyRequest,
    UpsertSurveyResponse,
)
from survey_studio.services.csv_export import CsvExportService
from survey_studio.services.invites import InviteService
from survey_studio.services.reporting import ReportingService
from survey_studio.services.survey_versions import SurveyVersionService
from survey_studio.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/surveys")


def _invite_out(invite) -> InviteOut:
    return InviteOut(
        id=invite.id,
        survey_id=invite.survey_id,
        token=invite.token,
        email=invite.email,
        expires_at=ensure_utc(invite.expires_at),
        status=invite.status,
        created_at=ensure_utc(invite.created_at),
    )


@router.post("", response_model=UpsertSurveyResponse)
def upsert_survey(
    request: UpsertSurveyRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> UpsertSurveyResponse:
    """Create a survey or update an existing one by appending a draft version."""
    version = SurveyVersionService(db).save_draft(user, request)
    return UpsertSurveyResponse(survey_id=version.survey_id, version_id=version.id)


@router.get("", response_model=SurveyListResponse)
def list_surveys(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> SurveyListResponse:
    surveys = SurveyVersionService(db).list_surveys(user)
    return SurveyListResponse(surveys=[SurveyOut.model_validate(s) for s in surveys])


@router.post("/{survey_id}/publish", response_model=OkResponse)
def publish_survey(
    survey_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> OkResponse:
    """Publish the newest unpublished version of a survey."""
    SurveyVersionService(db).publish(user, survey_id)
    return OkResponse()


@router.post("/{survey_id}/duplicate", response_model=SurveyIdResponse)
def duplicate_survey(
    survey_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> SurveyIdResponse:
    copy = SurveyVersionService(db).duplicate(user, survey_id)
    return SurveyIdResponse(survey_id=copy.id)


@router.post("/{survey_id}/archive", response_model=OkResponse)
def archive_survey(
    survey_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> OkResponse:
    SurveyVersionService(db).archive(user, survey_id)
    return OkResponse()


@router.delete("/{survey_id}", response_model=OkResponse)
def delete_survey(
    survey_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> OkResponse:
    """Hard-delete a survey and everything attached to it (admin only)."""
    SurveyVersionService(db).delete(user, survey_id)
    return OkResponse()


@router.get("/{survey_id}/version", response_model=SurveyVersionEnvelope)
def get_survey_version(
    survey_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> SurveyVersionEnvelope:
    """Return the newest version of a survey, published or not."""
    version = SurveyVersionService(db).get_latest_version(user, survey_id)
    return SurveyVersionEnvelope(version=SurveyVersionOut.from_version(version))


@router.get("/{survey_id}/invites", response_model=InviteListResponse)
def list_invites(
    survey_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> InviteListResponse:
    invites = InviteService(db).list_for_survey(user, survey_id)
    return InviteListResponse(invites=[_invite_out(invite) for invite in invites])


@router.post("/{survey_id}/invites", response_model=CreateInviteResponse)
def create_invite(
    survey_id: str,
    request: CreateInviteRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> CreateInviteResponse:
    """Issue an invite and return its participant link and message text."""
    issued = InviteService(db).create(
        user,
        survey_id,
        expires_at=request.expires_at,
        email=request.email,
    )
    return CreateInviteResponse(
        invite=_invite_out(issued.invite),
        link=issued.link,
        message=issued.message,
    )


@router.get("/{survey_id}/report", response_model=ReportResponse)
def report_summary(
    survey_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> ReportResponse:
    """Return completion metrics and every response, newest first."""
    report = ReportingService(db).report(user, survey_id)
    return ReportResponse(
        summary=ReportSummary(
            total_invites=report.total_invites,
            started=report.started,
            completed=report.completed,
            completion_rate_percent=report.completion_rate_percent,
            median_time_seconds=report.median_time_seconds,
        ),
        rows=[
            ReportRow(
                response_id=response.id,
                status=response.status,
                answers=response.answers_json or {},
                started_at=ensure_utc(response.started_at),
                completed_at=ensure_utc(response.completed_at),
            )
            for response in report.responses
        ],
    )


@router.get("/{survey_id}/export", response_model=CsvExportResponse)
def export_csv(
    survey_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> CsvExportResponse:
    return CsvExportResponse(csv=CsvExportService(db).export(user, survey_id))
