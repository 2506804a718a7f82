"""Anonymous participant endpoints.

Participants are identified only by their invite token; requests are rate
limited per token and never require a bearer token.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from survey_studio.models.database import get_db
from survey_studio.schemas.participant import (
    ParticipantAnswersRequest,
    ParticipantLoadRequest,
    ParticipantLoadResponse,
    SubmitResponse,
)
from survey_studio.schemas.survey import OkResponse, SurveyVersionOut
from survey_studio.services.participant import ParticipantService
from survey_studio.services.rate_limiter import RateLimiter, get_rate_limiter

router = APIRouter(prefix="/api/participant")


@router.post("/load", response_model=ParticipantLoadResponse)
def participant_load(
    request: ParticipantLoadRequest,
    db: Session = Depends(get_db),
    rate_limiter: RateLimiter = Depends(get_rate_limiter)
) -> ParticipantLoadResponse:
    """Open an invite: returns the published version and any saved draft.

    Example response:
        {
            "version": {"id": "...", "questions": [...], ...},
            "inviteId": "...",
            "draftAnswers": {"q1": "Yes"}
        }
    """
    session = ParticipantService(db, rate_limiter).load(request.invite_token)
    return ParticipantLoadResponse(
        version=SurveyVersionOut.from_version(session.version),
        invite_id=session.invite.id,
        draft_answers=session.draft_answers,
    )


@router.post("/draft", response_model=OkResponse)
def participant_save_draft(
    request: ParticipantAnswersRequest,
    db: Session = Depends(get_db),
    rate_limiter: RateLimiter = Depends(get_rate_limiter)
) -> OkResponse:
    ParticipantService(db, rate_limiter).save_draft(request.invite_token, request.answers)
    return OkResponse()


@router.post("/submit", response_model=SubmitResponse)
def participant_submit(
    request: ParticipantAnswersRequest,
    db: Session = Depends(get_db),
    rate_limiter: RateLimiter = Depends(get_rate_limiter)
) -> SubmitResponse:
    """Validate and record the final answers; 422 lists every invalid field."""
    response = ParticipantService(db, rate_limiter).submit(request.invite_token, request.answers)
    return SubmitResponse(submission_id=response.id)
