"""Question bank endpoints for admins and creators."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from survey_studio.middleware.auth import get_current_user
from survey_studio.models.database import ensure_utc, get_db
from survey_studio.models.question_bank import QuestionBankItem
from survey_studio.models.user import User
from survey_studio.schemas.question_bank import (
    AddQuestionRequest,
    BuildSurveyRequest,
    DuplicateCheckRequest,
    DuplicateCheckResponse,
    EditQuestionRequest,
    QuestionBankItemOut,
    QuestionBankListResponse,
)
from survey_studio.schemas.survey import OkResponse, SurveyIdResponse
from survey_studio.services.question_bank import QuestionBankService
from survey_studio.services.survey_versions import SurveyVersionService

router = APIRouter(prefix="/api/question-bank")


def _item_out(item: QuestionBankItem) -> QuestionBankItemOut:
    return QuestionBankItemOut.model_validate({
        **item.question_json,
        "id": item.id,
        "createdByName": item.created_by_name,
        "createdAt": ensure_utc(item.created_at),
    })


@router.get("", response_model=QuestionBankListResponse)
def list_question_bank(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> QuestionBankListResponse:
    items = QuestionBankService(db).list_items(user)
    return QuestionBankListResponse(questions=[_item_out(item) for item in items])


@router.post("/duplicates", response_model=DuplicateCheckResponse)
def check_question_bank_duplicate(
    request: DuplicateCheckRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> DuplicateCheckResponse:
    """Look for a bank question with the same label, ignoring case and spacing."""
    item = QuestionBankService(db).check_duplicate(user, request.label, request.exclude_question_id)
    return DuplicateCheckResponse(duplicate=_item_out(item) if item else None)


@router.post("", response_model=QuestionBankItemOut)
def add_question_to_bank(
    request: AddQuestionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> QuestionBankItemOut:
    item = QuestionBankService(db).add(user, request.question, allow_duplicate=request.allow_duplicate)
    return _item_out(item)


@router.put("/{question_id}", response_model=QuestionBankItemOut)
def edit_question_bank_question(
    question_id: str,
    request: EditQuestionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> QuestionBankItemOut:
    item = QuestionBankService(db).edit(user, question_id, request.question)
    return _item_out(item)


@router.post("/{question_id}/archive", response_model=OkResponse)
def archive_question_bank_question(
    question_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> OkResponse:
    QuestionBankService(db).archive(user, question_id)
    return OkResponse()


@router.delete("/{question_id}", response_model=OkResponse)
def delete_question_bank_question(
    question_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> OkResponse:
    QuestionBankService(db).delete(user, question_id)
    return OkResponse()


@router.post("/build", response_model=SurveyIdResponse)
def build_survey_from_question_bank(
    request: BuildSurveyRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> SurveyIdResponse:
    """Create a draft survey from bank questions, in the order given."""
    survey = SurveyVersionService(db).build_from_question_bank(user, request.question_ids)
    return SurveyIdResponse(survey_id=survey.id)
