import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from studymind.api.v1.dependencies import get_ai_gateway, get_current_user, get_db
from studymind.core.ai_gateway import AIGateway
from studymind.core.config import settings
from studymind.models.user.user_model import User
from studymind.schemas.note_schema import NoteCreate, NoteOut, QuestionGenerateRequest, QuestionGenerateResult
from studymind.services.note_service import NoteService
from studymind.services.review_errors import ReviewError

router = APIRouter()
logger = logging.getLogger(__name__)


def _reject_in_demo() -> None:
    if settings.READ_ONLY_DEMO:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="read_only_demo")


@router.get("/", response_model=List[NoteOut])
def list_notes(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway: AIGateway = Depends(get_ai_gateway),
):
    return NoteService(db, current_user.id, gateway).list_notes()


@router.post("/", response_model=NoteOut, status_code=status.HTTP_201_CREATED)
def create_note(
    payload: NoteCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway: AIGateway = Depends(get_ai_gateway),
):
    _reject_in_demo()
    service = NoteService(db, current_user.id, gateway)
    return service.to_out(service.create_note(payload))


@router.post("/{note_id}/questions", response_model=QuestionGenerateResult, status_code=status.HTTP_201_CREATED)
def generate_questions(
    note_id: int,
    payload: QuestionGenerateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway: AIGateway = Depends(get_ai_gateway),
):
    _reject_in_demo()
    try:
        questions = NoteService(db, current_user.id, gateway).generate_questions(
            note_id,
            payload.difficulty,
            payload.question_type,
            is_default=payload.is_default,
        )
    except ReviewError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.code) from exc
    return QuestionGenerateResult(note_id=note_id, created=len(questions))
