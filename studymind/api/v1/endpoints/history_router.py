from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from studymind.api.v1.dependencies import get_current_user, get_review_workspace, get_session_factory
from studymind.models.review.review_session_model import SessionStatus
from studymind.models.user.user_model import User
from studymind.schemas.review import ReviewSessionDetail, ReviewSessionPage, ReviewWorkspaceView
from studymind.services.review_errors import ReviewError
from studymind.services.review_history_service import ReviewHistoryService
from studymind.services.review_repository import ReviewRepository, SessionFactory
from studymind.services.review_workspace import ReviewWorkspace

router = APIRouter()


def get_history_service(
    current_user: User = Depends(get_current_user),
    session_factory: SessionFactory = Depends(get_session_factory),
) -> ReviewHistoryService:
    return ReviewHistoryService(ReviewRepository(session_factory, current_user.id))


@router.get("/", response_model=ReviewSessionPage)
def list_sessions(
    status: Optional[SessionStatus] = Query(None),
    page: int = Query(1, ge=1),
    service: ReviewHistoryService = Depends(get_history_service),
):
    try:
        return service.list_sessions(status=status, page=page)
    except ReviewError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.code) from exc


@router.get("/{session_id}", response_model=ReviewSessionDetail)
def read_session(session_id: int, service: ReviewHistoryService = Depends(get_history_service)):
    try:
        return service.get_session_detail(session_id)
    except ReviewError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.code) from exc


@router.post("/{session_id}/retry", response_model=ReviewWorkspaceView)
def retry_session(session_id: int, workspace: ReviewWorkspace = Depends(get_review_workspace)):
    """Navigate to the review page with a one-shot retry intent."""
    workspace.set_retry_intent(session_id)
    workspace.open_review()
    return workspace.view()
