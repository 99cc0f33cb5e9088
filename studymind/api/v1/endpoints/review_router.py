"""Review workspace endpoints.

Every mutation answers with the refreshed workspace view; rejected
operations surface as notices in that view rather than HTTP errors.
"""

from fastapi import APIRouter, Depends

from studymind.api.v1.dependencies import get_review_workspace
from studymind.schemas.review import (
    AnswerTextUpdate,
    NavigateRequest,
    OpenReviewRequest,
    RateRequest,
    ReviewSetupOptions,
    ReviewSetupUpdate,
    ReviewWorkspaceView,
)
from studymind.services.review_workspace import ReviewWorkspace

router = APIRouter()


@router.get("/", response_model=ReviewWorkspaceView)
def read_workspace(workspace: ReviewWorkspace = Depends(get_review_workspace)):
    return workspace.view()


@router.post("/open", response_model=ReviewWorkspaceView)
def open_review(
    payload: OpenReviewRequest | None = None,
    workspace: ReviewWorkspace = Depends(get_review_workspace),
):
    workspace.open_review(payload.retry_session_id if payload else None)
    return workspace.view()


@router.post("/resume/confirm", response_model=ReviewWorkspaceView)
def confirm_resume(workspace: ReviewWorkspace = Depends(get_review_workspace)):
    workspace.confirm_resume()
    return workspace.view()


@router.post("/resume/discard", response_model=ReviewWorkspaceView)
def discard_resume(workspace: ReviewWorkspace = Depends(get_review_workspace)):
    workspace.discard_resume()
    return workspace.view()


@router.get("/setup/options", response_model=ReviewSetupOptions)
def read_setup_options(workspace: ReviewWorkspace = Depends(get_review_workspace)):
    setup = workspace.setup
    return ReviewSetupOptions(notes=setup.notes, subjects=setup.subjects, search_results=setup.search_notes())


@router.patch("/setup", response_model=ReviewWorkspaceView)
def update_setup(
    payload: ReviewSetupUpdate,
    workspace: ReviewWorkspace = Depends(get_review_workspace),
):
    workspace.update_setup(payload)
    return workspace.view()


@router.post("/setup/notes/{note_id}/toggle", response_model=ReviewWorkspaceView)
def toggle_note(note_id: int, workspace: ReviewWorkspace = Depends(get_review_workspace)):
    workspace.toggle_note(note_id)
    return workspace.view()


@router.post("/start", response_model=ReviewWorkspaceView)
def start_review(workspace: ReviewWorkspace = Depends(get_review_workspace)):
    workspace.start_review()
    return workspace.view()


@router.put("/answer", response_model=ReviewWorkspaceView)
def change_answer_text(
    payload: AnswerTextUpdate,
    workspace: ReviewWorkspace = Depends(get_review_workspace),
):
    workspace.change_answer_text(payload.text)
    return workspace.view()


@router.post("/answer/save", response_model=ReviewWorkspaceView)
def save_answer(workspace: ReviewWorkspace = Depends(get_review_workspace)):
    workspace.save_answer()
    return workspace.view()


@router.post("/navigate", response_model=ReviewWorkspaceView)
def navigate(payload: NavigateRequest, workspace: ReviewWorkspace = Depends(get_review_workspace)):
    workspace.navigate(payload.direction)
    return workspace.view()


@router.post("/rate", response_model=ReviewWorkspaceView)
def rate_difficulty(payload: RateRequest, workspace: ReviewWorkspace = Depends(get_review_workspace)):
    workspace.rate_difficulty(payload.level)
    return workspace.view()


@router.post("/ai-feedback", response_model=ReviewWorkspaceView)
def request_ai_feedback(workspace: ReviewWorkspace = Depends(get_review_workspace)):
    workspace.request_ai_feedback()
    return workspace.view()


@router.post("/hint", response_model=ReviewWorkspaceView)
def toggle_hint(workspace: ReviewWorkspace = Depends(get_review_workspace)):
    workspace.toggle_hint()
    return workspace.view()


@router.post("/finish", response_model=ReviewWorkspaceView)
def finish_review(workspace: ReviewWorkspace = Depends(get_review_workspace)):
    workspace.finish()
    return workspace.view()


@router.post("/reset", response_model=ReviewWorkspaceView)
def reset_review(workspace: ReviewWorkspace = Depends(get_review_workspace)):
    workspace.reset()
    return workspace.view()
