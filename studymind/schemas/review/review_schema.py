from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from studymind.models.note.question_model import Difficulty
from studymind.models.review.review_session_model import SessionStatus


class ReviewSessionOut(BaseModel):
    id: int
    user_id: int
    session_name: str
    selected_notes: List[int] = Field(default_factory=list)
    selected_difficulty: str
    total_questions: int
    session_status: SessionStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    questions_answered: int = 0
    questions_rated: int = 0
    easy_ratings: int = 0
    medium_ratings: int = 0
    hard_ratings: int = 0

    class Config:
        from_attributes = True


class ReviewAnswerOut(BaseModel):
    id: int
    session_id: int
    question_index: int
    user_id: int
    note_id: Optional[int] = None
    note_title: Optional[str] = None
    question_text: str
    hint: Optional[str] = None
    connects: List[str] = Field(default_factory=list)
    mastery_context: Optional[str] = None
    original_difficulty: Optional[str] = None
    answer_text: str = ""
    difficulty_rating: Optional[Difficulty] = None
    ai_response_text: Optional[str] = None
    is_correct: Optional[bool] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReviewSessionDetail(BaseModel):
    session: ReviewSessionOut
    answers: List[ReviewAnswerOut]


class ReviewSessionPage(BaseModel):
    items: List[ReviewSessionOut]
    total: int
    page: int
    page_size: int


class QuestionDisplay(BaseModel):
    """A question as asked inside a session.

    ``id`` is the template id for fresh sessions and ``<session>-<index>``
    when the question was rebuilt from a stored answer snapshot.
    """

    id: str
    note_id: Optional[int] = None
    note_title: Optional[str] = None
    question: str
    hint: Optional[str] = None
    connects: List[str] = Field(default_factory=list)
    difficulty: Difficulty = Difficulty.MEDIUM
    mastery_context: Optional[str] = None


class UserAnswerData(BaseModel):
    question_index: int
    answer: str = ""
    timestamp: Optional[datetime] = None
    difficulty_rating: Optional[Difficulty] = None
    ai_feedback: Optional[str] = None
    is_correct: Optional[bool] = None


class SessionStats(BaseModel):
    easy: int = 0
    medium: int = 0
    hard: int = 0

    def adjust(self, level: Difficulty, delta: int) -> None:
        field = Difficulty(level).value
        setattr(self, field, max(getattr(self, field) + delta, 0))


class NoticeOut(BaseModel):
    level: str
    message: str
    code: Optional[str] = None
    created_at: datetime


class ActiveReviewView(BaseModel):
    current_question_index: int
    total_questions: int
    question: QuestionDisplay
    answer_text: str
    is_answer_saved: bool
    difficulty_rating: Optional[Difficulty] = None
    ai_feedback: Optional[str] = None
    is_correct: Optional[bool] = None
    ai_feedback_error: Optional[str] = None
    is_ai_reviewing: bool = False
    show_hint: bool = False
    can_go_previous: bool
    can_go_next: bool
    can_request_ai_feedback: bool
    answers_saved: int
    session_stats: SessionStats
    reviewed_count: int


class SetupView(BaseModel):
    selected_notes: List[int]
    difficulty_filter: str
    question_type: str
    question_count: str
    generate_new_questions: bool
    custom_difficulty: str
    search_term: str
    available_question_count: int


class ReviewWorkspaceView(BaseModel):
    phase: str
    demo_mode: bool
    session: Optional[ReviewSessionOut] = None
    resume_prompt: Optional[ReviewSessionOut] = None
    setup: SetupView
    active: Optional[ActiveReviewView] = None
    elapsed_seconds: int = 0
    formatted_duration: str = "0s"
    reviewed_count: int = 0
    session_stats: SessionStats = Field(default_factory=SessionStats)
    completion_persisted: Optional[bool] = None
    notices: List[NoticeOut] = Field(default_factory=list)
