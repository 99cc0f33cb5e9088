"""Schemas for review sessions and the review workspace."""

from .review_schema import (
    ActiveReviewView,
    NoticeOut,
    QuestionDisplay,
    ReviewAnswerOut,
    ReviewSessionDetail,
    ReviewSessionOut,
    ReviewSessionPage,
    ReviewWorkspaceView,
    SessionStats,
    SetupView,
    UserAnswerData,
)
from .setup_schema import (
    AnswerTextUpdate,
    DifficultyFilter,
    NavigateRequest,
    NoteWithQuestions,
    OpenReviewRequest,
    QuestionCountLimit,
    QuestionTemplateOut,
    RateRequest,
    ReviewSetupOptions,
    ReviewSetupUpdate,
    SubjectOut,
)

__all__ = (
    "ActiveReviewView",
    "AnswerTextUpdate",
    "DifficultyFilter",
    "NavigateRequest",
    "NoteWithQuestions",
    "NoticeOut",
    "OpenReviewRequest",
    "QuestionCountLimit",
    "QuestionDisplay",
    "QuestionTemplateOut",
    "RateRequest",
    "ReviewAnswerOut",
    "ReviewSessionDetail",
    "ReviewSessionOut",
    "ReviewSessionPage",
    "ReviewSetupOptions",
    "ReviewSetupUpdate",
    "ReviewWorkspaceView",
    "SessionStats",
    "SetupView",
    "SubjectOut",
)
