from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from studymind.models.note.question_model import Difficulty, QuestionType

DifficultyFilter = Literal["easy", "medium", "hard", "all"]
QuestionCountLimit = Literal["5", "10", "all"]


class QuestionTemplateOut(BaseModel):
    id: int
    note_id: int
    question: str
    hint: Optional[str] = None
    connects: List[str] = Field(default_factory=list)
    difficulty: Difficulty
    question_type: QuestionType = QuestionType.SHORT
    mastery_context: Optional[str] = None
    is_default: bool = True

    class Config:
        from_attributes = True


class NoteWithQuestions(BaseModel):
    id: int
    title: str
    tags: List[str] = Field(default_factory=list)
    subject_id: Optional[int] = None
    year_level: Optional[int] = None
    questions: List[QuestionTemplateOut] = Field(default_factory=list)

    class Config:
        from_attributes = True


class SubjectOut(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class ReviewSetupUpdate(BaseModel):
    """Partial update of the setup filters; omitted fields are left unchanged."""

    selected_notes: Optional[List[int]] = None
    difficulty: Optional[DifficultyFilter] = None
    question_type: Optional[QuestionType] = None
    question_count: Optional[QuestionCountLimit] = None
    generate_new_questions: Optional[bool] = None
    custom_difficulty: Optional[Difficulty] = None
    search_term: Optional[str] = None


class ReviewSetupOptions(BaseModel):
    notes: List[NoteWithQuestions]
    subjects: List[SubjectOut]
    search_results: List[NoteWithQuestions]


class OpenReviewRequest(BaseModel):
    retry_session_id: Optional[int] = Field(None, gt=0)


class AnswerTextUpdate(BaseModel):
    text: str = Field("", max_length=20000)


class NavigateRequest(BaseModel):
    direction: Literal["next", "prev"]


class RateRequest(BaseModel):
    level: Difficulty
