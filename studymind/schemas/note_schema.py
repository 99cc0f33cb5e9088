from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from studymind.models.note.question_model import Difficulty, QuestionType


class NoteBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=0)


class NoteCreate(NoteBase):
    tags: List[str] = Field(default_factory=list)
    subject_name: Optional[str] = Field(None, max_length=120)
    year_level: Optional[int] = Field(None, ge=1, le=4)
    generate_default_questions: bool = False


class NoteOut(BaseModel):
    id: int
    title: str
    content: str
    tags: List[str] = Field(default_factory=list)
    subject_id: Optional[int] = None
    year_level: Optional[int] = None
    summary: Optional[str] = None
    concepts: List[str] = Field(default_factory=list)
    has_embedding: bool = False
    question_count: int = 0
    created_at: datetime
    updated_at: datetime


class QuestionGenerateRequest(BaseModel):
    difficulty: Difficulty = Difficulty.MEDIUM
    question_type: QuestionType = QuestionType.SHORT
    is_default: bool = False


class QuestionGenerateResult(BaseModel):
    note_id: int
    created: int
