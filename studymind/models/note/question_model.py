"""Question templates generated for a note."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studymind.db.base_class import Base

if TYPE_CHECKING:
    from studymind.models.note.note_model import Note


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionType(str, enum.Enum):
    SHORT = "short"
    MCQ = "mcq"
    OPEN = "open"


class Question(Base):
    """Immutable from the review subsystem's point of view."""

    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    note_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("notes.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    hint: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    connects: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    difficulty: Mapped[Difficulty] = mapped_column(
        Enum(Difficulty, name="difficultylevel", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=Difficulty.MEDIUM,
    )
    question_type: Mapped[QuestionType] = mapped_column(
        Enum(QuestionType, name="questiontype", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=QuestionType.SHORT,
    )
    mastery_context: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Reference answer, used by the AI reviewer when present.
    answer: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    note: Mapped["Note"] = relationship(back_populates="questions")


__all__ = ["Difficulty", "Question", "QuestionType"]
