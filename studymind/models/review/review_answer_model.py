"""Per-question answer slots of a review session."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studymind.db.base_class import Base
from studymind.models.note.question_model import Difficulty

if TYPE_CHECKING:
    from studymind.models.review.review_session_model import ReviewSession


class ReviewAnswer(Base):
    """Snapshot of the asked question plus the user's answer, rating and AI feedback.

    Rows are inserted as empty placeholders when the session starts and then
    updated in place. The question fields are copied from the template so later
    edits to the note do not rewrite history.
    """

    __tablename__ = "review_answers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    session_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("review_sessions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    question_index: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    note_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("notes.id", ondelete="SET NULL"), nullable=True
    )
    note_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    hint: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    connects: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    mastery_context: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    original_difficulty: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    answer_text: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    difficulty_rating: Mapped[Optional[Difficulty]] = mapped_column(
        Enum(Difficulty, name="difficultylevel", values_callable=lambda obj: [e.value for e in obj]),
        nullable=True,
    )
    ai_response_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_correct: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    session: Mapped["ReviewSession"] = relationship(back_populates="answers")

    __table_args__ = (
        UniqueConstraint("session_id", "question_index", name="uq_review_answer_slot"),
    )


__all__ = ["ReviewAnswer"]
