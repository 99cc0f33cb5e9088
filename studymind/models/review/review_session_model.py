"""Review sessions: one row per run through a set of questions."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Index, Integer, String, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studymind.db.base_class import Base

if TYPE_CHECKING:
    from studymind.models.review.review_answer_model import ReviewAnswer
    from studymind.models.user.user_model import User


class SessionStatus(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class ReviewSession(Base):
    __tablename__ = "review_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    session_name: Mapped[str] = mapped_column(String(255), nullable=False)
    selected_notes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    selected_difficulty: Mapped[str] = mapped_column(String(10), nullable=False, default="all")
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    session_status: Mapped[SessionStatus] = mapped_column(
        Enum(SessionStatus, name="reviewsessionstatus", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=SessionStatus.IN_PROGRESS,
        server_default=SessionStatus.IN_PROGRESS.value,
    )

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    questions_answered: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    questions_rated: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    easy_ratings: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    medium_ratings: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    hard_ratings: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="review_sessions")
    answers: Mapped[List["ReviewAnswer"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="ReviewAnswer.question_index",
    )

    __table_args__ = (
        # At most one in-progress session per user.
        Index(
            "uq_review_sessions_one_in_progress",
            "user_id",
            unique=True,
            sqlite_where=text("session_status = 'in_progress'"),
            postgresql_where=text("session_status = 'in_progress'"),
        ),
        Index("ix_review_sessions_user_started", "user_id", "started_at"),
    )


__all__ = ["ReviewSession", "SessionStatus"]
