"""Study notes and the subjects they are filed under."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studymind.db.base_class import Base

if TYPE_CHECKING:
    from studymind.models.note.question_model import Question
    from studymind.models.user.user_model import User


class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)

    user: Mapped["User"] = relationship(back_populates="subjects")
    notes: Mapped[List["Note"]] = relationship(back_populates="subject")

    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_subject_user_name"),)


class Note(Base):
    """A user note, optionally enriched by the AI gateway (tags, summary, embedding)."""

    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    subject_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    # 1 primary, 2 secondary, 3 tertiary, 4 professional
    year_level: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    concepts: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    embedding: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="notes")
    subject: Mapped[Optional[Subject]] = relationship(back_populates="notes")
    questions: Mapped[List["Question"]] = relationship(
        back_populates="note",
        cascade="all, delete-orphan",
        order_by="Question.id",
    )


__all__ = ["Note", "Subject"]
