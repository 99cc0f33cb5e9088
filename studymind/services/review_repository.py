"""Session repository: domain operations of the review subsystem mapped onto the database.

Every call opens its own short-lived SQLAlchemy session from the injected
factory and returns detached pydantic snapshots, so callers never hold ORM
objects across requests. Database failures surface as ``PersistenceError``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from studymind.crud import note_crud, review_crud
from studymind.models.note.question_model import Difficulty
from studymind.models.review.review_answer_model import ReviewAnswer
from studymind.models.review.review_session_model import SessionStatus
from studymind.schemas.review import (
    NoteWithQuestions,
    QuestionDisplay,
    ReviewAnswerOut,
    ReviewSessionOut,
    SessionStats,
    SubjectOut,
)
from studymind.services.review_errors import PersistenceError, ValidationError

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


class ReviewRepository:
    """Thin mapping layer scoped to a single authenticated user."""

    def __init__(self, session_factory: SessionFactory, user_id: int | None):
        self._session_factory = session_factory
        self.user_id = user_id

    # ------------------------------------------------------------------
    # Notes and subjects
    # ------------------------------------------------------------------
    def fetch_notes_with_questions(self) -> list[NoteWithQuestions]:
        with self._unit("fetch_notes") as db:
            notes = note_crud.list_notes_with_questions(db, self.user_id)
            return [NoteWithQuestions.model_validate(note) for note in notes]

    def list_subjects(self) -> list[SubjectOut]:
        with self._unit("list_subjects") as db:
            return [SubjectOut.model_validate(subject) for subject in note_crud.list_subjects(db, self.user_id)]

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    def create_session(
        self,
        *,
        session_name: str,
        selected_notes: Sequence[int],
        selected_difficulty: str,
        total_questions: int,
        started_at: datetime | None = None,
    ) -> ReviewSessionOut:
        try:
            with self._unit("create_session") as db:
                review_session = review_crud.create_session(
                    db,
                    self.user_id,
                    session_name=session_name,
                    selected_notes=selected_notes,
                    selected_difficulty=selected_difficulty,
                    total_questions=total_questions,
                    started_at=started_at or self._utcnow(),
                )
                logger.info(
                    "Review session %s created for user %s (%s questions)",
                    review_session.id,
                    self.user_id,
                    total_questions,
                )
                return ReviewSessionOut.model_validate(review_session)
        except PersistenceError as exc:
            if exc.code == "create_session_conflict":
                raise ValidationError(
                    "session_in_progress",
                    "You already have a review in progress. Resume or discard it first.",
                ) from exc
            raise

    def save_placeholder_answers(
        self, session_id: int, questions: Sequence[QuestionDisplay]
    ) -> list[ReviewAnswerOut]:
        """Create the empty answer rows ``0..len(questions)-1`` for a fresh session."""
        with self._unit("save_placeholders") as db:
            review_session = self._require_session(db, session_id)
            slots = [
                {
                    "note_id": question.note_id,
                    "note_title": question.note_title,
                    "question_text": question.question,
                    "hint": question.hint,
                    "connects": question.connects,
                    "mastery_context": question.mastery_context,
                    "original_difficulty": Difficulty(question.difficulty).value,
                }
                for question in questions
            ]
            answers = review_crud.create_placeholder_answers(db, review_session, slots)
            return [ReviewAnswerOut.model_validate(answer) for answer in answers]

    def get_session(self, session_id: int) -> ReviewSessionOut | None:
        with self._unit("get_session") as db:
            review_session = review_crud.get_session_for_user(db, self.user_id, session_id)
            return ReviewSessionOut.model_validate(review_session) if review_session else None

    def get_in_progress_session(self) -> ReviewSessionOut | None:
        with self._unit("get_in_progress_session") as db:
            review_session = review_crud.get_in_progress_session(db, self.user_id)
            return ReviewSessionOut.model_validate(review_session) if review_session else None

    def get_answers(self, session_id: int) -> list[ReviewAnswerOut]:
        """Answers of an owned session, ordered by ``question_index``."""
        with self._unit("get_answers") as db:
            self._require_session(db, session_id)
            return [ReviewAnswerOut.model_validate(answer) for answer in review_crud.list_answers(db, session_id)]

    def get_answer(self, answer_id: int) -> ReviewAnswerOut | None:
        with self._unit("get_answer") as db:
            answer = review_crud.get_answer_for_user(db, self.user_id, answer_id)
            return ReviewAnswerOut.model_validate(answer) if answer else None

    def complete_session(
        self,
        session_id: int,
        *,
        duration_seconds: int,
        questions_answered: int,
        questions_rated: int,
        stats: SessionStats,
        completed_at: datetime | None = None,
    ) -> ReviewSessionOut:
        with self._unit("complete_session") as db:
            review_session = self._require_session(db, session_id)
            review_session = review_crud.complete_session(
                db,
                review_session,
                completed_at=completed_at or self._utcnow(),
                duration_seconds=duration_seconds,
                questions_answered=questions_answered,
                questions_rated=questions_rated,
                ratings={
                    Difficulty.EASY: stats.easy,
                    Difficulty.MEDIUM: stats.medium,
                    Difficulty.HARD: stats.hard,
                },
            )
            logger.info(
                "Review session %s completed (%ss, answered=%s, rated=%s)",
                session_id,
                duration_seconds,
                questions_answered,
                questions_rated,
            )
            return ReviewSessionOut.model_validate(review_session)

    def abandon_session(self, session_id: int) -> ReviewSessionOut:
        with self._unit("abandon_session") as db:
            review_session = self._require_session(db, session_id)
            review_session = review_crud.mark_session_abandoned(db, review_session)
            logger.info("Review session %s abandoned by user %s", session_id, self.user_id)
            return ReviewSessionOut.model_validate(review_session)

    def list_sessions(
        self,
        *,
        status: SessionStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[ReviewSessionOut], int]:
        with self._unit("list_sessions") as db:
            items, total = review_crud.list_sessions(
                db, self.user_id, status=status, limit=limit, offset=offset
            )
            return [ReviewSessionOut.model_validate(item) for item in items], total

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------
    def update_answer_text(self, answer_id: int, text: str) -> ReviewAnswerOut:
        return self._update_answer("update_answer_text", answer_id, answer_text=text.strip())

    def update_difficulty_rating(self, answer_id: int, rating: Difficulty) -> ReviewAnswerOut:
        return self._update_answer("update_rating", answer_id, difficulty_rating=Difficulty(rating))

    def store_ai_feedback(self, answer_id: int, feedback: str, is_correct: bool | None) -> ReviewAnswerOut:
        return self._update_answer(
            "store_ai_feedback", answer_id, ai_response_text=feedback, is_correct=is_correct
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _update_answer(self, action: str, answer_id: int, **changes) -> ReviewAnswerOut:
        with self._unit(action) as db:
            answer = self._require_answer(db, answer_id)
            answer = review_crud.update_answer(db, answer, updated_at=self._utcnow(), **changes)
            return ReviewAnswerOut.model_validate(answer)

    def _require_session(self, db: Session, session_id: int):
        review_session = review_crud.get_session_for_user(db, self.user_id, session_id)
        if review_session is None:
            raise PersistenceError("session_not_found", "This review session could not be found.")
        return review_session

    def _require_answer(self, db: Session, answer_id: int) -> ReviewAnswer:
        answer = review_crud.get_answer_for_user(db, self.user_id, answer_id)
        if answer is None:
            raise PersistenceError("answer_not_found", "This answer could not be found.")
        return answer

    @contextmanager
    def _unit(self, action: str) -> Iterator[Session]:
        if self.user_id is None:
            raise ValidationError("not_authenticated", "You must be signed in to review.")

        db = self._session_factory()
        try:
            yield db
        except IntegrityError as exc:
            db.rollback()
            logger.warning("Review repository '%s' hit a constraint: %s", action, exc.orig)
            raise PersistenceError(f"{action}_conflict", "The change conflicts with existing data.") from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Review repository '%s' failed", action)
            raise PersistenceError(f"{action}_failed", "Could not reach the database. Please try again.") from exc
        finally:
            db.close()

    @staticmethod
    def _utcnow() -> datetime:
        return datetime.now(timezone.utc)


__all__ = ["ReviewRepository", "SessionFactory"]
