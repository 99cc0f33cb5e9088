from __future__ import annotations

from datetime import datetime
from typing import Iterable, Mapping

from sqlalchemy import func
from sqlalchemy.orm import Session

from studymind.models.note.question_model import Difficulty
from studymind.models.review.review_answer_model import ReviewAnswer
from studymind.models.review.review_session_model import ReviewSession, SessionStatus


def create_session(
    db: Session,
    user_id: int,
    *,
    session_name: str,
    selected_notes: Iterable[int],
    selected_difficulty: str,
    total_questions: int,
    started_at: datetime,
) -> ReviewSession:
    review_session = ReviewSession(
        user_id=user_id,
        session_name=session_name,
        selected_notes=list(selected_notes),
        selected_difficulty=selected_difficulty,
        total_questions=total_questions,
        session_status=SessionStatus.IN_PROGRESS,
        started_at=started_at,
    )
    db.add(review_session)
    db.commit()
    db.refresh(review_session)
    return review_session


def create_placeholder_answers(
    db: Session,
    review_session: ReviewSession,
    slots: Iterable[Mapping],
) -> list[ReviewAnswer]:
    """Insert one empty answer row per slot in a single batch."""
    answers = [
        ReviewAnswer(
            session_id=review_session.id,
            user_id=review_session.user_id,
            question_index=index,
            note_id=slot.get("note_id"),
            note_title=slot.get("note_title"),
            question_text=slot["question_text"],
            hint=slot.get("hint"),
            connects=list(slot.get("connects") or []),
            mastery_context=slot.get("mastery_context"),
            original_difficulty=slot.get("original_difficulty"),
            answer_text="",
        )
        for index, slot in enumerate(slots)
    ]
    db.add_all(answers)
    db.commit()
    return answers


def get_session_for_user(db: Session, user_id: int, session_id: int) -> ReviewSession | None:
    return (
        db.query(ReviewSession)
        .filter(ReviewSession.id == session_id, ReviewSession.user_id == user_id)
        .first()
    )


def get_in_progress_session(db: Session, user_id: int) -> ReviewSession | None:
    return (
        db.query(ReviewSession)
        .filter(
            ReviewSession.user_id == user_id,
            ReviewSession.session_status == SessionStatus.IN_PROGRESS,
        )
        .order_by(ReviewSession.started_at.desc(), ReviewSession.id.desc())
        .first()
    )


def list_answers(db: Session, session_id: int) -> list[ReviewAnswer]:
    return (
        db.query(ReviewAnswer)
        .filter(ReviewAnswer.session_id == session_id)
        .order_by(ReviewAnswer.question_index.asc())
        .all()
    )


def get_answer_for_user(db: Session, user_id: int, answer_id: int) -> ReviewAnswer | None:
    return (
        db.query(ReviewAnswer)
        .filter(ReviewAnswer.id == answer_id, ReviewAnswer.user_id == user_id)
        .first()
    )


def update_answer(db: Session, answer: ReviewAnswer, *, updated_at: datetime, **changes) -> ReviewAnswer:
    for field, value in changes.items():
        setattr(answer, field, value)
    answer.updated_at = updated_at
    db.add(answer)
    db.commit()
    db.refresh(answer)
    return answer


def complete_session(
    db: Session,
    review_session: ReviewSession,
    *,
    completed_at: datetime,
    duration_seconds: int,
    questions_answered: int,
    questions_rated: int,
    ratings: Mapping[Difficulty, int],
) -> ReviewSession:
    review_session.session_status = SessionStatus.COMPLETED
    review_session.completed_at = completed_at
    review_session.duration_seconds = duration_seconds
    review_session.questions_answered = questions_answered
    review_session.questions_rated = questions_rated
    review_session.easy_ratings = ratings.get(Difficulty.EASY, 0)
    review_session.medium_ratings = ratings.get(Difficulty.MEDIUM, 0)
    review_session.hard_ratings = ratings.get(Difficulty.HARD, 0)
    db.add(review_session)
    db.commit()
    db.refresh(review_session)
    return review_session


def mark_session_abandoned(db: Session, review_session: ReviewSession) -> ReviewSession:
    review_session.session_status = SessionStatus.ABANDONED
    db.add(review_session)
    db.commit()
    db.refresh(review_session)
    return review_session


def list_sessions(
    db: Session,
    user_id: int,
    *,
    status: SessionStatus | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[ReviewSession], int]:
    """Sessions newest first, plus the total count for pagination."""
    query = db.query(ReviewSession).filter(ReviewSession.user_id == user_id)
    if status is not None:
        query = query.filter(ReviewSession.session_status == status)

    total = query.with_entities(func.count(ReviewSession.id)).scalar() or 0
    items = (
        query.order_by(ReviewSession.started_at.desc(), ReviewSession.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, int(total)


__all__ = [
    "complete_session",
    "create_placeholder_answers",
    "create_session",
    "get_answer_for_user",
    "get_in_progress_session",
    "get_session_for_user",
    "list_answers",
    "list_sessions",
    "mark_session_abandoned",
    "update_answer",
]
