"""Utility helpers for test factories."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable

from studymind.core.ai_gateway import AIGateway, AnswerReview, ContentAnalysis
from studymind.models.note.note_model import Note, Subject
from studymind.models.note.question_model import Difficulty, Question, QuestionType
from studymind.models.user.user_model import User
from studymind.schemas.review import QuestionDisplay
from studymind.services.review_errors import GatewayError
from studymind.services.review_setup_service import BuiltSession


def create_user(db, **kwargs) -> User:
    defaults = {
        "username": "user",
        "email": "user@example.com",
        "hashed_password": "x",
        "is_active": True,
    }
    defaults.update(kwargs)
    user = User(**defaults)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_subject(db, user_id: int, name: str = "Biology") -> Subject:
    subject = Subject(user_id=user_id, name=name)
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return subject


def create_note_with_questions(
    db,
    user_id: int,
    *,
    title: str = "Cells",
    content: str = "Cells are the basic unit of life.",
    difficulties: Iterable[str] = ("easy", "easy", "easy", "hard", "hard"),
    tags: list[str] | None = None,
    subject_id: int | None = None,
    year_level: int | None = None,
    is_default: bool = True,
) -> Note:
    note = Note(
        user_id=user_id,
        title=title,
        content=content,
        tags=tags or [],
        subject_id=subject_id,
        year_level=year_level,
    )
    db.add(note)
    db.flush()
    for index, difficulty in enumerate(difficulties):
        add_question(db, note, difficulty, text=f"{title} question {index + 1}?", is_default=is_default)
    db.commit()
    db.refresh(note)
    return note


def add_question(db, note: Note, difficulty: str, *, text: str, is_default: bool = True) -> Question:
    question = Question(
        note_id=note.id,
        user_id=note.user_id,
        question=text,
        hint=f"Think about {note.title.lower()}",
        connects=["biology"],
        difficulty=Difficulty(difficulty),
        question_type=QuestionType.SHORT,
        mastery_context=f"Explains {note.title.lower()}",
        answer=f"Reference for {text}",
        is_default=is_default,
    )
    db.add(question)
    db.flush()
    return question


def display_questions(note: Note, count: int | None = None) -> list[QuestionDisplay]:
    questions = note.questions if count is None else note.questions[:count]
    return [
        QuestionDisplay(
            id=str(question.id),
            note_id=note.id,
            note_title=note.title,
            question=question.question,
            hint=question.hint,
            connects=list(question.connects),
            difficulty=question.difficulty,
            mastery_context=question.mastery_context,
        )
        for question in questions
    ]


def build_session(note: Note, count: int | None = None, name: str = "Biology 07-MAR-2026 2:00 PM") -> BuiltSession:
    return BuiltSession(
        questions=display_questions(note, count),
        session_name=name,
        selected_notes=[note.id],
        selected_difficulty="all",
    )


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 7, 14, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


class FakeGateway(AIGateway):
    """Deterministic gateway; no network."""

    def __init__(self, *, fail_questions: bool = False, fail_review: bool = False):
        super().__init__(None, use_remote_embeddings=False)
        self.fail_questions = fail_questions
        self.fail_review = fail_review
        self.question_calls: list[tuple[str, Difficulty, QuestionType, int]] = []
        self.review_calls: list[dict] = []

    @property
    def is_available(self) -> bool:
        return True

    def analyze_content(self, text: str, title: str) -> ContentAnalysis:
        return ContentAnalysis(
            tags=["biology", "cells"],
            summary=f"Summary of {title}",
            concepts=["cell membrane"],
            relationships=[],
        )

    def generate_questions(self, *, title, content, difficulty, question_type, count=5) -> list[dict]:
        self.question_calls.append((title, Difficulty(difficulty), QuestionType(question_type), count))
        if self.fail_questions:
            raise GatewayError("ai_request_failed", "The AI service is unavailable. Please try again.")
        return [
            {
                "question": f"Generated {title} question {index + 1}?",
                "hint": "Generated hint",
                "connects": ["generated"],
                "mastery_context": "Generated context",
                "answer": "Generated answer",
                "difficulty": Difficulty(difficulty),
            }
            for index in range(count)
        ]

    def review_answer(self, *, question, answer, note_content, reference_answer=None) -> AnswerReview:
        self.review_calls.append(
            {
                "question": question,
                "answer": answer,
                "note_content": note_content,
                "reference_answer": reference_answer,
            }
        )
        if self.fail_review:
            raise GatewayError("ai_request_failed", "The AI service is unavailable. Please try again.")
        return AnswerReview(feedback=f"Feedback on '{answer}'", is_correct=True)
