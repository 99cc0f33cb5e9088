from __future__ import annotations

from typing import Iterable, Sequence

from sqlalchemy.orm import Session, selectinload

from studymind.models.note.note_model import Note, Subject
from studymind.models.note.question_model import Difficulty, Question, QuestionType


def list_notes(db: Session, user_id: int) -> list[Note]:
    return (
        db.query(Note)
        .options(selectinload(Note.questions))
        .filter(Note.user_id == user_id)
        .order_by(Note.updated_at.desc(), Note.id.desc())
        .all()
    )


def list_notes_with_questions(db: Session, user_id: int) -> list[Note]:
    """Notes owned by the user that have at least one question template."""
    return (
        db.query(Note)
        .options(selectinload(Note.questions))
        .filter(Note.user_id == user_id, Note.questions.any())
        .order_by(Note.title.asc(), Note.id.asc())
        .all()
    )


def get_note_for_user(db: Session, user_id: int, note_id: int) -> Note | None:
    return (
        db.query(Note)
        .filter(Note.id == note_id, Note.user_id == user_id)
        .first()
    )


def find_question_by_text(db: Session, note_id: int, text: str) -> Question | None:
    return (
        db.query(Question)
        .filter(Question.note_id == note_id, Question.question == text)
        .order_by(Question.id.desc())
        .first()
    )


def list_subjects(db: Session, user_id: int) -> list[Subject]:
    return (
        db.query(Subject)
        .filter(Subject.user_id == user_id)
        .order_by(Subject.name.asc())
        .all()
    )


def get_or_create_subject(db: Session, user_id: int, name: str) -> Subject:
    cleaned = " ".join(name.split())
    subject = (
        db.query(Subject)
        .filter(Subject.user_id == user_id, Subject.name == cleaned)
        .first()
    )
    if subject:
        return subject

    subject = Subject(user_id=user_id, name=cleaned)
    db.add(subject)
    db.flush()
    return subject


def create_note(
    db: Session,
    user_id: int,
    *,
    title: str,
    content: str,
    tags: Iterable[str] = (),
    subject_id: int | None = None,
    year_level: int | None = None,
) -> Note:
    note = Note(
        user_id=user_id,
        title=title.strip() or "Untitled",
        content=content,
        tags=[tag.strip() for tag in tags if tag and tag.strip()],
        subject_id=subject_id,
        year_level=year_level,
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


def apply_note_analysis(
    db: Session,
    note: Note,
    *,
    tags: Sequence[str] | None = None,
    summary: str | None = None,
    concepts: Sequence[str] | None = None,
    embedding: Sequence[float] | None = None,
) -> Note:
    if tags:
        merged = list(note.tags or [])
        for tag in tags:
            if tag not in merged:
                merged.append(tag)
        note.tags = merged
    if summary is not None:
        note.summary = summary
    if concepts is not None:
        note.concepts = list(concepts)
    if embedding is not None:
        note.embedding = list(embedding)

    db.add(note)
    db.commit()
    db.refresh(note)
    return note


def create_questions(
    db: Session,
    note: Note,
    items: Iterable[dict],
    *,
    difficulty: Difficulty,
    question_type: QuestionType,
    is_default: bool,
) -> list[Question]:
    questions = [
        Question(
            note_id=note.id,
            user_id=note.user_id,
            question=item["question"],
            hint=item.get("hint"),
            connects=list(item.get("connects") or []),
            difficulty=item.get("difficulty") or difficulty,
            question_type=question_type,
            mastery_context=item.get("mastery_context"),
            answer=item.get("answer"),
            is_default=is_default,
        )
        for item in items
    ]
    db.add_all(questions)
    db.commit()
    return questions


__all__ = [
    "apply_note_analysis",
    "create_note",
    "create_questions",
    "find_question_by_text",
    "get_note_for_user",
    "get_or_create_subject",
    "list_notes",
    "list_notes_with_questions",
    "list_subjects",
]
