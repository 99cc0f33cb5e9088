"""Note ingestion: store the note, enrich it through the AI gateway, generate questions."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from studymind.core.ai_gateway import AIGateway
from studymind.crud import note_crud
from studymind.models.note.note_model import Note
from studymind.models.note.question_model import Difficulty, Question, QuestionType
from studymind.schemas.note_schema import NoteCreate, NoteOut
from studymind.services.review_errors import GatewayError, NotFoundError

logger = logging.getLogger(__name__)


class NoteService:
    DEFAULT_QUESTION_COUNT = 5

    def __init__(self, db: Session, user_id: int, gateway: AIGateway):
        self.db = db
        self.user_id = user_id
        self.gateway = gateway

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def create_note(self, payload: NoteCreate) -> Note:
        subject_id = None
        if payload.subject_name and payload.subject_name.strip():
            subject_id = note_crud.get_or_create_subject(self.db, self.user_id, payload.subject_name).id

        note = note_crud.create_note(
            self.db,
            self.user_id,
            title=payload.title,
            content=payload.content,
            tags=payload.tags,
            subject_id=subject_id,
            year_level=payload.year_level,
        )
        logger.info("Note %s created for user %s", note.id, self.user_id)

        note = self.enrich_note(note)
        if payload.generate_default_questions:
            try:
                self.generate_questions(note.id, Difficulty.MEDIUM, QuestionType.SHORT, is_default=True)
            except GatewayError as exc:
                logger.warning("Default questions for note %s were not generated: %s", note.id, exc.code)
        return note

    def enrich_note(self, note: Note) -> Note:
        """Attach an embedding and, when the AI is reachable, tags, summary and concepts."""
        embedding = self.gateway.generate_embedding(note.content, note.title)

        analysis = None
        if self.gateway.is_available:
            try:
                analysis = self.gateway.analyze_content(note.content, note.title)
            except GatewayError as exc:
                logger.warning("Content analysis failed for note %s: %s", note.id, exc.code)

        return note_crud.apply_note_analysis(
            self.db,
            note,
            tags=analysis.tags if analysis else None,
            summary=analysis.summary if analysis else None,
            concepts=analysis.concepts if analysis else None,
            embedding=embedding,
        )

    def list_notes(self) -> list[NoteOut]:
        return [self.to_out(note) for note in note_crud.list_notes(self.db, self.user_id)]

    def generate_questions(
        self,
        note_id: int,
        difficulty: Difficulty,
        question_type: QuestionType,
        *,
        is_default: bool = False,
        count: int = DEFAULT_QUESTION_COUNT,
    ) -> list[Question]:
        note = note_crud.get_note_for_user(self.db, self.user_id, note_id)
        if note is None:
            raise NotFoundError("note_not_found", "Note not found.")

        items = self.gateway.generate_questions(
            title=note.title,
            content=note.content,
            difficulty=difficulty,
            question_type=question_type,
            count=count,
        )
        questions = note_crud.create_questions(
            self.db,
            note,
            items,
            difficulty=Difficulty(difficulty),
            question_type=QuestionType(question_type),
            is_default=is_default,
        )
        logger.info("Generated %s questions for note %s", len(questions), note.id)
        return questions

    @staticmethod
    def to_out(note: Note) -> NoteOut:
        return NoteOut(
            id=note.id,
            title=note.title,
            content=note.content,
            tags=list(note.tags or []),
            subject_id=note.subject_id,
            year_level=note.year_level,
            summary=note.summary,
            concepts=list(note.concepts or []),
            has_embedding=bool(note.embedding),
            question_count=len(note.questions),
            created_at=note.created_at,
            updated_at=note.updated_at,
        )


__all__ = ["NoteService"]
