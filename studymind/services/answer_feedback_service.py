from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studymind.core.ai_gateway import AIGateway, AnswerReview
from studymind.crud import note_crud, review_crud
from studymind.services.review_errors import PersistenceError, ValidationError

logger = logging.getLogger(__name__)


class AnswerFeedbackService:
    """Asks the AI gateway to evaluate a stored review answer against its note."""

    def __init__(self, db: Session, user_id: int, gateway: AIGateway):
        self.db = db
        self.user_id = user_id
        self.gateway = gateway

    def review_answer(self, review_answer_id: int | None, answer_text: str, note_id: int | None) -> AnswerReview:
        if not (answer_text or "").strip():
            raise ValidationError("empty_answer", "There is no answer to review.")

        question_text, note_content, reference = self._load_context(review_answer_id, note_id)
        if not question_text:
            raise ValidationError("answer_not_found", "The answer to review could not be found.")

        return self.gateway.review_answer(
            question=question_text,
            answer=answer_text.strip(),
            note_content=note_content,
            reference_answer=reference,
        )

    def _load_context(self, review_answer_id: int | None, note_id: int | None) -> tuple[str, str, str | None]:
        try:
            answer = (
                review_crud.get_answer_for_user(self.db, self.user_id, review_answer_id)
                if review_answer_id is not None
                else None
            )
            note = note_crud.get_note_for_user(self.db, self.user_id, note_id) if note_id is not None else None
            template = (
                note_crud.find_question_by_text(self.db, note.id, answer.question_text)
                if note is not None and answer is not None
                else None
            )
        except SQLAlchemyError as exc:
            logger.exception("Could not load context for answer %s", review_answer_id)
            raise PersistenceError("load_answer_context_failed", "Could not load the note for this answer.") from exc

        question_text = answer.question_text if answer else ""
        # Notes can be deleted after the session started; the snapshot still carries some context.
        if note is not None:
            note_content = note.content
        else:
            note_content = (answer.mastery_context or "") if answer else ""
        reference = template.answer if template else None
        return question_text, note_content, reference


__all__ = ["AnswerFeedbackService"]
