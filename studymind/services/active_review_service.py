"""Per-question interaction loop of an active review session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from studymind.core.ai_gateway import AnswerReview
from studymind.models.note.question_model import Difficulty
from studymind.schemas.review import ActiveReviewView, QuestionDisplay, UserAnswerData
from studymind.services.notices import NoticeBoard
from studymind.services.review_errors import GatewayError, ReviewError, ValidationError
from studymind.services.review_repository import ReviewRepository
from studymind.services.review_session_service import SessionStart

logger = logging.getLogger(__name__)

# (review_answer_id, answer_text, note_id) -> review
AnswerReviewer = Callable[[Optional[int], str, Optional[int]], AnswerReview]

DEMO_FEEDBACK = (
    "This is sample AI feedback for demo mode. Sign in to get a real evaluation of your answer."
)


@dataclass(frozen=True)
class FeedbackTicket:
    """Identifies the answer slot an AI feedback request was issued for."""

    session_id: int
    question_index: int
    answer_id: Optional[int]
    answer_text: str
    note_id: Optional[int]


class ActiveReviewEngine:
    """Answer capture, save tracking, ratings and AI feedback for one session.

    Answers live in a dict keyed by question index. In-memory state only
    changes after the repository accepted the write.
    """

    def __init__(
        self,
        repository: ReviewRepository,
        start: SessionStart,
        *,
        notices: NoticeBoard | None = None,
        demo_mode: bool = False,
        answer_reviewer: AnswerReviewer | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        if not start.questions:
            raise ValidationError("empty_session", "This session has no questions.")

        self._repository = repository
        self._answer_reviewer = answer_reviewer
        self._clock = clock or self._utcnow
        self.notices = notices if notices is not None else NoticeBoard()
        self.demo_mode = demo_mode

        self.session_id = start.session.id
        self.questions: list[QuestionDisplay] = list(start.questions)
        self.answers: dict[int, UserAnswerData] = dict(start.answers)
        self._answer_ids: dict[int, int] = dict(start.answer_ids)
        self.session_stats = start.stats.model_copy()
        self.reviewed_count = start.reviewed_count

        self.current_question_index = 0
        self.answer_text = ""
        self.is_answer_saved = False
        self.is_saving = False
        self.show_hint = False
        self._dirty = False
        self._ai_in_flight: set[int] = set()
        self._ai_errors: dict[int, str] = {}

        self._load_question(self._clamp(start.question_index))

    # ------------------------------------------------------------------
    # Read-only helpers
    # ------------------------------------------------------------------
    @property
    def current_question(self) -> QuestionDisplay:
        return self.questions[self.current_question_index]

    @property
    def current_answer(self) -> Optional[UserAnswerData]:
        return self.answers.get(self.current_question_index)

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def is_ai_reviewing(self) -> bool:
        return self.current_question_index in self._ai_in_flight

    @property
    def answers_saved(self) -> int:
        return sum(1 for answer in self.answers.values() if answer.answer.strip())

    def can_request_ai_feedback(self) -> bool:
        entry = self.current_answer
        return (
            self.is_answer_saved
            and entry is not None
            and bool(entry.answer.strip())
            and not entry.ai_feedback
            and not self.is_ai_reviewing
        )

    # ------------------------------------------------------------------
    # Answer capture
    # ------------------------------------------------------------------
    def change_answer_text(self, text: str) -> None:
        self.answer_text = text or ""
        self.is_answer_saved = False
        self._dirty = True

    def save_current_answer(self, force: bool = False) -> bool:
        """Persist the trimmed answer of the current question.

        Returns ``True`` when the stored answer matches the screen afterwards,
        including the cases where no write was needed.
        """
        if not self.answer_text.strip() and not force and not self._dirty:
            return True
        if self.is_answer_saved and not force:
            return True

        index = self.current_question_index
        trimmed = self.answer_text.strip()
        entry = self.answers.get(index)
        if trimmed == (entry.answer if entry else ""):
            self.is_answer_saved = entry is not None or not trimmed
            self._dirty = False
            return True

        if not self.demo_mode:
            self.is_saving = True
            try:
                self._repository.update_answer_text(self._answer_id(index), trimmed)
            except ReviewError as exc:
                self.notices.report(exc)
                return False
            finally:
                self.is_saving = False

        self._upsert(index, answer=trimmed, timestamp=self._clock())
        self.is_answer_saved = True
        self._dirty = False
        return True

    def flush_for_completion(self) -> bool:
        """Force-save the current answer if it was edited, even when blank."""
        if not self._dirty:
            return True
        return self.save_current_answer(force=True)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------
    def navigate(self, direction: str) -> bool:
        if direction not in ("next", "prev"):
            raise ValidationError("invalid_direction", f"Unknown direction '{direction}'.")

        target = self.current_question_index + (1 if direction == "next" else -1)
        if target < 0 or target >= len(self.questions):
            return False

        if self._dirty and self.answer_text.strip():
            if not self.save_current_answer(force=True):
                self.notices.warning("Your answer could not be saved. Please try again before moving on.", "save_failed")
                return False

        self._load_question(target)
        return True

    def toggle_hint(self) -> bool:
        self.show_hint = not self.show_hint
        return self.show_hint

    # ------------------------------------------------------------------
    # Rating
    # ------------------------------------------------------------------
    def rate_difficulty(self, level: str | Difficulty) -> bool:
        try:
            level = Difficulty(level)
        except ValueError:
            self.notices.warning(f"Unknown difficulty '{level}'.", "invalid_difficulty")
            return False

        if not self.is_answer_saved and self.answer_text.strip():
            self.notices.warning("Please save your answer before rating.", "answer_not_saved")
            return False

        index = self.current_question_index
        entry = self.answers.get(index)
        previous = entry.difficulty_rating if entry else None

        if not self.demo_mode:
            try:
                self._repository.update_difficulty_rating(self._answer_id(index), level)
            except ReviewError as exc:
                self.notices.report(exc)
                return False

        if previous != level:
            self.session_stats.adjust(level, 1)
            if previous is not None:
                self.session_stats.adjust(previous, -1)
        if previous is None:
            self.reviewed_count += 1

        self._upsert(index, difficulty_rating=level, timestamp=self._clock())
        return True

    # ------------------------------------------------------------------
    # AI feedback
    # ------------------------------------------------------------------
    def request_ai_feedback(self) -> bool:
        ticket = self.begin_ai_feedback()
        if ticket is None:
            return False
        try:
            review = self.fetch_ai_feedback(ticket)
        except ReviewError as exc:
            return self.apply_ai_feedback(ticket, error=exc)
        return self.apply_ai_feedback(ticket, review)

    def begin_ai_feedback(self) -> Optional[FeedbackTicket]:
        """Validate the current question and reserve it for one feedback request."""
        index = self.current_question_index
        entry = self.answers.get(index)

        if entry is not None and entry.ai_feedback:
            self.notices.warning("AI feedback was already given for this question.", "ai_feedback_exists")
            return None
        if index in self._ai_in_flight:
            self.notices.warning("AI feedback is already on its way.", "operation_in_progress")
            return None
        if not self.is_answer_saved or entry is None or not entry.answer.strip():
            self.notices.warning("Save a non-empty answer before asking for AI feedback.", "answer_not_saved")
            return None

        self._ai_in_flight.add(index)
        self._ai_errors.pop(index, None)
        return FeedbackTicket(
            session_id=self.session_id,
            question_index=index,
            answer_id=self._answer_ids.get(index),
            answer_text=entry.answer,
            note_id=self.questions[index].note_id,
        )

    def fetch_ai_feedback(self, ticket: FeedbackTicket) -> AnswerReview:
        """Call the reviewer; touches no engine state so it can run unlocked."""
        if self.demo_mode:
            return AnswerReview(feedback=DEMO_FEEDBACK, is_correct=None)
        if self._answer_reviewer is None:
            raise GatewayError("ai_unavailable", "AI feedback is not available.")
        try:
            return self._answer_reviewer(ticket.answer_id, ticket.answer_text, ticket.note_id)
        except ReviewError:
            raise
        except Exception as exc:
            logger.exception("AI feedback request for question %s failed", ticket.question_index)
            raise GatewayError("ai_request_failed", "AI feedback failed. Please try again.") from exc

    def release_ai_feedback(self, ticket: FeedbackTicket) -> None:
        """Free the question reserved by *ticket* without storing anything."""
        self._ai_in_flight.discard(ticket.question_index)

    def apply_ai_feedback(
        self,
        ticket: FeedbackTicket,
        review: AnswerReview | None = None,
        *,
        error: ReviewError | None = None,
    ) -> bool:
        """Store a feedback result on the slot it was requested for."""
        self.release_ai_feedback(ticket)
        if ticket.session_id != self.session_id:
            logger.info("Dropping AI feedback for session %s (engine is on %s)", ticket.session_id, self.session_id)
            return False

        if error is not None or review is None:
            message = str(error) if error is not None else "The AI returned no feedback."
            self._ai_errors[ticket.question_index] = message
            logger.warning("AI feedback failed for question %s: %s", ticket.question_index, message)
            return False

        if not self.demo_mode:
            try:
                self._repository.store_ai_feedback(self._answer_id(ticket.question_index), review.feedback, review.is_correct)
            except ReviewError as exc:
                self.notices.report(exc)
                return False

        self._upsert(ticket.question_index, ai_feedback=review.feedback, is_correct=review.is_correct)
        if ticket.question_index != self.current_question_index:
            logger.info("AI feedback for question %s arrived after navigation; stored only", ticket.question_index)
        return True

    # ------------------------------------------------------------------
    # View model
    # ------------------------------------------------------------------
    def view(self) -> ActiveReviewView:
        entry = self.current_answer
        index = self.current_question_index
        return ActiveReviewView(
            current_question_index=index,
            total_questions=len(self.questions),
            question=self.current_question,
            answer_text=self.answer_text,
            is_answer_saved=self.is_answer_saved,
            difficulty_rating=entry.difficulty_rating if entry else None,
            ai_feedback=entry.ai_feedback if entry else None,
            is_correct=entry.is_correct if entry else None,
            ai_feedback_error=self._ai_errors.get(index),
            is_ai_reviewing=self.is_ai_reviewing,
            show_hint=self.show_hint,
            can_go_previous=index > 0,
            can_go_next=index < len(self.questions) - 1,
            can_request_ai_feedback=self.can_request_ai_feedback(),
            answers_saved=self.answers_saved,
            session_stats=self.session_stats.model_copy(),
            reviewed_count=self.reviewed_count,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _load_question(self, index: int) -> None:
        """Show question *index* with its stored answer (explicit transition, no hidden sync)."""
        entry = self.answers.get(index)
        self.current_question_index = index
        self.answer_text = entry.answer if entry else ""
        self.is_answer_saved = entry is not None
        self._dirty = False
        self.show_hint = False

    def _upsert(self, index: int, **changes) -> UserAnswerData:
        entry = self.answers.get(index) or UserAnswerData(question_index=index)
        entry = entry.model_copy(update=changes)
        self.answers[index] = entry
        return entry

    def _answer_id(self, index: int) -> int:
        answer_id = self._answer_ids.get(index)
        if answer_id is None:
            raise ValidationError("answer_slot_missing", "This question has no answer slot in the session.")
        return answer_id

    def _clamp(self, index: int) -> int:
        return min(max(index, 0), len(self.questions) - 1)

    @staticmethod
    def _utcnow() -> datetime:
        return datetime.now(timezone.utc)


__all__ = ["ActiveReviewEngine", "AnswerReviewer", "FeedbackTicket"]
