"""Review session lifecycle: creation, resume, retry, completion."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional, Sequence

from studymind.models.note.question_model import Difficulty
from studymind.models.review.review_session_model import SessionStatus
from studymind.schemas.review import (
    QuestionDisplay,
    ReviewAnswerOut,
    ReviewSessionOut,
    SessionStats,
    UserAnswerData,
)
from studymind.services.notices import NoticeBoard
from studymind.services.review_errors import PersistenceError, ReviewError, ValidationError
from studymind.services.review_repository import ReviewRepository
from studymind.services.review_setup_service import BuiltSession
from studymind.utils.review_format import as_utc, build_retry_name, format_duration

logger = logging.getLogger(__name__)

DEMO_SESSION_ID = 0


class ReviewPhase(str, enum.Enum):
    NO_SESSION = "no_session"
    SELECTING = "selecting"
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass
class SessionStart:
    """Everything the active review engine needs to take over a session."""

    session: ReviewSessionOut
    questions: list[QuestionDisplay]
    answer_ids: dict[int, int] = field(default_factory=dict)
    answers: dict[int, UserAnswerData] = field(default_factory=dict)
    stats: SessionStats = field(default_factory=SessionStats)
    reviewed_count: int = 0
    question_index: int = 0


class ReviewSessionController:
    """Owns the session phase and the ``ReviewSession`` row of the current run.

    Public methods never raise review errors: failures are turned into
    notices and the phase falls back to ``SELECTING`` where appropriate.
    """

    def __init__(
        self,
        repository: ReviewRepository,
        *,
        notices: NoticeBoard | None = None,
        demo_mode: bool = False,
        clock: Callable[[], datetime] | None = None,
    ):
        self._repository = repository
        self.notices = notices if notices is not None else NoticeBoard()
        self.demo_mode = demo_mode
        self._clock = clock or self._utcnow

        self.phase = ReviewPhase.NO_SESSION
        self.session: Optional[ReviewSessionOut] = None
        self.pending_resume: Optional[ReviewSessionOut] = None
        self.completion_persisted: Optional[bool] = None
        self._stopped_at: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Entering the review page
    # ------------------------------------------------------------------
    def enter_selection(self) -> Optional[ReviewSessionOut]:
        """Move to ``SELECTING`` and look for an in-progress session to offer for resume."""
        self._fallback_to_selection()
        self.pending_resume = None
        if self.demo_mode:
            return None

        try:
            in_progress = self._repository.get_in_progress_session()
        except ReviewError as exc:
            self.notices.report(exc)
            return None

        if in_progress is not None:
            logger.info("User %s has in-progress session %s", self._repository.user_id, in_progress.id)
        self.pending_resume = in_progress
        return in_progress

    # ------------------------------------------------------------------
    # Selecting -> Active
    # ------------------------------------------------------------------
    def start_new(self, built: BuiltSession) -> Optional[SessionStart]:
        if self.demo_mode:
            session = self._demo_session(
                built.session_name, built.selected_notes, built.selected_difficulty, len(built.questions)
            )
            self.notices.info("Demo mode: this session is not saved.")
            return self._activate(session, built.questions, ())

        try:
            self._ensure_no_session_in_progress()
            session, rows = self._create_with_placeholders(
                session_name=built.session_name,
                selected_notes=built.selected_notes,
                selected_difficulty=built.selected_difficulty,
                questions=built.questions,
            )
        except ReviewError as exc:
            self.notices.report(exc)
            self._fallback_to_selection()
            return None

        self.notices.success(f"Review session '{session.session_name}' started.")
        return self._activate(session, built.questions, rows)

    def confirm_resume(self) -> Optional[SessionStart]:
        if self.demo_mode:
            self.notices.warning("Resuming sessions is not available in demo mode.", "demo_mode")
            self._fallback_to_selection()
            return None

        pending = self.pending_resume
        if pending is None:
            self.notices.warning("There is no session to resume.", "no_session_to_resume")
            self._fallback_to_selection()
            return None

        try:
            rows = self._repository.get_answers(pending.id)
        except ReviewError as exc:
            self.notices.report(exc)
            self._fallback_to_selection()
            return None

        if not rows:
            self.notices.warning("No questions found in the session to resume.", "empty_session")
            self._fallback_to_selection()
            return None

        questions = [self._question_from_answer(pending.id, row) for row in rows]
        answers, stats, reviewed_count = self._rebuild_answers(rows)
        start = self._activate(
            pending,
            questions,
            rows,
            answers=answers,
            stats=stats,
            reviewed_count=reviewed_count,
            question_index=self._resume_index(rows),
        )
        self.pending_resume = None
        self.notices.success(f"Resumed '{pending.session_name}'.")
        logger.info("Session %s resumed at question %s", pending.id, start.question_index)
        return start

    def discard_resume(self) -> bool:
        """Abandon the pending in-progress session so a new one can be started."""
        pending = self.pending_resume
        if pending is None:
            return False

        try:
            self._repository.abandon_session(pending.id)
        except ReviewError as exc:
            self.notices.report(exc)
            return False

        self.pending_resume = None
        self.phase = ReviewPhase.SELECTING
        self.notices.info(f"Session '{pending.session_name}' discarded.")
        return True

    def retry(self, session_id: int) -> Optional[SessionStart]:
        """Start a new session asking exactly the questions of *session_id* again."""
        if self.demo_mode:
            self.notices.warning("Retrying sessions is not available in demo mode.", "demo_mode")
            self._fallback_to_selection()
            return None

        try:
            original = self._repository.get_session(session_id)
            if original is None:
                raise ValidationError("session_not_found", "The session to retry could not be found.")
            rows = self._repository.get_answers(session_id)
            if not rows:
                raise ValidationError("empty_session", "No questions found in the session to retry.")

            self._ensure_no_session_in_progress()
            questions = [self._question_from_answer(original.id, row) for row in rows]
            session, placeholders = self._create_with_placeholders(
                session_name=build_retry_name(original.session_name, original.started_at),
                selected_notes=original.selected_notes,
                selected_difficulty=original.selected_difficulty,
                questions=questions,
            )
        except ReviewError as exc:
            self.notices.report(exc)
            self._fallback_to_selection()
            return None

        logger.info("Session %s retried as session %s", session_id, session.id)
        self.notices.success(f"Retrying '{original.session_name}'.")
        return self._activate(session, questions, placeholders)

    # ------------------------------------------------------------------
    # Active -> Completed
    # ------------------------------------------------------------------
    def complete(
        self,
        answers: Mapping[int, UserAnswerData],
        stats: SessionStats,
        reviewed_count: int,
    ) -> bool:
        """Write the aggregates and stop the timer.

        The phase becomes ``COMPLETED`` even when the write fails; the
        divergence is logged and reported, not retried.
        """
        if self.phase != ReviewPhase.ACTIVE or self.session is None:
            self.notices.warning("There is no active session to finish.", "no_active_session")
            return False

        now = self._clock()
        duration = self.elapsed_seconds(now)
        self._stopped_at = now
        self.phase = ReviewPhase.COMPLETED
        questions_answered = sum(1 for answer in answers.values() if answer.answer.strip())

        if self.demo_mode:
            self.session = self.session.model_copy(
                update={
                    "session_status": SessionStatus.COMPLETED,
                    "completed_at": now,
                    "duration_seconds": duration,
                    "questions_answered": questions_answered,
                    "questions_rated": reviewed_count,
                    "easy_ratings": stats.easy,
                    "medium_ratings": stats.medium,
                    "hard_ratings": stats.hard,
                }
            )
            self.completion_persisted = True
            self.notices.success("Review complete (demo mode, not saved).")
            return True

        try:
            self.session = self._repository.complete_session(
                self.session.id,
                duration_seconds=duration,
                questions_answered=questions_answered,
                questions_rated=reviewed_count,
                stats=stats,
                completed_at=now,
            )
        except ReviewError as exc:
            logger.error(
                "Session %s finished locally but the server record was not updated (%s)",
                self.session.id,
                exc.code,
            )
            self.completion_persisted = False
            self.notices.error("Your review is finished but the results could not be saved.", exc.code)
            return False

        self.completion_persisted = True
        self.notices.success("Review complete!")
        return True

    def reset(self) -> None:
        self.session = None
        self.pending_resume = None
        self.completion_persisted = None
        self._stopped_at = None
        self.phase = ReviewPhase.SELECTING

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------
    def elapsed_seconds(self, now: datetime | None = None) -> int:
        if self.session is None:
            return 0
        end = self._stopped_at or now or self._clock()
        return max(int((as_utc(end) - as_utc(self.session.started_at)).total_seconds()), 0)

    @property
    def formatted_duration(self) -> str:
        return format_duration(self.elapsed_seconds())

    @property
    def is_timer_running(self) -> bool:
        return self.phase == ReviewPhase.ACTIVE and self._stopped_at is None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _ensure_no_session_in_progress(self) -> None:
        in_progress = self._repository.get_in_progress_session()
        if in_progress is not None:
            self.pending_resume = in_progress
            raise ValidationError(
                "session_in_progress",
                "You already have a review in progress. Resume or discard it first.",
            )

    def _create_with_placeholders(
        self,
        *,
        session_name: str,
        selected_notes: Sequence[int],
        selected_difficulty: str,
        questions: Sequence[QuestionDisplay],
    ) -> tuple[ReviewSessionOut, list[ReviewAnswerOut]]:
        session = self._repository.create_session(
            session_name=session_name,
            selected_notes=selected_notes,
            selected_difficulty=selected_difficulty,
            total_questions=len(questions),
            started_at=self._clock(),
        )
        try:
            rows = self._repository.save_placeholder_answers(session.id, questions)
        except PersistenceError:
            self._abandon_orphan(session.id)
            raise
        return session, rows

    def _abandon_orphan(self, session_id: int) -> None:
        try:
            self._repository.abandon_session(session_id)
        except ReviewError as exc:
            logger.error("Session %s has no answer rows and could not be abandoned (%s)", session_id, exc.code)

    def _activate(
        self,
        session: ReviewSessionOut,
        questions: Sequence[QuestionDisplay],
        rows: Sequence[ReviewAnswerOut],
        *,
        answers: dict[int, UserAnswerData] | None = None,
        stats: SessionStats | None = None,
        reviewed_count: int = 0,
        question_index: int = 0,
    ) -> SessionStart:
        self.session = session
        self.phase = ReviewPhase.ACTIVE
        self.completion_persisted = None
        self._stopped_at = None
        logger.info("Session %s active with %s questions", session.id, len(questions))
        return SessionStart(
            session=session,
            questions=list(questions),
            answer_ids={row.question_index: row.id for row in rows},
            answers=answers or {},
            stats=stats or SessionStats(),
            reviewed_count=reviewed_count,
            question_index=question_index,
        )

    def _fallback_to_selection(self) -> None:
        self.session = None
        self.completion_persisted = None
        self._stopped_at = None
        self.phase = ReviewPhase.SELECTING

    def _demo_session(
        self, session_name: str, selected_notes: Sequence[int], selected_difficulty: str, total: int
    ) -> ReviewSessionOut:
        return ReviewSessionOut(
            id=DEMO_SESSION_ID,
            user_id=self._repository.user_id or 0,
            session_name=session_name,
            selected_notes=list(selected_notes),
            selected_difficulty=selected_difficulty,
            total_questions=total,
            session_status=SessionStatus.IN_PROGRESS,
            started_at=self._clock(),
        )

    @staticmethod
    def _question_from_answer(session_id: int, row: ReviewAnswerOut) -> QuestionDisplay:
        try:
            difficulty = Difficulty(row.original_difficulty or Difficulty.MEDIUM.value)
        except ValueError:
            difficulty = Difficulty.MEDIUM
        return QuestionDisplay(
            id=f"{session_id}-{row.question_index}",
            note_id=row.note_id,
            note_title=row.note_title,
            question=row.question_text,
            hint=row.hint,
            connects=list(row.connects),
            difficulty=difficulty,
            mastery_context=row.mastery_context,
        )

    @staticmethod
    def _rebuild_answers(
        rows: Sequence[ReviewAnswerOut],
    ) -> tuple[dict[int, UserAnswerData], SessionStats, int]:
        answers: dict[int, UserAnswerData] = {}
        stats = SessionStats()
        reviewed_count = 0
        for row in rows:
            if row.difficulty_rating is not None:
                stats.adjust(row.difficulty_rating, 1)
                reviewed_count += 1
            if row.answer_text.strip() or row.difficulty_rating is not None or row.ai_response_text:
                answers[row.question_index] = UserAnswerData(
                    question_index=row.question_index,
                    answer=row.answer_text,
                    timestamp=row.updated_at,
                    difficulty_rating=row.difficulty_rating,
                    ai_feedback=row.ai_response_text,
                    is_correct=row.is_correct,
                )
        return answers, stats, reviewed_count

    @staticmethod
    def _resume_index(rows: Sequence[ReviewAnswerOut]) -> int:
        answered = [row.question_index for row in rows if row.answer_text.strip()]
        if not answered:
            return 0
        return min(max(answered) + 1, len(rows) - 1)

    @staticmethod
    def _utcnow() -> datetime:
        return datetime.now(timezone.utc)


__all__ = ["DEMO_SESSION_ID", "ReviewPhase", "ReviewSessionController", "SessionStart"]
