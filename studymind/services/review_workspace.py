"""Per-user review workspace: one cohesive interface over setup, session and active review.

A workspace is created on demand by the registry kept on the application
state and torn down on logout or shutdown. Mutating operations are
serialized by a non-blocking lock: a second request arriving while one is
running is rejected with a busy notice instead of being queued.
"""

from __future__ import annotations

import functools
import logging
import random
import threading
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from studymind.core.ai_gateway import AIGateway, AnswerReview
from studymind.core.config import settings
from studymind.models.note.question_model import Difficulty, QuestionType
from studymind.schemas.review import NoticeOut, ReviewSetupUpdate, ReviewWorkspaceView, SessionStats
from studymind.services.active_review_service import ActiveReviewEngine
from studymind.services.answer_feedback_service import AnswerFeedbackService
from studymind.services.note_service import NoteService
from studymind.services.notices import NoticeBoard
from studymind.services.review_errors import PersistenceError, ReviewError, ValidationError
from studymind.services.review_repository import ReviewRepository, SessionFactory
from studymind.services.review_session_service import ReviewPhase, ReviewSessionController, SessionStart
from studymind.services.review_setup_service import ReviewSetupSelector

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "Another action is still running. Please wait."


def _exclusive(method):
    """Run *method* under the workspace lock and turn review errors into notices."""

    @functools.wraps(method)
    def wrapper(self: "ReviewWorkspace", *args, **kwargs):
        if not self._lock.acquire(blocking=False):
            self.notices.warning(BUSY_MESSAGE, "operation_in_progress")
            return False
        try:
            if self.closed:
                raise ValidationError("workspace_closed", "Your review workspace was closed. Please sign in again.")
            return method(self, *args, **kwargs)
        except ReviewError as exc:
            self.notices.report(exc)
            return False
        finally:
            self._lock.release()

    return wrapper


class ReviewWorkspace:
    def __init__(
        self,
        user_id: int | None,
        session_factory: SessionFactory,
        gateway: AIGateway | None = None,
        *,
        demo_mode: bool | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.user_id = user_id
        self.demo_mode = settings.READ_ONLY_DEMO if demo_mode is None else demo_mode
        self.notices = NoticeBoard()
        self.closed = False

        self._session_factory = session_factory
        self._gateway = gateway
        self._lock = threading.Lock()
        self._navigation: dict[str, int] = {}

        self.repository = ReviewRepository(session_factory, user_id)
        self.setup = ReviewSetupSelector(
            self.repository,
            notices=self.notices,
            question_generator=self._generate_questions if gateway is not None and not self.demo_mode else None,
            rng=rng,
        )
        self.controller = ReviewSessionController(
            self.repository,
            notices=self.notices,
            demo_mode=self.demo_mode,
            clock=clock,
        )
        self._clock = clock
        self.engine: Optional[ActiveReviewEngine] = None

    # ------------------------------------------------------------------
    # Entering the review page
    # ------------------------------------------------------------------
    def set_retry_intent(self, session_id: int) -> None:
        """Remember a session to retry on the next ``open_review`` call only."""
        self._navigation["retry_session_id"] = session_id

    @_exclusive
    def open_review(self, retry_session_id: int | None = None) -> bool:
        if retry_session_id is not None:
            self.set_retry_intent(retry_session_id)
        # Consumed exactly once, whatever happens next.
        retry_id = self._navigation.pop("retry_session_id", None)

        if self.controller.phase == ReviewPhase.ACTIVE and self.engine is not None:
            if retry_id is not None:
                raise ValidationError(
                    "session_in_progress", "Finish or leave your current review before retrying another one."
                )
            return True

        self._require_user()
        self.engine = None
        self.setup.load_notes()
        if retry_id is not None:
            return self._take_over(self.controller.retry(retry_id))

        self.controller.enter_selection()
        return True

    @_exclusive
    def confirm_resume(self) -> bool:
        start = self.controller.confirm_resume()
        if start is not None:
            self.setup.restore_selection(start.session.selected_notes, start.session.selected_difficulty)
        return self._take_over(start)

    @_exclusive
    def discard_resume(self) -> bool:
        return self.controller.discard_resume()

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------
    @_exclusive
    def reload_notes(self) -> bool:
        return self.setup.load_notes()

    @_exclusive
    def update_setup(self, update: ReviewSetupUpdate) -> bool:
        if update.selected_notes is not None:
            self.setup.select_notes(update.selected_notes)
        if update.difficulty is not None:
            self.setup.set_difficulty_filter(update.difficulty)
        if update.question_type is not None:
            self.setup.set_question_type_filter(update.question_type)
        if update.question_count is not None:
            self.setup.set_question_count_limit(update.question_count)
        if update.generate_new_questions is not None:
            self.setup.set_generate_new_questions(update.generate_new_questions)
        if "custom_difficulty" in update.model_fields_set:
            self.setup.set_custom_difficulty(update.custom_difficulty)
        if update.search_term is not None:
            self.setup.set_search_term(update.search_term)
        return True

    @_exclusive
    def toggle_note(self, note_id: int) -> bool:
        self.setup.toggle_note(note_id)
        return True

    @_exclusive
    def start_review(self) -> bool:
        if self.controller.phase == ReviewPhase.ACTIVE:
            raise ValidationError("session_in_progress", "A review is already running.")
        self._require_user()

        if self.setup.generate_new_questions:
            generated = self.setup.generate_questions()
            if not generated and self.setup.question_count == "5":
                self.notices.error(
                    "Question generation failed, cannot start review with only new questions.",
                    "generation_failed",
                )
                return False

        built = self.setup.build_session()
        return self._take_over(self.controller.start_new(built))

    # ------------------------------------------------------------------
    # Active review
    # ------------------------------------------------------------------
    @_exclusive
    def change_answer_text(self, text: str) -> bool:
        self._require_engine().change_answer_text(text)
        return True

    @_exclusive
    def save_answer(self) -> bool:
        engine = self._require_engine()
        was_saved = engine.is_answer_saved
        saved = engine.save_current_answer()
        if saved and not was_saved and engine.answer_text.strip():
            self.notices.success("Answer saved.")
        return saved

    @_exclusive
    def navigate(self, direction: str) -> bool:
        return self._require_engine().navigate(direction)

    @_exclusive
    def rate_difficulty(self, level: str | Difficulty) -> bool:
        return self._require_engine().rate_difficulty(level)

    @_exclusive
    def toggle_hint(self) -> bool:
        self._require_engine().toggle_hint()
        return True

    def request_ai_feedback(self) -> bool:
        """Reserve the question under the lock, call the AI unlocked, apply under the lock."""
        if not self._lock.acquire(blocking=False):
            self.notices.warning(BUSY_MESSAGE, "operation_in_progress")
            return False
        try:
            engine = self._require_engine()
            ticket = engine.begin_ai_feedback()
        except ReviewError as exc:
            self.notices.report(exc)
            return False
        finally:
            self._lock.release()

        if ticket is None:
            return False

        review: AnswerReview | None = None
        error: ReviewError | None = None
        settled = False
        try:
            try:
                review = engine.fetch_ai_feedback(ticket)
            except ReviewError as exc:
                error = exc

            with self._lock:
                settled = True
                if self.engine is not engine:
                    logger.info("Discarding AI feedback for a session that is no longer active")
                    return False
                return engine.apply_ai_feedback(ticket, review, error=error)
        finally:
            if not settled:
                with self._lock:
                    engine.release_ai_feedback(ticket)

    @_exclusive
    def finish(self) -> bool:
        engine = self._require_engine()
        if self.controller.phase != ReviewPhase.ACTIVE:
            raise ValidationError("no_active_session", "There is no active session to finish.")
        engine.flush_for_completion()
        return self.controller.complete(engine.answers, engine.session_stats, engine.reviewed_count)

    @_exclusive
    def reset(self) -> bool:
        self.engine = None
        self.controller.reset()
        return True

    # ------------------------------------------------------------------
    # View / lifecycle
    # ------------------------------------------------------------------
    def view(self, *, drain_notices: bool = True) -> ReviewWorkspaceView:
        engine = self.engine
        phase = self.controller.phase
        active = engine.view() if engine is not None and phase == ReviewPhase.ACTIVE else None
        stats = engine.session_stats.model_copy() if engine is not None else SessionStats()
        notices = self.notices.drain() if drain_notices else self.notices.peek()

        return ReviewWorkspaceView(
            phase=phase.value,
            demo_mode=self.demo_mode,
            session=self.controller.session,
            resume_prompt=self.controller.pending_resume,
            setup=self.setup.view(),
            active=active,
            elapsed_seconds=self.controller.elapsed_seconds(),
            formatted_duration=self.controller.formatted_duration,
            reviewed_count=engine.reviewed_count if engine is not None else 0,
            session_stats=stats,
            completion_persisted=self.controller.completion_persisted,
            notices=[NoticeOut(**notice.as_dict()) for notice in notices],
        )

    def close(self) -> None:
        with self._lock:
            self.closed = True
            self.engine = None
            self._navigation.clear()
        logger.info("Review workspace closed for user %s", self.user_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _take_over(self, start: SessionStart | None) -> bool:
        if start is None:
            self.engine = None
            return False
        self.engine = ActiveReviewEngine(
            self.repository,
            start,
            notices=self.notices,
            demo_mode=self.demo_mode,
            answer_reviewer=self._review_answer if self._gateway is not None else None,
            clock=self._clock,
        )
        return True

    def _require_engine(self) -> ActiveReviewEngine:
        if self.engine is None or self.controller.phase != ReviewPhase.ACTIVE:
            raise ValidationError("no_active_session", "Start or resume a review first.")
        return self.engine

    def _require_user(self) -> None:
        if self.user_id is None:
            raise ValidationError("not_authenticated", "User not authenticated.")

    def _generate_questions(self, note_id: int, difficulty: Difficulty, question_type: QuestionType) -> int:
        try:
            with self._session_factory() as db:
                service = NoteService(db, self.user_id, self._gateway)
                return len(service.generate_questions(note_id, difficulty, question_type))
        except SQLAlchemyError as exc:
            logger.exception("Question generation for note %s failed to persist", note_id)
            raise PersistenceError("generate_questions_failed", "Generated questions could not be saved.") from exc

    def _review_answer(self, answer_id: int | None, answer_text: str, note_id: int | None) -> AnswerReview:
        with self._session_factory() as db:
            return AnswerFeedbackService(db, self.user_id, self._gateway).review_answer(answer_id, answer_text, note_id)


class ReviewWorkspaceRegistry:
    """Holds one workspace per signed-in user for the lifetime of the application."""

    def __init__(self, gateway: AIGateway | None = None, *, demo_mode: bool | None = None):
        self.gateway = gateway
        self.demo_mode = demo_mode
        self._workspaces: dict[int, ReviewWorkspace] = {}
        self._lock = threading.Lock()

    def get_or_create(self, user_id: int, session_factory: SessionFactory) -> ReviewWorkspace:
        with self._lock:
            workspace = self._workspaces.get(user_id)
            if workspace is None or workspace.closed:
                workspace = ReviewWorkspace(
                    user_id, session_factory, self.gateway, demo_mode=self.demo_mode
                )
                self._workspaces[user_id] = workspace
                logger.info("Review workspace created for user %s", user_id)
            return workspace

    def get(self, user_id: int) -> ReviewWorkspace | None:
        with self._lock:
            return self._workspaces.get(user_id)

    def discard(self, user_id: int) -> bool:
        with self._lock:
            workspace = self._workspaces.pop(user_id, None)
        if workspace is None:
            return False
        workspace.close()
        return True

    def clear(self) -> None:
        with self._lock:
            workspaces = list(self._workspaces.values())
            self._workspaces.clear()
        for workspace in workspaces:
            workspace.close()

    def __len__(self) -> int:
        return len(self._workspaces)


__all__ = ["ReviewWorkspace", "ReviewWorkspaceRegistry"]
