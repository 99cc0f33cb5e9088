import pytest

from studymind.core.ai_gateway import AnswerReview
from studymind.models.note.question_model import Difficulty
from studymind.models.review.review_answer_model import ReviewAnswer
from studymind.schemas.review import SessionStats
from studymind.services.active_review_service import DEMO_FEEDBACK, ActiveReviewEngine
from studymind.services.review_errors import GatewayError, PersistenceError, ValidationError
from studymind.services.review_repository import ReviewRepository
from studymind.services.review_session_service import ReviewSessionController
from tests.utils import build_session, create_note_with_questions


class CountingRepository(ReviewRepository):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.text_writes = 0
        self.fail_writes = False

    def update_answer_text(self, answer_id, text):
        if self.fail_writes:
            raise PersistenceError("update_answer_text_failed", "Could not reach the database. Please try again.")
        self.text_writes += 1
        return super().update_answer_text(answer_id, text)


@pytest.fixture()
def repository(session_factory, user):
    return CountingRepository(session_factory, user.id)


@pytest.fixture()
def note(db_session, user):
    return create_note_with_questions(db_session, user.id, difficulties=("easy", "medium", "hard"))


@pytest.fixture()
def reviews():
    return []


@pytest.fixture()
def engine(repository, note, clock, reviews):
    controller = ReviewSessionController(repository, clock=clock)
    start = controller.start_new(build_session(note))

    def reviewer(answer_id, text, note_id):
        reviews.append((answer_id, text, note_id))
        return AnswerReview(feedback=f"Feedback on '{text}'", is_correct=True)

    return ActiveReviewEngine(repository, start, notices=controller.notices, answer_reviewer=reviewer, clock=clock)


def _stored_answer(db_session, engine, index) -> ReviewAnswer:
    db_session.expire_all()
    return db_session.query(ReviewAnswer).filter_by(session_id=engine.session_id, question_index=index).one()


def test_save_trims_and_persists(db_session, engine, repository):
    engine.change_answer_text("  the powerhouse  ")

    assert engine.save_current_answer() is True
    assert engine.is_answer_saved is True
    assert engine.answers[0].answer == "the powerhouse"
    assert _stored_answer(db_session, engine, 0).answer_text == "the powerhouse"
    assert repository.text_writes == 1


def test_save_is_idempotent(engine, repository):
    engine.change_answer_text("mitochondria")
    engine.save_current_answer()

    assert engine.save_current_answer() is True
    engine.change_answer_text("mitochondria ")
    assert engine.save_current_answer() is True

    assert repository.text_writes == 1
    assert engine.is_answer_saved is True


def test_blank_untouched_answer_is_not_written(engine, repository):
    assert engine.save_current_answer() is True
    assert repository.text_writes == 0
    assert engine.answers == {}


def test_failed_save_keeps_state_unchanged(engine, repository):
    repository.fail_writes = True
    engine.change_answer_text("ribosome")

    assert engine.save_current_answer() is False
    assert engine.is_answer_saved is False
    assert 0 not in engine.answers
    assert engine.notices.drain()[-1].code == "update_answer_text_failed"


def test_navigation_saves_dirty_answer(db_session, engine):
    engine.change_answer_text("first answer")

    assert engine.navigate("next") is True
    assert engine.current_question_index == 1
    assert engine.answer_text == ""
    assert _stored_answer(db_session, engine, 0).answer_text == "first answer"

    engine.navigate("prev")
    assert engine.answer_text == "first answer"
    assert engine.is_answer_saved is True


def test_navigation_blocked_when_save_fails(engine, repository):
    repository.fail_writes = True
    engine.change_answer_text("unsaved")

    assert engine.navigate("next") is False
    assert engine.current_question_index == 0
    assert engine.notices.drain()[-1].code == "save_failed"


def test_navigation_bounds_and_direction(engine):
    assert engine.navigate("prev") is False
    engine.navigate("next")
    engine.navigate("next")
    assert engine.navigate("next") is False
    assert engine.current_question_index == 2

    with pytest.raises(ValidationError):
        engine.navigate("sideways")


def test_hint_resets_on_navigation(engine):
    assert engine.toggle_hint() is True
    engine.navigate("next")
    assert engine.show_hint is False


def test_rerating_moves_the_count(db_session, engine):
    engine.change_answer_text("answer")
    engine.save_current_answer()

    assert engine.rate_difficulty("medium") is True
    assert engine.session_stats == SessionStats(medium=1)
    assert engine.reviewed_count == 1

    assert engine.rate_difficulty(Difficulty.EASY) is True
    assert engine.session_stats == SessionStats(easy=1)
    assert engine.reviewed_count == 1
    assert _stored_answer(db_session, engine, 0).difficulty_rating == Difficulty.EASY

    # Same rating again is a no-op for the counters.
    engine.rate_difficulty("easy")
    assert engine.session_stats == SessionStats(easy=1)


def test_rating_requires_saved_answer(engine):
    engine.change_answer_text("not saved yet")

    assert engine.rate_difficulty("hard") is False
    assert engine.notices.drain()[-1].code == "answer_not_saved"
    assert engine.reviewed_count == 0


def test_ai_feedback_is_stored(db_session, engine, reviews, note):
    engine.change_answer_text("cells divide")
    engine.save_current_answer()

    assert engine.can_request_ai_feedback() is True
    assert engine.request_ai_feedback() is True

    assert reviews == [(engine._answer_ids[0], "cells divide", note.id)]
    view = engine.view()
    assert view.ai_feedback == "Feedback on 'cells divide'"
    assert view.is_correct is True
    assert view.can_request_ai_feedback is False
    assert _stored_answer(db_session, engine, 0).ai_response_text == "Feedback on 'cells divide'"


def test_ai_feedback_is_requested_only_once(engine, reviews):
    engine.change_answer_text("cells divide")
    engine.save_current_answer()
    engine.request_ai_feedback()

    assert engine.request_ai_feedback() is False
    assert engine.notices.drain()[-1].code == "ai_feedback_exists"
    assert len(reviews) == 1


def test_ai_feedback_requires_saved_answer(engine, reviews):
    assert engine.request_ai_feedback() is False
    assert engine.notices.drain()[-1].code == "answer_not_saved"

    engine.change_answer_text("draft")
    assert engine.begin_ai_feedback() is None
    assert reviews == []


def test_in_flight_request_blocks_a_second_one(engine):
    engine.change_answer_text("cells divide")
    engine.save_current_answer()

    ticket = engine.begin_ai_feedback()
    assert engine.is_ai_reviewing is True
    assert engine.begin_ai_feedback() is None
    assert engine.notices.drain()[-1].code == "operation_in_progress"

    engine.apply_ai_feedback(ticket, AnswerReview(feedback="ok", is_correct=None))
    assert engine.is_ai_reviewing is False


def test_late_feedback_lands_on_its_own_question(db_session, engine):
    engine.change_answer_text("cells divide")
    engine.save_current_answer()
    ticket = engine.begin_ai_feedback()

    engine.navigate("next")
    assert engine.apply_ai_feedback(ticket, AnswerReview(feedback="Nice", is_correct=False)) is True

    assert engine.view().ai_feedback is None
    assert engine.answers[0].ai_feedback == "Nice"
    assert _stored_answer(db_session, engine, 0).is_correct is False
    assert _stored_answer(db_session, engine, 1).ai_response_text is None


def test_ai_failure_is_shown_inline_and_can_be_retried(engine):
    engine.change_answer_text("cells divide")
    engine.save_current_answer()
    ticket = engine.begin_ai_feedback()

    assert engine.apply_ai_feedback(ticket, error=GatewayError("ai_request_failed", "AI is down")) is False
    assert engine.view().ai_feedback_error == "AI is down"
    assert engine.can_request_ai_feedback() is True
    assert engine.begin_ai_feedback() is not None
    assert engine.view().ai_feedback_error is None


def test_feedback_for_another_session_is_dropped(engine):
    engine.change_answer_text("cells divide")
    engine.save_current_answer()
    ticket = engine.begin_ai_feedback()
    stale = type(ticket)(
        session_id=engine.session_id + 1,
        question_index=ticket.question_index,
        answer_id=ticket.answer_id,
        answer_text=ticket.answer_text,
        note_id=ticket.note_id,
    )

    assert engine.apply_ai_feedback(stale, AnswerReview(feedback="stale")) is False
    assert engine.answers[0].ai_feedback is None


def test_flush_for_completion_saves_cleared_answer(db_session, engine):
    engine.change_answer_text("temporary")
    engine.save_current_answer()
    engine.change_answer_text("")

    assert engine.flush_for_completion() is True
    assert _stored_answer(db_session, engine, 0).answer_text == ""
    assert engine.answers_saved == 0


def test_demo_engine_skips_persistence(repository, note, clock):
    controller = ReviewSessionController(repository, demo_mode=True, clock=clock)
    start = controller.start_new(build_session(note))
    engine = ActiveReviewEngine(repository, start, notices=controller.notices, demo_mode=True, clock=clock)

    engine.change_answer_text("demo answer")
    assert engine.save_current_answer() is True
    assert engine.rate_difficulty("hard") is True
    assert engine.request_ai_feedback() is True

    assert repository.text_writes == 0
    assert engine.view().ai_feedback == DEMO_FEEDBACK
    assert engine.session_stats == SessionStats(hard=1)


def test_unexpected_reviewer_failure_becomes_inline_error(repository, note, clock):
    controller = ReviewSessionController(repository, clock=clock)
    start = controller.start_new(build_session(note))

    def reviewer(answer_id, text, note_id):
        raise RuntimeError("connection dropped")

    engine = ActiveReviewEngine(repository, start, notices=controller.notices, answer_reviewer=reviewer, clock=clock)
    engine.change_answer_text("cells divide")
    engine.save_current_answer()

    assert engine.request_ai_feedback() is False
    assert engine.is_ai_reviewing is False
    assert engine.view().ai_feedback_error == "AI feedback failed. Please try again."
    assert engine.can_request_ai_feedback() is True


def test_engine_shares_the_board_it_is_given(repository, note, clock):
    controller = ReviewSessionController(repository, clock=clock)
    controller.notices.drain()
    start = controller.start_new(build_session(note))
    controller.notices.drain()

    engine = ActiveReviewEngine(repository, start, notices=controller.notices, clock=clock)
    engine.change_answer_text("draft")
    engine.rate_difficulty("hard")

    assert engine.notices is controller.notices
    assert controller.notices.drain()[-1].code == "answer_not_saved"
