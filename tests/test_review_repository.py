from datetime import datetime, timezone

import pytest

from studymind.models.note.question_model import Difficulty
from studymind.models.review.review_answer_model import ReviewAnswer
from studymind.models.review.review_session_model import ReviewSession, SessionStatus
from studymind.schemas.review import SessionStats
from studymind.services.review_errors import PersistenceError, ValidationError
from studymind.services.review_repository import ReviewRepository
from tests.utils import create_note_with_questions, create_user, display_questions


@pytest.fixture()
def repository(session_factory, user):
    return ReviewRepository(session_factory, user.id)


def _create_session(repository, note, count=None, name="Biology 07-MAR-2026 2:00 PM"):
    questions = display_questions(note, count)
    session = repository.create_session(
        session_name=name,
        selected_notes=[note.id],
        selected_difficulty="all",
        total_questions=len(questions),
        started_at=datetime(2026, 3, 7, 14, 0, tzinfo=timezone.utc),
    )
    rows = repository.save_placeholder_answers(session.id, questions)
    return session, rows


def test_placeholders_cover_every_index(db_session, repository, user):
    note = create_note_with_questions(db_session, user.id)

    session, rows = _create_session(repository, note)

    assert session.session_status == SessionStatus.IN_PROGRESS
    assert session.total_questions == 5
    assert [row.question_index for row in rows] == [0, 1, 2, 3, 4]
    assert all(row.answer_text == "" for row in rows)
    assert rows[0].question_text == note.questions[0].question
    assert rows[0].original_difficulty == "easy"
    assert db_session.query(ReviewAnswer).filter_by(session_id=session.id).count() == 5


def test_second_in_progress_session_is_rejected(db_session, repository, user):
    note = create_note_with_questions(db_session, user.id)
    _create_session(repository, note)

    with pytest.raises(ValidationError) as exc:
        _create_session(repository, note, name="Another")

    assert exc.value.code == "session_in_progress"
    assert db_session.query(ReviewSession).count() == 1


def test_new_session_allowed_after_abandon(db_session, repository, user):
    note = create_note_with_questions(db_session, user.id)
    first, _ = _create_session(repository, note)

    abandoned = repository.abandon_session(first.id)
    second, _ = _create_session(repository, note, name="Second")

    assert abandoned.session_status == SessionStatus.ABANDONED
    assert repository.get_in_progress_session().id == second.id


def test_update_answer_text_trims(db_session, repository, user):
    note = create_note_with_questions(db_session, user.id)
    _, rows = _create_session(repository, note)

    updated = repository.update_answer_text(rows[1].id, "  mitochondria  ")

    assert updated.answer_text == "mitochondria"
    assert updated.question_index == 1


def test_rating_and_feedback_are_stored(db_session, repository, user):
    note = create_note_with_questions(db_session, user.id)
    _, rows = _create_session(repository, note)

    repository.update_difficulty_rating(rows[0].id, Difficulty.HARD)
    stored = repository.store_ai_feedback(rows[0].id, "Good answer", True)

    assert stored.difficulty_rating == Difficulty.HARD
    assert stored.ai_response_text == "Good answer"
    assert stored.is_correct is True


def test_answers_of_other_users_are_invisible(db_session, session_factory, repository, user):
    note = create_note_with_questions(db_session, user.id)
    session, rows = _create_session(repository, note)
    intruder = create_user(db_session, username="intruder", email="intruder@example.com")
    other = ReviewRepository(session_factory, intruder.id)

    with pytest.raises(PersistenceError) as exc:
        other.update_answer_text(rows[0].id, "hijack")
    assert exc.value.code == "answer_not_found"

    with pytest.raises(PersistenceError) as exc:
        other.get_answers(session.id)
    assert exc.value.code == "session_not_found"

    assert other.get_session(session.id) is None


def test_unauthenticated_repository_is_rejected(session_factory):
    repository = ReviewRepository(session_factory, None)

    with pytest.raises(ValidationError) as exc:
        repository.get_in_progress_session()

    assert exc.value.code == "not_authenticated"


def test_complete_session_writes_aggregates(db_session, repository, user):
    note = create_note_with_questions(db_session, user.id)
    session, _ = _create_session(repository, note, count=4)

    completed = repository.complete_session(
        session.id,
        duration_seconds=125,
        questions_answered=4,
        questions_rated=4,
        stats=SessionStats(easy=2, medium=1, hard=1),
        completed_at=datetime(2026, 3, 7, 14, 2, 5, tzinfo=timezone.utc),
    )

    assert completed.session_status == SessionStatus.COMPLETED
    assert completed.duration_seconds == 125
    assert (completed.easy_ratings, completed.medium_ratings, completed.hard_ratings) == (2, 1, 1)
    assert repository.get_in_progress_session() is None


def test_list_sessions_paginates_newest_first(db_session, repository, user):
    note = create_note_with_questions(db_session, user.id)
    created = []
    for index in range(3):
        session, _ = _create_session(repository, note, count=1, name=f"Session {index}")
        repository.abandon_session(session.id)
        created.append(session.id)

    items, total = repository.list_sessions(limit=2, offset=0)
    assert total == 3
    assert len(items) == 2
    # Same started_at, so the id breaks the tie.
    assert [item.id for item in items] == [created[2], created[1]]

    items, total = repository.list_sessions(status=SessionStatus.COMPLETED)
    assert (items, total) == ([], 0)
