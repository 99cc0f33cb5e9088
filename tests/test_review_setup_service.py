import random
from datetime import datetime

import pytest

from studymind.models.note.question_model import Difficulty, QuestionType
from studymind.services.review_errors import EmptySelectionError, GatewayError, ValidationError
from studymind.services.review_repository import ReviewRepository
from studymind.services.review_setup_service import ReviewSetupSelector
from tests.utils import add_question, create_note_with_questions, create_subject


@pytest.fixture()
def notes(db_session, user):
    first = create_note_with_questions(db_session, user.id, title="Cells", tags=["biology"])
    second = create_note_with_questions(db_session, user.id, title="Genetics", tags=["dna", "biology"])
    return first, second


@pytest.fixture()
def selector(session_factory, user):
    return ReviewSetupSelector(
        ReviewRepository(session_factory, user.id),
        rng=random.Random(7),
        clock=lambda: datetime(2026, 3, 7, 14, 5),
    )


def test_load_notes_skips_notes_without_questions(db_session, user, notes, selector):
    create_note_with_questions(db_session, user.id, title="Empty", difficulties=())

    assert selector.load_notes() is True
    assert sorted(note.title for note in selector.notes) == ["Cells", "Genetics"]


def test_easy_filter_with_limit_returns_five_easy_questions(notes, selector):
    selector.load_notes()
    selector.select_notes([note.id for note in notes])
    selector.set_difficulty_filter("easy")
    selector.set_question_count_limit("5")

    assert selector.compute_available_questions().count == 6

    built = selector.build_session()

    assert len(built.questions) == 5
    assert {question.difficulty for question in built.questions} == {Difficulty.EASY}
    assert len({question.id for question in built.questions}) == 5
    assert built.selected_difficulty == "easy"
    assert built.selected_notes == [note.id for note in notes]


def test_all_limit_keeps_every_matching_question(notes, selector):
    selector.load_notes()
    selector.select_notes([note.id for note in notes])
    selector.set_question_count_limit("all")

    built = selector.build_session()

    assert len(built.questions) == 10
    assert {question.note_title for question in built.questions} == {"Cells", "Genetics"}


def test_empty_selection_is_rejected(notes, selector):
    selector.load_notes()

    with pytest.raises(EmptySelectionError) as exc:
        selector.build_session()
    assert exc.value.code == "no_notes_selected"

    selector.select_notes([notes[0].id])
    selector.set_difficulty_filter("medium")
    with pytest.raises(EmptySelectionError) as exc:
        selector.build_session()
    assert exc.value.code == "empty_selection"


def test_invalid_setup_values_are_rejected(notes, selector):
    selector.load_notes()

    with pytest.raises(ValidationError):
        selector.set_difficulty_filter("extreme")
    with pytest.raises(ValidationError):
        selector.set_question_count_limit(7)
    with pytest.raises(ValidationError) as exc:
        selector.select_notes([999])
    assert exc.value.code == "unknown_note"

    selector.set_question_count_limit(10)
    assert selector.question_count == "10"


def test_session_name_uses_first_note_subject_and_year(db_session, user, selector):
    subject = create_subject(db_session, user.id, name="Organic Chemistry")
    note = create_note_with_questions(db_session, user.id, title="Alkanes", subject_id=subject.id, year_level=2)
    selector.load_notes()
    selector.select_notes([note.id])

    assert selector.build_session().session_name == "SEC-Organic-Chemistry 07-MAR-2026 2:05 PM"


def test_search_matches_title_and_tags_and_skips_selected(notes, selector):
    selector.load_notes()

    assert [note.title for note in selector.search_notes("dna")] == ["Genetics"]
    assert {note.title for note in selector.search_notes("BIO")} == {"Cells", "Genetics"}

    selector.toggle_note(notes[1].id)
    assert [note.title for note in selector.search_notes("biology")] == ["Cells"]

    selector.toggle_note(notes[1].id)
    assert selector.selected_notes == []


def test_generate_mode_with_five_only_keeps_new_questions(db_session, user, selector):
    note = create_note_with_questions(db_session, user.id, difficulties=("medium", "medium"))
    add_question(db_session, note, "medium", text="Fresh question?", is_default=False)
    db_session.commit()

    selector.load_notes()
    selector.select_notes([note.id])
    selector.set_generate_new_questions(True)

    available = selector.compute_available_questions()
    assert [question.question for question in available.questions] == ["Fresh question?"]

    selector.set_question_count_limit("10")
    assert selector.compute_available_questions().count == 3


def test_generate_questions_uses_custom_difficulty(db_session, user, notes, session_factory):
    calls = []

    def generator(note_id, difficulty, question_type):
        calls.append((note_id, difficulty, question_type))
        return 5

    selector = ReviewSetupSelector(ReviewRepository(session_factory, user.id), question_generator=generator)
    selector.load_notes()
    selector.select_notes([notes[0].id])
    selector.set_generate_new_questions(True)
    selector.set_difficulty_filter("hard")
    selector.set_question_type_filter("mcq")

    assert selector.generate_questions() is True
    assert calls == [(notes[0].id, Difficulty.HARD, QuestionType.MCQ)]

    selector.set_custom_difficulty("easy")
    selector.generate_questions()
    assert calls[-1][1] == Difficulty.EASY
    assert selector.is_generating is False


def test_generate_questions_reports_partial_failure(user, notes, session_factory):
    def generator(note_id, difficulty, question_type):
        if note_id == notes[1].id:
            raise GatewayError("ai_request_failed", "boom")
        return 5

    selector = ReviewSetupSelector(ReviewRepository(session_factory, user.id), question_generator=generator)
    selector.load_notes()
    selector.select_notes([note.id for note in notes])
    selector.set_generate_new_questions(True)

    assert selector.generate_questions() is False

    notices = selector.notices.drain()
    assert [notice.level.value for notice in notices] == ["info", "success", "error"]
    assert notices[-1].code == "ai_request_failed"
    assert "Genetics" in notices[-1].message


def test_generate_questions_without_generator(notes, selector):
    selector.load_notes()
    selector.select_notes([notes[0].id])
    selector.set_generate_new_questions(True)

    assert selector.generate_questions() is False
    assert selector.notices.drain()[-1].code == "ai_unavailable"


def test_selection_is_pruned_when_a_note_disappears(db_session, notes, selector):
    selector.load_notes()
    selector.select_notes([note.id for note in notes])

    db_session.delete(notes[1])
    db_session.commit()
    selector.load_notes()

    assert selector.selected_notes == [notes[0].id]
