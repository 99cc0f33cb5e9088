"""Review setup: turns note and filter selections into a shuffled question list."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Iterator, Optional

from studymind.models.note.question_model import Difficulty, QuestionType
from studymind.schemas.review import (
    NoteWithQuestions,
    QuestionDisplay,
    QuestionTemplateOut,
    SetupView,
    SubjectOut,
)
from studymind.services.notices import NoticeBoard
from studymind.services.review_errors import EmptySelectionError, ReviewError, ValidationError
from studymind.services.review_repository import ReviewRepository
from studymind.utils.review_format import build_session_name

logger = logging.getLogger(__name__)

DIFFICULTY_FILTERS = ("easy", "medium", "hard", "all")
QUESTION_COUNT_LIMITS = ("5", "10", "all")

# (note_id, difficulty, question_type) -> number of questions created
QuestionGenerator = Callable[[int, Difficulty, QuestionType], int]


@dataclass
class AvailableQuestions:
    questions: list[QuestionDisplay] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.questions)


@dataclass
class BuiltSession:
    questions: list[QuestionDisplay]
    session_name: str
    selected_notes: list[int]
    selected_difficulty: str


class ReviewSetupSelector:
    """Setup state for one user plus the pure question selection logic."""

    def __init__(
        self,
        repository: ReviewRepository,
        *,
        notices: NoticeBoard | None = None,
        question_generator: QuestionGenerator | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._repository = repository
        self._question_generator = question_generator
        self._rng = rng or random.Random()
        self._clock = clock or self._local_now
        self.notices = notices if notices is not None else NoticeBoard()

        self.notes: list[NoteWithQuestions] = []
        self.subjects: list[SubjectOut] = []
        self.selected_notes: list[int] = []
        self.difficulty_filter: str = "all"
        self.question_type: QuestionType = QuestionType.SHORT
        self.question_count: str = "5"
        self.generate_new_questions: bool = False
        self.custom_difficulty: Optional[Difficulty] = None
        self.search_term: str = ""
        self.is_generating: bool = False

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def load_notes(self) -> bool:
        """Refresh notes (only those with questions) and subjects from the repository."""
        try:
            self.notes = self._repository.fetch_notes_with_questions()
            self.subjects = self._repository.list_subjects()
        except ReviewError as exc:
            self.notices.report(exc)
            return False

        known = {note.id for note in self.notes}
        self.selected_notes = [note_id for note_id in self.selected_notes if note_id in known]
        return True

    # ------------------------------------------------------------------
    # Setters
    # ------------------------------------------------------------------
    def select_notes(self, note_ids: Iterable[int]) -> None:
        known = {note.id for note in self.notes}
        selection: list[int] = []
        for note_id in note_ids:
            if note_id not in known:
                raise ValidationError("unknown_note", f"Note {note_id} has no questions to review.")
            if note_id not in selection:
                selection.append(note_id)
        self.selected_notes = selection

    def restore_selection(self, note_ids: Iterable[int], difficulty: str) -> None:
        """Put back the note selection and filter a resumed session was created with."""
        self.selected_notes = list(dict.fromkeys(note_ids))
        if difficulty in DIFFICULTY_FILTERS:
            self.difficulty_filter = difficulty

    def toggle_note(self, note_id: int) -> None:
        if note_id in self.selected_notes:
            self.selected_notes = [existing for existing in self.selected_notes if existing != note_id]
        else:
            self.select_notes([*self.selected_notes, note_id])

    def set_difficulty_filter(self, value: str) -> None:
        if value not in DIFFICULTY_FILTERS:
            raise ValidationError("invalid_difficulty", f"Unknown difficulty filter '{value}'.")
        self.difficulty_filter = value

    def set_question_type_filter(self, value: str | QuestionType) -> None:
        try:
            self.question_type = QuestionType(value)
        except ValueError as exc:
            raise ValidationError("invalid_question_type", f"Unknown question type '{value}'.") from exc

    def set_question_count_limit(self, value: str | int) -> None:
        normalized = str(value).strip().lower()
        if normalized not in QUESTION_COUNT_LIMITS:
            raise ValidationError("invalid_question_count", f"Question count must be 5, 10 or all, not '{value}'.")
        self.question_count = normalized

    def set_generate_new_questions(self, enabled: bool) -> None:
        self.generate_new_questions = bool(enabled)

    def set_custom_difficulty(self, value: str | Difficulty | None) -> None:
        if value is None:
            self.custom_difficulty = None
            return
        try:
            self.custom_difficulty = Difficulty(value)
        except ValueError as exc:
            raise ValidationError("invalid_difficulty", f"Unknown difficulty '{value}'.") from exc

    def set_search_term(self, term: str) -> None:
        self.search_term = term or ""

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------
    def search_notes(self, term: str | None = None) -> list[NoteWithQuestions]:
        """Notes whose title or tags contain *term*, excluding those already selected."""
        needle = (self.search_term if term is None else term).strip().lower()
        candidates = [note for note in self.notes if note.id not in self.selected_notes]
        if not needle:
            return candidates
        return [
            note
            for note in candidates
            if needle in note.title.lower() or any(needle in tag.lower() for tag in note.tags)
        ]

    def compute_available_questions(self) -> AvailableQuestions:
        return AvailableQuestions([self._display(note, question) for note, question in self._matching_questions()])

    def build_session(self, now: datetime | None = None) -> BuiltSession:
        """Shuffle the matching questions and cut them down to the requested count."""
        if not self.selected_notes:
            raise EmptySelectionError("no_notes_selected", "Select at least one note to review.")

        questions = self.compute_available_questions().questions
        if not questions:
            raise EmptySelectionError("empty_selection", "No questions found for the selected criteria.")

        self._rng.shuffle(questions)
        if self.question_count != "all":
            questions = questions[: int(self.question_count)]

        return BuiltSession(
            questions=questions,
            session_name=self.build_session_name(now),
            selected_notes=list(self.selected_notes),
            selected_difficulty=self.difficulty_filter,
        )

    def build_session_name(self, now: datetime | None = None) -> str:
        first_note = self._note(self.selected_notes[0]) if self.selected_notes else None
        subject_name = None
        if first_note is not None and first_note.subject_id is not None:
            subject_name = next(
                (subject.name for subject in self.subjects if subject.id == first_note.subject_id),
                None,
            )
        year_level = first_note.year_level if first_note else None
        return build_session_name(year_level, subject_name, now or self._clock())

    # ------------------------------------------------------------------
    # Question generation
    # ------------------------------------------------------------------
    def generate_questions(self) -> bool:
        """Generate fresh questions for every selected note, then reload.

        Returns ``False`` when any note failed; the others keep their new
        questions.
        """
        if not self.generate_new_questions or not self.selected_notes:
            return False
        if self._question_generator is None:
            self.notices.error("Question generation is not available.", "ai_unavailable")
            return False

        difficulty = self.custom_difficulty or (
            Difficulty(self.difficulty_filter) if self.difficulty_filter != "all" else Difficulty.MEDIUM
        )

        self.is_generating = True
        self.notices.info("Generating questions...")
        success = True
        try:
            for note_id in list(self.selected_notes):
                title = self._note(note_id).title if self._note(note_id) else str(note_id)
                try:
                    created = self._question_generator(note_id, difficulty, self.question_type)
                except ReviewError as exc:
                    logger.warning("Question generation failed for note %s: %s", note_id, exc.code)
                    self.notices.error(f"Failed to generate questions for '{title}'.", exc.code)
                    success = False
                    continue
                self.notices.success(f"Generated {created} questions for '{title}'.")
            self.load_notes()
        finally:
            self.is_generating = False
        return success

    def view(self) -> SetupView:
        return SetupView(
            selected_notes=list(self.selected_notes),
            difficulty_filter=self.difficulty_filter,
            question_type=self.question_type.value,
            question_count=self.question_count,
            generate_new_questions=self.generate_new_questions,
            custom_difficulty=(self.custom_difficulty.value if self.custom_difficulty else ""),
            search_term=self.search_term,
            available_question_count=self.compute_available_questions().count,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _matching_questions(self) -> Iterator[tuple[NoteWithQuestions, QuestionTemplateOut]]:
        only_new = self.generate_new_questions and self.question_count == "5"
        for note_id in self.selected_notes:
            note = self._note(note_id)
            if note is None:
                continue
            for question in note.questions:
                if self.difficulty_filter != "all" and question.difficulty.value != self.difficulty_filter:
                    continue
                if only_new and question.is_default:
                    continue
                yield note, question

    def _note(self, note_id: int) -> NoteWithQuestions | None:
        return next((note for note in self.notes if note.id == note_id), None)

    @staticmethod
    def _display(note: NoteWithQuestions, question: QuestionTemplateOut) -> QuestionDisplay:
        return QuestionDisplay(
            id=str(question.id),
            note_id=note.id,
            note_title=note.title,
            question=question.question,
            hint=question.hint,
            connects=list(question.connects),
            difficulty=question.difficulty,
            mastery_context=question.mastery_context,
        )

    @staticmethod
    def _local_now() -> datetime:
        return datetime.now().astimezone()


__all__ = [
    "AvailableQuestions",
    "BuiltSession",
    "DIFFICULTY_FILTERS",
    "QUESTION_COUNT_LIMITS",
    "QuestionGenerator",
    "ReviewSetupSelector",
]
