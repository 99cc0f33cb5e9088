"""Registers every SQLAlchemy model on ``Base.metadata``."""

from studymind.db.base_class import Base

from studymind.models.user.user_model import User
from studymind.models.note.note_model import Note, Subject
from studymind.models.note.question_model import Question
from studymind.models.review.review_session_model import ReviewSession
from studymind.models.review.review_answer_model import ReviewAnswer

__all__ = ["Base", "User", "Subject", "Note", "Question", "ReviewSession", "ReviewAnswer"]
