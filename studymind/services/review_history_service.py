from __future__ import annotations

import logging

from studymind.core.config import settings
from studymind.models.review.review_session_model import SessionStatus
from studymind.schemas.review import ReviewSessionDetail, ReviewSessionPage
from studymind.services.review_errors import NotFoundError
from studymind.services.review_repository import ReviewRepository

logger = logging.getLogger(__name__)


class ReviewHistoryService:
    """Read side of past review sessions, paginated."""

    def __init__(self, repository: ReviewRepository, page_size: int | None = None):
        self.repository = repository
        self.page_size = page_size or settings.REVIEW_HISTORY_PAGE_SIZE

    def list_sessions(self, *, status: SessionStatus | None = None, page: int = 1) -> ReviewSessionPage:
        page = max(page, 1)
        items, total = self.repository.list_sessions(
            status=status,
            limit=self.page_size,
            offset=(page - 1) * self.page_size,
        )
        return ReviewSessionPage(items=items, total=total, page=page, page_size=self.page_size)

    def get_session_detail(self, session_id: int) -> ReviewSessionDetail:
        session = self.repository.get_session(session_id)
        if session is None:
            raise NotFoundError("session_not_found", "Review session not found.")
        return ReviewSessionDetail(session=session, answers=self.repository.get_answers(session_id))


__all__ = ["ReviewHistoryService"]
