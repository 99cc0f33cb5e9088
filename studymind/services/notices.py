"""User-facing notifications collected by the review workspace."""

from __future__ import annotations

import enum
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, List, Optional

from studymind.services.review_errors import ReviewError, ValidationError

logger = logging.getLogger(__name__)


class NoticeLevel(str, enum.Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(slots=True)
class Notice:
    level: NoticeLevel
    message: str
    code: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_dict(self) -> dict:
        return {
            "level": self.level.value,
            "message": self.message,
            "code": self.code,
            "created_at": self.created_at,
        }


class NoticeBoard:
    """Bounded queue of notices, drained by the transport layer."""

    def __init__(self, limit: int = 50):
        self._items: Deque[Notice] = deque(maxlen=limit)

    def push(self, level: NoticeLevel, message: str, code: str | None = None) -> Notice:
        notice = Notice(level=level, message=message, code=code)
        self._items.append(notice)
        return notice

    def success(self, message: str, code: str | None = None) -> Notice:
        return self.push(NoticeLevel.SUCCESS, message, code)

    def info(self, message: str, code: str | None = None) -> Notice:
        return self.push(NoticeLevel.INFO, message, code)

    def warning(self, message: str, code: str | None = None) -> Notice:
        return self.push(NoticeLevel.WARNING, message, code)

    def error(self, message: str, code: str | None = None) -> Notice:
        return self.push(NoticeLevel.ERROR, message, code)

    def report(self, exc: ReviewError) -> Notice:
        """Turn a caught review error into a notice (warning for validation errors)."""
        if isinstance(exc, ValidationError):
            logger.warning("Review operation rejected: %s", exc.code)
            return self.warning(str(exc), exc.code)
        return self.error(str(exc), exc.code)

    def peek(self) -> List[Notice]:
        return list(self._items)

    def drain(self) -> List[Notice]:
        items = list(self._items)
        self._items.clear()
        return items

    def __len__(self) -> int:
        return len(self._items)


__all__ = ["Notice", "NoticeBoard", "NoticeLevel"]
