"""Error taxonomy of the review subsystem."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(eq=False)
class ReviewError(Exception):
    """Base class; ``code`` is a stable machine-readable identifier."""

    code: str
    message: str = ""

    status_code = 400

    def __str__(self) -> str:
        return self.message or self.code


class ValidationError(ReviewError):
    """Blocks an operation locally (bad input, missing user, unsaved answer)."""


class EmptySelectionError(ValidationError):
    """No question matched the setup filters."""


class NotFoundError(ValidationError):
    """The requested note, session or answer does not exist for this user."""

    status_code = 404


class PersistenceError(ReviewError):
    """A repository call failed."""

    status_code = 503


class GatewayError(ReviewError):
    """The AI gateway failed or returned something unusable."""

    status_code = 502


__all__ = [
    "EmptySelectionError",
    "GatewayError",
    "NotFoundError",
    "PersistenceError",
    "ReviewError",
    "ValidationError",
]
