"""Formatting helpers for review sessions (names and durations)."""

from __future__ import annotations

import re
from datetime import datetime, timezone

YEAR_LEVEL_CODES = {1: "PRI", 2: "SEC", 3: "TER", 4: "PRO"}
DEFAULT_SUBJECT_NAME = "General"

_MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")
_WHITESPACE = re.compile(r"\s+")


def format_duration(seconds: int | float | None) -> str:
    """``3725`` -> ``"1h 2m 5s"``; zero hours and minutes are omitted, seconds never are."""
    total = max(int(seconds or 0), 0)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)

    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


def format_session_timestamp(moment: datetime) -> str:
    """``DD-MON-YYYY h:mm AM/PM`` with an English month abbreviation."""
    hour = moment.hour % 12 or 12
    meridiem = "PM" if moment.hour >= 12 else "AM"
    return (
        f"{moment.day:02d}-{_MONTHS[moment.month - 1]}-{moment.year:04d} "
        f"{hour}:{moment.minute:02d} {meridiem}"
    )


def build_session_name(year_level: int | None, subject_name: str | None, moment: datetime) -> str:
    """E.g. ``SEC-Organic-Chemistry 07-MAR-2026 2:05 PM``."""
    code = YEAR_LEVEL_CODES.get(year_level or 0, "")
    subject = _WHITESPACE.sub("-", (subject_name or "").strip()) or DEFAULT_SUBJECT_NAME
    prefix = f"{code}-" if code else ""
    return f"{prefix}{subject} {format_session_timestamp(moment)}"


def build_retry_name(original_name: str | None, started_at: datetime | None) -> str:
    if original_name:
        return f"Re: {original_name}"
    if started_at is not None:
        return f"Re: Session from {started_at.date().isoformat()}"
    return "Re: Session"


def as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes (SQLite drops the offset) as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


__all__ = [
    "DEFAULT_SUBJECT_NAME",
    "YEAR_LEVEL_CODES",
    "as_utc",
    "build_retry_name",
    "build_session_name",
    "format_duration",
    "format_session_timestamp",
]
