from datetime import datetime, timedelta, timezone

import pytest

from studymind.utils.review_format import (
    as_utc,
    build_retry_name,
    build_session_name,
    format_duration,
    format_session_timestamp,
)


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (0, "0s"),
        (None, "0s"),
        (59, "59s"),
        (65, "1m 5s"),
        (3600, "1h 0s"),
        (3725, "1h 2m 5s"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_session_timestamp_uses_twelve_hour_clock():
    assert format_session_timestamp(datetime(2026, 3, 7, 14, 5)) == "07-MAR-2026 2:05 PM"
    assert format_session_timestamp(datetime(2026, 12, 24, 0, 30)) == "24-DEC-2026 12:30 AM"
    assert format_session_timestamp(datetime(2026, 1, 1, 12, 0)) == "01-JAN-2026 12:00 PM"


def test_session_name_with_year_level_and_subject():
    name = build_session_name(2, "Organic  Chemistry", datetime(2026, 3, 7, 14, 5))
    assert name == "SEC-Organic-Chemistry 07-MAR-2026 2:05 PM"


def test_session_name_falls_back_to_general_subject():
    assert build_session_name(None, None, datetime(2026, 3, 7, 9, 0)) == "General 07-MAR-2026 9:00 AM"
    assert build_session_name(4, "  ", datetime(2026, 3, 7, 9, 0)) == "PRO-General 07-MAR-2026 9:00 AM"


def test_retry_name():
    assert build_retry_name("SEC-Biology 07-MAR-2026 2:05 PM", None) == "Re: SEC-Biology 07-MAR-2026 2:05 PM"
    assert build_retry_name("", datetime(2026, 3, 7, 14, 5)) == "Re: Session from 2026-03-07"


def test_as_utc_handles_naive_and_aware_values():
    naive = datetime(2026, 3, 7, 14, 5)
    assert as_utc(naive) == datetime(2026, 3, 7, 14, 5, tzinfo=timezone.utc)

    paris = datetime(2026, 3, 7, 15, 5, tzinfo=timezone(timedelta(hours=1)))
    assert as_utc(paris) == datetime(2026, 3, 7, 14, 5, tzinfo=timezone.utc)
