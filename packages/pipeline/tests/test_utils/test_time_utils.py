"""
tests/test_utils/test_time_utils.py — Date parsing and French formatting.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from frequence_shared.time_utils import (
    elapsed_seconds,
    format_french_long_date,
    format_french_month_year,
    format_french_short_date,
    parse_date,
    parse_datetime,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2025-06-14", date(2025, 6, 14)),
        ("2025-06-14T23:30:00+00:00", date(2025, 6, 14)),
        ("2025-06-14T09:30:00.123Z", date(2025, 6, 14)),
        (datetime(2025, 6, 14, 9, 0), date(2025, 6, 14)),
        ("", None),
        ("pas une date", None),
        (None, None),
    ],
)
def test_parse_date(raw, expected):
    assert parse_date(raw) == expected


def test_naive_datetime_is_utc():
    assert parse_datetime("2025-06-14T09:30:00").tzinfo == timezone.utc


def test_elapsed_seconds():
    start = "2025-06-14T10:00:00+00:00"
    end = datetime(2025, 6, 14, 10, 2, 5, tzinfo=timezone.utc)
    assert elapsed_seconds(start, end) == 125
    assert elapsed_seconds(None) == 0
    assert elapsed_seconds("2025-06-14T10:05:00+00:00", end) == 0


def test_french_formats():
    assert format_french_long_date("2025-06-14") == "Samedi 14 juin 2025"
    assert format_french_long_date("2025-03-02") == "Dimanche 2 mars 2025"
    assert format_french_month_year(date(2026, 10, 1)) == "Octobre 2026"
    assert format_french_short_date("2025-06-14T09:30:00Z") == "14/06/2025"
    assert format_french_short_date(None) == ""
