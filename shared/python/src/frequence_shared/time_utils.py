"""
time_utils.py — Date parsing and French date formatting.

Dates reach us from Supabase as ISO strings ("2025-06-14",
"2025-06-14T09:30:00+00:00", "2025-06-14T09:30:00.123Z"); exports print
them the way fr-FR locales do, without depending on the OS locale.

Usage:
    from frequence_shared.time_utils import parse_date, format_french_long_date

    d = parse_date("2025-06-14")                 # date(2025, 6, 14)
    format_french_long_date(d)                   # "Samedi 14 juin 2025"
    format_french_month_year(date(2026, 10, 1))  # "Octobre 2026"
    format_french_short_date(d)                  # "14/06/2025"
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from dateutil import parser as date_parser

_MONTHS_FR: tuple[str, ...] = (
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
)

_WEEKDAYS_FR: tuple[str, ...] = (
    "lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche",
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(raw: str | datetime | None) -> datetime | None:
    """
    Parse an ISO timestamp into an aware datetime (naive values are UTC).

    Returns None for empty or unparseable input.
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        value = raw
    else:
        try:
            value = date_parser.isoparse(str(raw).strip())
        except (ValueError, OverflowError):
            return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def parse_date(raw: str | date | None) -> date | None:
    """Parse an ISO date or timestamp string into a date, or None."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    parsed = parse_datetime(raw)
    return parsed.date() if parsed else None


def elapsed_seconds(start: str | datetime | None, end: datetime | None = None) -> int:
    """Whole seconds between *start* and *end* (default: now); 0 if unknown."""
    started = parse_datetime(start)
    if started is None:
        return 0
    finished = end or utc_now()
    return max(int((finished - started).total_seconds()), 0)


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def format_french_long_date(value: str | date | None) -> str:
    """'Samedi 14 juin 2025' — weekday, day, month, year; '' when unknown."""
    d = parse_date(value)
    if d is None:
        return ""
    return _capitalize(
        f"{_WEEKDAYS_FR[d.weekday()]} {d.day} {_MONTHS_FR[d.month - 1]} {d.year}"
    )


def format_french_month_year(value: str | date | None) -> str:
    """'Octobre 2026'; '' when unknown."""
    d = parse_date(value)
    if d is None:
        return ""
    return _capitalize(f"{_MONTHS_FR[d.month - 1]} {d.year}")


def format_french_short_date(value: str | date | None) -> str:
    """'14/06/2025'; '' when unknown."""
    d = parse_date(value)
    if d is None:
        return ""
    return d.strftime("%d/%m/%Y")
