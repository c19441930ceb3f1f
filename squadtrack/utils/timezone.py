"""
Date/time helpers.

All timestamps are stored as naive UTC datetimes. Match and season dates
are calendar dates; anything carrying a time of day is reduced to the
calendar date of its own timezone before comparison, so a late-evening
kickoff in a western timezone stays on the day it is played.
"""
from datetime import date, datetime, timezone
from typing import Union

UTC = timezone.utc

DateLike = Union[date, datetime, str]

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (database convention)."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_calendar_date(value: DateLike) -> date:
    """
    Reduce a date, datetime or ISO string to a calendar date.

    Timezone-aware datetimes keep the calendar date of their own offset;
    only the time of day is dropped.

    Raises:
        ValueError: if a string is not an ISO-8601 date or datetime
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text) if "T" in text or " " in text else date.fromisoformat(text)

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise ValueError(f"Unsupported date value: {value!r}")


def month_label(value: date) -> str:
    """Short axis label such as 'Feb 2025'."""
    return f"{MONTH_ABBREVIATIONS[value.month - 1]} {value.year}"
