"""
Season and match date rules.

A match must fall inside its season, both ends inclusive. All comparisons
happen on calendar dates: datetimes are reduced with
``squadtrack.utils.timezone.to_calendar_date`` so a kickoff time never moves
a match across a season boundary.
"""
from datetime import date

from squadtrack.core.exceptions import DateOutOfBoundsError, ValidationError
from squadtrack.models import Season
from squadtrack.utils.timezone import DateLike, to_calendar_date


def _as_date(value: DateLike, field: str) -> date:
    try:
        return to_calendar_date(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(
            f"Invalid {field}: {value!r}",
            [{"field": field, "message": str(e)}],
        ) from e


def validate_match_date(match_date: DateLike, season: Season) -> None:
    """
    Ensure ``season.start_date <= match_date <= season.end_date``.

    Raises:
        DateOutOfBoundsError: with the season's valid range
        ValidationError: if the date cannot be parsed
    """
    candidate = _as_date(match_date, "match_date")
    start = to_calendar_date(season.start_date)
    end = to_calendar_date(season.end_date)
    if candidate < start or candidate > end:
        raise DateOutOfBoundsError(candidate, start, end, season_id=season.id)


def is_match_date_valid(match_date: DateLike, season: Season) -> bool:
    """Advisory form of ``validate_match_date`` for form hints."""
    try:
        validate_match_date(match_date, season)
    except (DateOutOfBoundsError, ValidationError):
        return False
    return True


def validate_season_bounds(start_date: DateLike, end_date: DateLike) -> None:
    """
    Raises:
        ValidationError: unless start_date is strictly before end_date
    """
    start = _as_date(start_date, "start_date")
    end = _as_date(end_date, "end_date")
    if start >= end:
        raise ValidationError(
            "Season start date must be before its end date",
            [{
                "field": "end_date",
                "message": f"end_date {end.isoformat()} is not after start_date {start.isoformat()}",
            }],
        )


def seasons_overlap(a_start: DateLike, a_end: DateLike, b_start: DateLike, b_end: DateLike) -> bool:
    """True when two inclusive date ranges share at least one day."""
    return (
        to_calendar_date(a_start) <= to_calendar_date(b_end)
        and to_calendar_date(b_start) <= to_calendar_date(a_end)
    )
