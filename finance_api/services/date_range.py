from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from finance_api.core.errors import InvalidFormat, InvalidInput, InvalidRange


@dataclass(frozen=True)
class DateRange:
    """Inclusive reporting window, both bounds at day granularity."""

    start: date
    end: date

    def __contains__(self, day: object) -> bool:
        if isinstance(day, datetime):
            day = day.date()
        return isinstance(day, date) and self.start <= day <= self.end


def validate_date_range(start: object, end: object) -> DateRange:
    """
    Parse and validate the reporting window.

    Args:
        start: Start of the window (ISO string, date or datetime)
        end: End of the window (ISO string, date or datetime)

    Returns:
        DateRange with both bounds truncated to dates

    Raises:
        InvalidInput: If either bound is missing
        InvalidFormat: If either bound is not a calendar date
        InvalidRange: If end precedes start
    """
    if _is_missing(start) or _is_missing(end):
        raise InvalidInput("Please provide startDate and endDate")

    start_day = parse_day(start)
    end_day = parse_day(end)
    if start_day is None or end_day is None:
        raise InvalidFormat("Invalid date format")

    if end_day < start_day:
        raise InvalidRange("End date cannot be before start date")

    return DateRange(start=start_day, end=end_day)


def parse_day(value: object) -> date | None:
    """Return the calendar date of ``value`` or None if it is not one.

    Time of day and timezone offsets are dropped, the date is taken as written.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()
