from __future__ import annotations

from datetime import date, datetime, time, timedelta

from birthday_roster.errors import ValidationError

LEAP_DAY_RULES = {"feb28", "mar1"}
DEFAULT_LEAP_DAY_RULE = "feb28"

_ONE_DAY = timedelta(days=1)


class InvalidBirthdayError(ValidationError):
    pass


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def validate_month_day(month: int, day: int, *, allow_feb_29: bool = True) -> None:
    if month < 1 or month > 12:
        raise InvalidBirthdayError(f"Invalid month: {month}")

    if day < 1 or day > 31:
        raise InvalidBirthdayError(f"Invalid day: {day}")

    year = 2000 if allow_feb_29 else 2001
    try:
        date(year, month, day)
    except ValueError as exc:
        raise InvalidBirthdayError(f"Invalid day/month combination: {day:02d}/{month:02d}") from exc


def birthday_date_for_year(day: int, month: int, year: int, leap_day_rule: str) -> date:
    if month == 2 and day == 29 and not is_leap_year(year):
        if leap_day_rule == "feb28":
            return date(year, 2, 28)
        if leap_day_rule == "mar1":
            return date(year, 3, 1)
        raise InvalidBirthdayError(f"Unsupported leap day rule: {leap_day_rule}")
    return date(year, month, day)


def _as_datetime(now: datetime | date) -> datetime:
    if isinstance(now, datetime):
        return now
    return datetime.combine(now, time())


def next_birthday(day: int, month: int, now: datetime | date, leap_day_rule: str = DEFAULT_LEAP_DAY_RULE) -> date:
    today = _as_datetime(now).date()
    this_year = birthday_date_for_year(day, month, today.year, leap_day_rule)
    if this_year >= today:
        return this_year
    return birthday_date_for_year(day, month, today.year + 1, leap_day_rule)


def days_until_birthday(
    day: int,
    month: int,
    now: datetime | date,
    leap_day_rule: str = DEFAULT_LEAP_DAY_RULE,
) -> int:
    """Whole days from ``now`` until the next (day, month), rounded up.

    The occurrence is taken at local midnight. On the birthday itself the
    midnight lies a fraction of a day in the past, which rounds up to 0.
    """
    current = _as_datetime(now)
    occurrence = next_birthday(day, month, current, leap_day_rule)
    candidate = datetime.combine(occurrence, time(), tzinfo=current.tzinfo)
    return -((current - candidate) // _ONE_DAY)
