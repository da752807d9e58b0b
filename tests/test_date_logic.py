from datetime import date, datetime, timezone

import pytest

from birthday_roster.date_logic import (
    InvalidBirthdayError,
    birthday_date_for_year,
    days_until_birthday,
    is_leap_year,
    next_birthday,
    validate_month_day,
)
from birthday_roster.errors import ValidationError


def test_days_until_future_date_same_year() -> None:
    assert days_until_birthday(14, 3, date(2026, 3, 1)) == 13


def test_days_until_next_year_after_passed() -> None:
    today = date(2026, 6, 1)

    assert days_until_birthday(2, 1, today) == (date(2027, 1, 2) - today).days


def test_days_until_rounds_up_partial_days() -> None:
    now = datetime(2024, 12, 30, 18, 30)

    assert days_until_birthday(31, 12, now) == 1
    assert days_until_birthday(1, 1, now) == 2


def test_birthday_today_is_zero_at_any_time_of_day() -> None:
    assert days_until_birthday(14, 3, datetime(2026, 3, 14, 0, 0)) == 0
    assert days_until_birthday(14, 3, datetime(2026, 3, 14, 9, 15)) == 0
    assert days_until_birthday(14, 3, datetime(2026, 3, 14, 23, 59, 59)) == 0


def test_day_after_birthday_rolls_to_next_year() -> None:
    now = datetime(2026, 3, 15, 0, 0)

    assert next_birthday(14, 3, now) == date(2027, 3, 14)
    assert days_until_birthday(14, 3, now) == 364


def test_year_end_rollover() -> None:
    assert days_until_birthday(1, 1, datetime(2024, 12, 31, 12, 0)) == 1
    assert next_birthday(1, 1, date(2024, 12, 31)) == date(2025, 1, 1)


def test_same_inputs_same_result() -> None:
    now = datetime(2025, 7, 4, 13, 45)

    results = {days_until_birthday(9, 11, now) for _ in range(5)}
    assert len(results) == 1


def test_result_never_negative_across_a_leap_year() -> None:
    start = date(2024, 1, 1)
    for offset in range(0, 366, 7):
        now = datetime.fromordinal(start.toordinal() + offset).replace(hour=23, minute=30)
        for month, day in ((1, 1), (2, 29), (6, 15), (12, 31)):
            assert days_until_birthday(day, month, now) >= 0


def test_timezone_aware_now_keeps_tzinfo() -> None:
    now = datetime(2025, 5, 1, 6, 0, tzinfo=timezone.utc)

    assert days_until_birthday(2, 5, now) == 1


def test_feb_29_maps_to_feb_28_on_non_leap_year() -> None:
    today = date(2025, 2, 27)

    assert next_birthday(29, 2, today, "feb28") == date(2025, 2, 28)
    assert days_until_birthday(29, 2, today, "feb28") == 1


def test_feb_29_maps_to_mar_1_when_configured() -> None:
    today = date(2025, 2, 27)

    assert next_birthday(29, 2, today, "mar1") == date(2025, 3, 1)
    assert days_until_birthday(29, 2, today, "mar1") == 2


def test_feb_29_keeps_date_on_leap_year() -> None:
    assert next_birthday(29, 2, date(2028, 2, 27), "feb28") == date(2028, 2, 29)


def test_feb_29_after_substitute_day_waits_for_next_year() -> None:
    assert next_birthday(29, 2, date(2027, 3, 1), "feb28") == date(2028, 2, 29)


def test_unknown_leap_rule_rejected() -> None:
    with pytest.raises(ValidationError):
        birthday_date_for_year(29, 2, 2025, "never")


def test_is_leap_year() -> None:
    assert is_leap_year(2024)
    assert is_leap_year(2000)
    assert not is_leap_year(1900)
    assert not is_leap_year(2025)


@pytest.mark.parametrize(("month", "day"), [(0, 1), (13, 1), (1, 0), (1, 32), (4, 31), (2, 30)])
def test_validate_month_day_rejects(month: int, day: int) -> None:
    with pytest.raises(InvalidBirthdayError):
        validate_month_day(month, day)


def test_validate_month_day_feb_29_flag() -> None:
    validate_month_day(2, 29, allow_feb_29=True)
    with pytest.raises(InvalidBirthdayError):
        validate_month_day(2, 29, allow_feb_29=False)
