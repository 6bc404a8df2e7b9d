from __future__ import annotations

import datetime as dt

import pytest

from salonboard.holidays import (
    FIXED_HOLIDAYS,
    autumnal_equinox_day,
    base_holidays,
    holidays_for_year,
    is_holiday,
    nth_weekday,
    vernal_equinox_day,
)


def test_nth_weekday_finds_third_monday_of_september() -> None:
    assert nth_weekday(2026, 9, 1, 3) == dt.date(2026, 9, 21)
    assert nth_weekday(2025, 9, 1, 3) == dt.date(2025, 9, 15)
    # Month starting on the requested weekday.
    assert nth_weekday(2026, 6, 1, 1) == dt.date(2026, 6, 1)


@pytest.mark.parametrize(
    "year, vernal, autumnal",
    [
        (2025, 20, 23),
        (2026, 20, 23),
        (2024, 20, 22),
        (1970, 21, 23),
        (2100, 20, 23),  # outside the approximation range
        (1899, 20, 23),
    ],
)
def test_equinox_days(year: int, vernal: int, autumnal: int) -> None:
    assert vernal_equinox_day(year) == vernal
    assert autumnal_equinox_day(year) == autumnal


def test_pre_1980_equinox_truncates_leap_term_toward_zero() -> None:
    # Flooring the negative leap term would give March 22 for 1978.
    assert vernal_equinox_day(1978) == 21
    assert autumnal_equinox_day(1978) == 23
    assert dt.date(1978, 3, 21) in holidays_for_year(1978)


def test_holidays_2026() -> None:
    days = holidays_for_year(2026)

    expected = {
        dt.date(2026, 1, 1),
        dt.date(2026, 1, 12),
        dt.date(2026, 2, 11),
        dt.date(2026, 2, 23),
        dt.date(2026, 3, 20),
        dt.date(2026, 4, 29),
        dt.date(2026, 5, 3),
        dt.date(2026, 5, 4),
        dt.date(2026, 5, 5),
        dt.date(2026, 7, 20),
        dt.date(2026, 8, 11),
        dt.date(2026, 9, 21),
        dt.date(2026, 9, 22),  # citizens' holiday
        dt.date(2026, 9, 23),
        dt.date(2026, 10, 12),
        dt.date(2026, 11, 3),
        dt.date(2026, 11, 23),
    }
    assert days == expected


def test_sunday_holidays_move_to_monday() -> None:
    days = holidays_for_year(2025)
    # Feb 23 and Nov 23, 2025 are Sundays.
    assert dt.date(2025, 2, 24) in days
    assert dt.date(2025, 11, 24) in days
    # No citizens' holiday: Sep 15 and Sep 23 are 8 days apart.
    assert dt.date(2025, 9, 16) not in days


def test_fixed_holidays_appear_once_before_substitution_for_supported_years() -> None:
    for year in range(1980, 2100):
        base = base_holidays(year)
        assert len(base) == len(set(base)), year
        for month, day in FIXED_HOLIDAYS:
            assert base.count(dt.date(year, month, day)) == 1, (year, month, day)
        assert set(base) <= holidays_for_year(year)


def test_is_holiday() -> None:
    assert is_holiday(dt.date(2026, 1, 1)) is True
    assert is_holiday(dt.date(2026, 1, 2)) is False
