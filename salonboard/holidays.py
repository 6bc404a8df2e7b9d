"""Japanese national holidays.

Movable holidays are computed from the calendar; the equinox days use the
usual linear approximation, which is only valid for 1900-2099. Outside that
range the equinoxes are pinned to March 20 and September 23.
"""

from __future__ import annotations

import datetime as dt
import math
from functools import lru_cache

from salonboard.domain import weekday_index

# (month, day)
FIXED_HOLIDAYS: tuple[tuple[int, int], ...] = (
    (1, 1),  # New Year's Day
    (2, 11),  # National Foundation Day
    (2, 23),  # Emperor's Birthday
    (4, 29),  # Showa Day
    (5, 3),  # Constitution Memorial Day
    (5, 4),  # Greenery Day
    (5, 5),  # Children's Day
    (8, 11),  # Mountain Day
    (11, 3),  # Culture Day
    (11, 23),  # Labour Thanksgiving Day
)

MONDAY = 1

# (month, n): the Nth Monday of the month
HAPPY_MONDAYS: tuple[tuple[int, int], ...] = (
    (1, 2),  # Coming of Age Day
    (7, 3),  # Marine Day
    (9, 3),  # Respect for the Aged Day
    (10, 2),  # Sports Day
)


def nth_weekday(year: int, month: int, weekday: int, n: int) -> dt.date:
    """Nth ``weekday`` (0=Sunday) of the month."""
    first = weekday_index(dt.date(year, month, 1))
    day = (weekday - first + 7) % 7 + 1 + (n - 1) * 7
    return dt.date(year, month, day)


def vernal_equinox_day(year: int) -> int:
    # Before 1980 the leap-year term is negative and is truncated toward zero.
    if 1900 <= year <= 1979:
        return math.floor(20.8357 + 0.242194 * (year - 1980) - int((year - 1983) / 4))
    if 1980 <= year <= 2099:
        return math.floor(20.8431 + 0.242194 * (year - 1980) - (year - 1980) // 4)
    return 20


def autumnal_equinox_day(year: int) -> int:
    if 1900 <= year <= 1979:
        return math.floor(23.2588 + 0.242194 * (year - 1980) - int((year - 1983) / 4))
    if 1980 <= year <= 2099:
        return math.floor(23.2488 + 0.242194 * (year - 1980) - (year - 1980) // 4)
    return 23


def base_holidays(year: int) -> list[dt.date]:
    days = [dt.date(year, month, day) for month, day in FIXED_HOLIDAYS]
    days.extend(nth_weekday(year, month, MONDAY, n) for month, n in HAPPY_MONDAYS)
    days.append(dt.date(year, 3, vernal_equinox_day(year)))
    days.append(dt.date(year, 9, autumnal_equinox_day(year)))
    return days


@lru_cache(maxsize=64)
def holidays_for_year(year: int) -> frozenset[dt.date]:
    base = base_holidays(year)

    # A holiday on Sunday is observed on the following Monday.
    extra = [d + dt.timedelta(days=1) for d in base if weekday_index(d) == 0]

    # Citizens' holiday: a single day sandwiched between Respect for the Aged
    # Day and the autumnal equinox.
    aged_day = nth_weekday(year, 9, MONDAY, 3)
    equinox = dt.date(year, 9, autumnal_equinox_day(year))
    if (equinox - aged_day).days == 2:
        extra.append(aged_day + dt.timedelta(days=1))

    return frozenset(base) | frozenset(extra)


def is_holiday(day: dt.date) -> bool:
    return day in holidays_for_year(day.year)
