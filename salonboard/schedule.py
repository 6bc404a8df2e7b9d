from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass

from salonboard.domain import CLOSED_DAY, DayHours, minutes_of_day, weekday_index
from salonboard.holidays import is_holiday
from salonboard.shop_config import ShopConfig
from salonboard.state import ClosedDay, OperationalState, SpecialDate

FALLBACK_HOURS = DayHours(closed=False, open="09:30", close="19:00")

# How far ahead next_opening looks for an open day.
LOOKAHEAD_DAYS = 14

DAY_NAMES_SHORT = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


def week_of_month(day: dt.date) -> int:
    return math.ceil(day.day / 7)


def _special_hours(entry: SpecialDate) -> DayHours:
    if isinstance(entry, ClosedDay):
        return DayHours(closed=True, note=entry.note)
    return DayHours(closed=False, open=entry.open, close=entry.close, note=entry.note)


def effective_hours(day: dt.date, config: ShopConfig, state: OperationalState) -> DayHours:
    """Hours that apply on ``day``.

    Precedence: special date, weekly closed day, Nth-weekday closure, holiday
    hours (only on override weekdays), regular weekly hours, fallback.
    """
    special = state.special_dates.get(day)
    if special is not None:
        return _special_hours(special)

    weekday = weekday_index(day)
    if weekday in config.closed_weekdays:
        return CLOSED_DAY

    week = week_of_month(day)
    for closure in config.nth_weekday_closures:
        if closure.weekday == weekday and closure.week == week:
            return CLOSED_DAY

    # A holiday on a non-override weekday keeps the regular hours.
    if weekday in config.holiday_override_weekdays and is_holiday(day):
        return DayHours(
            closed=False,
            open=config.holiday_hours.open,
            close=config.holiday_hours.close,
            is_holiday=True,
        )

    hours = config.weekly_hours.get(weekday)
    if hours is not None:
        return hours

    return FALLBACK_HOURS


def is_open_now(now: dt.datetime, config: ShopConfig, state: OperationalState) -> bool:
    if state.temporarily_closed_today:
        return False

    hours = effective_hours(now.date(), config, state)
    if hours.closed:
        return False

    current = minutes_of_day(now)
    return hours.open_minutes <= current < hours.close_minutes


@dataclass(frozen=True)
class NextOpening:
    day: dt.date
    open: str  # HH:MM
    today: bool


def next_opening(now: dt.datetime, config: ShopConfig, state: OperationalState) -> NextOpening | None:
    today = now.date()
    hours = effective_hours(today, config, state)
    if not hours.closed and not state.temporarily_closed_today and minutes_of_day(now) < hours.open_minutes:
        return NextOpening(day=today, open=hours.open, today=True)

    for offset in range(1, LOOKAHEAD_DAYS + 1):
        day = today + dt.timedelta(days=offset)
        hours = effective_hours(day, config, state)
        if not hours.closed:
            return NextOpening(day=day, open=hours.open, today=False)

    return None


def format_short_date(day: dt.date) -> str:
    return f"{day.month}/{day.day} ({DAY_NAMES_SHORT[weekday_index(day)]})"


def next_opening_description(now: dt.datetime, config: ShopConfig, state: OperationalState) -> str:
    opening = next_opening(now, config, state)
    if opening is None:
        return "Undetermined"
    if opening.today:
        return f"Today {opening.open}~"
    return f"{format_short_date(opening.day)} {opening.open}~"
