from __future__ import annotations

import datetime as dt
import math
import re
from dataclasses import dataclass

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_hhmm(value: str) -> str:
    """Validate a 24h ``HH:MM`` string and return it unchanged.

    Hours are only validated at the boundary (config/state loading, CLI input);
    the engine assumes well-formed values afterwards.
    """
    if not isinstance(value, str) or not _HHMM_RE.match(value):
        raise ValueError(f"Invalid time of day: {value!r}. Expected HH:MM.")
    return value


def to_minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def check_hours_order(open_: str, close: str) -> None:
    if to_minutes(open_) >= to_minutes(close):
        raise ValueError(f"open {open_} is not before close {close}")


def minutes_of_day(moment: dt.datetime) -> int:
    return moment.hour * 60 + moment.minute


def format_hhmm(moment: dt.datetime | dt.time) -> str:
    return f"{moment.hour:02d}:{moment.minute:02d}"


def parse_date(value: str) -> dt.date:
    # YYYY-MM-DD only, zero padded.
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValueError(f"Invalid date: {value!r}. Expected YYYY-MM-DD.")
    try:
        return dt.datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid date: {value!r}. Expected YYYY-MM-DD.") from e


def format_date(day: dt.date) -> str:
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def weekday_index(day: dt.date) -> int:
    """0=Sunday .. 6=Saturday, the numbering used in shop configuration."""
    return (day.weekday() + 1) % 7


def ceil5(minutes: int) -> int:
    return math.ceil(minutes / 5) * 5


@dataclass(frozen=True)
class DayHours:
    """Opening hours that apply to one calendar day."""

    closed: bool
    open: str = "09:30"  # HH:MM
    close: str = "19:00"  # HH:MM
    label: str = ""
    note: str = ""
    is_holiday: bool = False

    @property
    def open_minutes(self) -> int:
        return to_minutes(self.open)

    @property
    def close_minutes(self) -> int:
        return to_minutes(self.close)


CLOSED_DAY = DayHours(closed=True)


class StoreError(RuntimeError):
    """Persistence backend failed (load or save).

    The board treats it as recoverable: load falls back to defaults/fresh
    state, save is logged and the in-memory copy stays authoritative.
    """


class BoardError(RuntimeError):
    """An admin action was rejected."""


class InvalidSeatError(BoardError):
    pass


class SeatOccupiedError(BoardError):
    pass


class QueueLimitError(BoardError):
    pass


class UnknownServiceError(BoardError):
    pass


class InvalidHoursError(BoardError):
    pass
