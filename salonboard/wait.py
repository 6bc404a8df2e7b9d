from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from salonboard.domain import ceil5, format_hhmm, minutes_of_day
from salonboard.schedule import effective_hours, is_open_now
from salonboard.shop_config import ShopConfig
from salonboard.state import OperationalState, Session


@dataclass(frozen=True)
class SeatTiming:
    seat: int  # 0-based chair index
    session: Session
    remaining: int  # minutes


def remaining_minutes(session: Session, now: dt.datetime, config: ShopConfig) -> int:
    elapsed = math.floor((now - session.started_at).total_seconds() / 60)
    return max(0, config.duration(session.kind) - elapsed)


def seat_timings(sessions: Sequence[Session | None], now: dt.datetime, config: ShopConfig) -> list[SeatTiming]:
    return [
        SeatTiming(seat=i, session=s, remaining=remaining_minutes(s, now, config))
        for i, s in enumerate(sessions)
        if s is not None
    ]


def earliest_freeing(sessions: Sequence[Session | None], now: dt.datetime, config: ShopConfig) -> SeatTiming | None:
    """Active chair that frees up first; the lowest seat index wins ties."""
    earliest: SeatTiming | None = None
    for timing in seat_timings(sessions, now, config):
        if earliest is None or timing.remaining < earliest.remaining:
            earliest = timing
    return earliest


def total_wait_minutes(now: dt.datetime, config: ShopConfig, state: OperationalState) -> int:
    # Waiting customers are always estimated with the primary (cut) duration.
    earliest = earliest_freeing(state.sessions, now, config)
    base = earliest.remaining if earliest else 0
    return base + state.queue_count * config.primary_minutes


class WindowKind(str, Enum):
    CLOSED = "closed"
    IMMEDIATE = "immediate"
    CLOSED_TODAY = "closed_today"
    RECEPTION_ENDED = "reception_ended"
    POINT = "point"
    RANGE = "range"


@dataclass(frozen=True)
class WaitWindow:
    kind: WindowKind
    start: dt.datetime | None = None
    end: dt.datetime | None = None
    close: str | None = None
    next_free_in: int | None = None

    def describe(self) -> str:
        if self.kind is WindowKind.CLOSED:
            return "--:-- ~ --:--"
        if self.kind is WindowKind.IMMEDIATE:
            return "Available now"
        if self.kind is WindowKind.CLOSED_TODAY:
            return "Closed today"
        if self.kind is WindowKind.RECEPTION_ENDED:
            return f"Reception ended (closing at {self.close})"
        if self.kind is WindowKind.POINT:
            return f"around {format_hhmm(self.end)}"
        return f"{format_hhmm(self.start)} ~ {format_hhmm(self.end)}"


def round_up_clock(moment: dt.datetime) -> dt.datetime:
    """Round the minute-of-hour up to a multiple of five (55 -> 55, 58 -> next hour)."""
    return moment.replace(minute=0, second=0, microsecond=0) + dt.timedelta(minutes=ceil5(moment.minute))


def widen(total: int) -> tuple[int, int]:
    """(low, high) estimate: -10% / +10%, each rounded up to five minutes."""
    low = ceil5(total * 9 // 10)
    high = ceil5(-(-total * 11 // 10))
    return low, high


def projected_window(now: dt.datetime, config: ShopConfig, state: OperationalState) -> WaitWindow:
    """When a customer arriving now would be served."""
    if not is_open_now(now, config, state):
        return WaitWindow(kind=WindowKind.CLOSED)

    earliest = earliest_freeing(state.sessions, now, config)
    if state.queue_count == 0 and earliest is None:
        return WaitWindow(kind=WindowKind.IMMEDIATE)

    hours = effective_hours(now.date(), config, state)
    if hours.closed:
        return WaitWindow(kind=WindowKind.CLOSED_TODAY)

    base = earliest.remaining if earliest else 0
    total = base + state.queue_count * config.primary_minutes
    low, high = widen(total)
    next_free_in = base if base > 0 else None

    if minutes_of_day(now) + high + config.primary_minutes > hours.close_minutes:
        return WaitWindow(kind=WindowKind.RECEPTION_ENDED, close=hours.close)

    start_of_minute = now.replace(second=0, microsecond=0)
    end = round_up_clock(start_of_minute + dt.timedelta(minutes=high))
    if low == high or low == 0:
        return WaitWindow(kind=WindowKind.POINT, end=end, next_free_in=next_free_in)

    start = round_up_clock(start_of_minute + dt.timedelta(minutes=low))
    return WaitWindow(kind=WindowKind.RANGE, start=start, end=end, next_free_in=next_free_in)


class Recommendation(str, Enum):
    CLOSED = "closed"
    RECEPTION_ENDED = "reception_ended"
    NOW = "now"
    SHORT_WAIT = "short_wait"
    BUSY = "busy"
    VERY_BUSY = "very_busy"


RECOMMENDATION_TEXT = {
    Recommendation.CLOSED: "Outside business hours",
    Recommendation.RECEPTION_ENDED: "Reception has ended for today",
    Recommendation.NOW: "Come in now, no waiting",
    Recommendation.SHORT_WAIT: "Come in (you may wait a little)",
    Recommendation.BUSY: "Busy. Consider coming a bit later",
    Recommendation.VERY_BUSY: "Very busy. Another time is recommended",
}


def recommendation(now: dt.datetime, config: ShopConfig, state: OperationalState) -> Recommendation:
    if not is_open_now(now, config, state):
        return Recommendation.CLOSED
    if projected_window(now, config, state).kind is WindowKind.RECEPTION_ENDED:
        return Recommendation.RECEPTION_ENDED

    wait = total_wait_minutes(now, config, state)
    if wait == 0:
        return Recommendation.NOW
    if wait <= 60:
        return Recommendation.SHORT_WAIT
    if wait <= 120:
        return Recommendation.BUSY
    return Recommendation.VERY_BUSY
