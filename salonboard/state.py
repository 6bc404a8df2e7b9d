from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Union
from zoneinfo import ZoneInfo

from salonboard.domain import format_date, parse_date, parse_hhmm
from salonboard.shop_config import ShopConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """A chair in use: which service and when it started (local wall clock)."""

    kind: str
    started_at: dt.datetime


@dataclass(frozen=True)
class ClosedDay:
    note: str = ""


@dataclass(frozen=True)
class SpecialHours:
    open: str  # HH:MM
    close: str  # HH:MM
    note: str = ""


SpecialDate = Union[ClosedDay, SpecialHours]


@dataclass
class OperationalState:
    queue_count: int = 0
    sessions: list[Session | None] = field(default_factory=list)
    special_dates: dict[dt.date, SpecialDate] = field(default_factory=dict)
    temporarily_closed_today: bool = False
    last_checked_date: dt.date | None = None

    def has_activity(self) -> bool:
        return self.queue_count > 0 or any(s is not None for s in self.sessions)

    def clear_activity(self) -> None:
        self.queue_count = 0
        self.sessions = [None] * len(self.sessions)

    def copy(self) -> OperationalState:
        return replace(self, sessions=list(self.sessions), special_dates=dict(self.special_dates))


def fresh_state(config: ShopConfig, today: dt.date) -> OperationalState:
    return OperationalState(
        queue_count=0,
        sessions=[None] * config.seat_count,
        special_dates={},
        temporarily_closed_today=False,
        last_checked_date=today,
    )


def fit_to_config(state: OperationalState, config: ShopConfig) -> OperationalState:
    """Resize chairs to seat_count and clamp the queue after a load."""
    sessions = list(state.sessions[: config.seat_count])
    sessions.extend([None] * (config.seat_count - len(sessions)))
    state.sessions = sessions
    state.queue_count = max(0, min(state.queue_count, config.max_queue_count))
    return state


def _epoch_ms(moment: dt.datetime, zone: ZoneInfo | None) -> int:
    # Naive wall-clock times belong to the shop zone; None means host local time.
    if zone is not None:
        moment = moment.replace(tzinfo=zone)
    return round(moment.timestamp() * 1000)


def _from_epoch_ms(value: Any, zone: ZoneInfo | None) -> dt.datetime:
    seconds = int(value) / 1000
    if zone is None:
        return dt.datetime.fromtimestamp(seconds)
    return dt.datetime.fromtimestamp(seconds, zone).replace(tzinfo=None)


def _session_to_row(session: Session | None, zone: ZoneInfo | None) -> dict[str, Any] | None:
    if session is None:
        return None
    return {"type": session.kind, "startTime": _epoch_ms(session.started_at, zone)}


def _session_from_row(raw: Any, zone: ZoneInfo | None) -> Session | None:
    if raw is None:
        return None
    return Session(
        kind=str(raw["type"]),
        started_at=_from_epoch_ms(raw["startTime"], zone),
    )


def special_date_to_row(entry: SpecialDate) -> dict[str, Any]:
    if isinstance(entry, ClosedDay):
        row: dict[str, Any] = {"closed": True}
    else:
        row = {"closed": False, "open": entry.open, "close": entry.close}
    if entry.note:
        row["note"] = entry.note
    return row


def special_date_from_row(raw: dict[str, Any]) -> SpecialDate:
    note = str(raw.get("note") or "")
    if raw.get("closed"):
        return ClosedDay(note=note)
    return SpecialHours(open=parse_hhmm(raw["open"]), close=parse_hhmm(raw["close"]), note=note)


def state_to_row(state: OperationalState, zone: ZoneInfo | None = None) -> dict[str, Any]:
    return {
        "waiting_count": state.queue_count,
        "active_services": [_session_to_row(s, zone) for s in state.sessions],
        "special_dates": {format_date(d): special_date_to_row(e) for d, e in sorted(state.special_dates.items())},
        "temporary_closed_today": state.temporarily_closed_today,
        "last_checked_date": format_date(state.last_checked_date) if state.last_checked_date else None,
    }


def _as_list(value: Any, name: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning("Ignoring malformed %s: %r", name, value)
        return []
    return value


def _as_dict(value: Any, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning("Ignoring malformed %s: %r", name, value)
        return {}
    return value


def state_from_row(row: dict[str, Any], zone: ZoneInfo | None = None) -> OperationalState:
    sessions: list[Session | None] = []
    for item in _as_list(row.get("active_services"), "active_services"):
        try:
            sessions.append(_session_from_row(item, zone))
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping malformed session entry: %r", item)
            sessions.append(None)

    special_dates: dict[dt.date, SpecialDate] = {}
    for key, item in _as_dict(row.get("special_dates"), "special_dates").items():
        try:
            special_dates[parse_date(key)] = special_date_from_row(item)
        except (KeyError, TypeError, ValueError, AttributeError):
            logger.warning("Skipping malformed special date %r: %r", key, item)

    last_checked_raw = row.get("last_checked_date")
    try:
        last_checked = parse_date(last_checked_raw) if last_checked_raw else None
    except ValueError:
        logger.warning("Ignoring malformed last_checked_date: %r", last_checked_raw)
        last_checked = None

    return OperationalState(
        queue_count=int(row.get("waiting_count") or 0),
        sessions=sessions,
        special_dates=dict(sorted(special_dates.items())),
        temporarily_closed_today=bool(row.get("temporary_closed_today") or False),
        last_checked_date=last_checked,
    )
