from __future__ import annotations

import datetime as dt

from salonboard.board import Snapshot
from salonboard.shop_config import config_from_document, default_config
from salonboard.state import ClosedDay, OperationalState, Session, SpecialHours
from salonboard.views import (
    closed_days_text,
    render_admin_view,
    render_customer_view,
    special_date_text,
    weekly_hours_summary,
)

WED = dt.date(2026, 10, 21)


def _snapshot(hour: int, minute: int = 0, **kwargs) -> Snapshot:
    kwargs.setdefault("sessions", [None, None])
    kwargs.setdefault("last_checked_date", WED)
    return Snapshot(
        now=dt.datetime.combine(WED, dt.time(hour, minute)),
        config=default_config(),
        state=OperationalState(**kwargs),
    )


def test_weekly_hours_summary_for_default_shop() -> None:
    lines = weekly_hours_summary(default_config())

    assert [line.days for line in lines] == ["Thursday", "Sunday", "Tue/Wed/Fri/Sat"]
    assert (lines[0].hours.open, lines[0].hours.close, lines[0].hours.label) == ("13:00", "21:00", "Night")
    assert (lines[2].hours.open, lines[2].hours.close) == ("09:30", "19:00")


def test_weekly_hours_summary_puts_weekdays_first() -> None:
    weekday = {"closed": False, "open": "10:00", "close": "20:00", "label": "", "note": ""}
    weekend = {"closed": False, "open": "10:00", "close": "17:00", "label": "", "note": ""}
    hours = {str(d): weekday for d in range(1, 6)}
    hours["0"] = hours["6"] = weekend
    config = config_from_document({"businessHours": hours, "closedDays": [], "weeklyClosed": []})

    assert [line.days for line in weekly_hours_summary(config)] == ["Weekdays", "Sun/Sat"]


def test_weekly_hours_summary_collapses_consecutive_days() -> None:
    config = config_from_document({"businessHours": {"4": {"label": "", "note": "", "open": "09:30", "close": "19:00"}}})

    assert [line.days for line in weekly_hours_summary(config)] == ["Sunday", "Tue~Sat"]


def test_closed_days_text() -> None:
    assert closed_days_text(default_config()) == "Mon, 2nd Tue, 3rd Tue"


def test_special_date_text() -> None:
    assert special_date_text(ClosedDay()) == "closed"
    assert special_date_text(SpecialHours(open="10:00", close="15:00", note="event")) == "10:00~15:00 - event"


def test_customer_view_while_open() -> None:
    text = render_customer_view(_snapshot(10, queue_count=2))

    assert "Status: Open" in text
    assert "Today: 09:30 - 19:00" in text
    assert "Your turn: 11:50 ~ 12:15" in text
    assert "Busy. Consider coming a bit later" in text
    assert "  Closed: Mon, 2nd Tue, 3rd Tue" in text


def test_customer_view_marks_the_chair_that_frees_first() -> None:
    sessions = [
        Session(kind="special2", started_at=dt.datetime(2026, 10, 21, 9, 10)),
        Session(kind="cut", started_at=dt.datetime(2026, 10, 21, 10, 0)),
    ]
    text = render_customer_view(_snapshot(10, 30, sessions=sessions))

    assert "  Seat 1: Special 2, 40 min left" in text
    assert "  Seat 2: Cut, 30 min left [next free]" in text


def test_customer_view_while_closed_shows_next_opening() -> None:
    text = render_customer_view(_snapshot(20))

    assert "Status: Closed" in text
    assert "Next opening: 10/22 (Thu) 13:00~" in text
    assert "Your turn: --:-- ~ --:--" in text


def test_admin_view_lists_seats_and_special_dates() -> None:
    busy = Session(kind="cut", started_at=dt.datetime(2026, 10, 21, 9, 45))
    text = render_admin_view(
        _snapshot(10, sessions=[busy, None], special_dates={dt.date(2026, 11, 3): ClosedDay(note="trip")})
    )

    assert "  1: in use, Cut since 09:45, 45 min left" in text
    assert "  2: free" in text
    assert "  2026-11-03 11/3 (Tue): closed - trip" in text
