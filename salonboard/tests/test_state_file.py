from __future__ import annotations

import datetime as dt
import json
import os
import time
from zoneinfo import ZoneInfo

import pytest

from salonboard.board import Board, StartSession
from salonboard.domain import StoreError
from salonboard.shop_config import config_from_document, default_config
from salonboard.state import (
    ClosedDay,
    OperationalState,
    Session,
    SpecialHours,
    fit_to_config,
    state_from_row,
    state_to_row,
)
from salonboard.state_file import FileConfigStore, FileStateStore


def _state() -> OperationalState:
    return OperationalState(
        queue_count=2,
        sessions=[Session(kind="cut", started_at=dt.datetime(2026, 10, 21, 10, 5)), None],
        special_dates={
            dt.date(2026, 10, 25): ClosedDay(note="staff trip"),
            dt.date(2026, 11, 2): SpecialHours(open="10:00", close="16:00"),
        },
        temporarily_closed_today=True,
        last_checked_date=dt.date(2026, 10, 21),
    )


def test_state_row_round_trip() -> None:
    state = _state()
    assert state_from_row(json.loads(json.dumps(state_to_row(state)))) == state


def test_state_row_wire_format() -> None:
    row = state_to_row(_state())

    assert row["waiting_count"] == 2
    assert row["active_services"][1] is None
    assert row["active_services"][0]["type"] == "cut"
    assert isinstance(row["active_services"][0]["startTime"], int)
    assert row["special_dates"] == {
        "2026-10-25": {"closed": True, "note": "staff trip"},
        "2026-11-02": {"closed": False, "open": "10:00", "close": "16:00"},
    }
    assert row["temporary_closed_today"] is True
    assert row["last_checked_date"] == "2026-10-21"


def test_state_from_row_skips_malformed_entries() -> None:
    state = state_from_row(
        {
            "waiting_count": None,
            "active_services": [{"type": "cut"}, None],
            "special_dates": {"not-a-date": {"closed": True}, "2026-10-25": {"closed": False, "open": "25:00"}},
            "last_checked_date": None,
        }
    )

    assert state.queue_count == 0
    assert state.sessions == [None, None]
    assert state.special_dates == {}
    assert state.last_checked_date is None


def test_fit_to_config_resizes_seats_and_clamps_queue() -> None:
    state = OperationalState(queue_count=9, sessions=[None])
    fit_to_config(state, config_from_document({"waiting": {"seatCount": 3, "maxCount": 4}}))
    assert state.sessions == [None, None, None]
    assert state.queue_count == 4

    busy = Session(kind="cut", started_at=dt.datetime(2026, 10, 21, 10, 0))
    state = OperationalState(sessions=[busy, None, busy])
    fit_to_config(state, default_config())
    assert state.sessions == [busy, None]


def test_file_state_store_round_trip(tmp_path) -> None:
    store = FileStateStore(str(tmp_path / "nested" / "state.json"))
    store.save(_state())
    assert store.load() == _state()


def test_file_state_store_missing_or_corrupt_file_raises(tmp_path) -> None:
    path = tmp_path / "state.json"
    store = FileStateStore(str(path))

    with pytest.raises(StoreError, match="No saved state"):
        store.load()

    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StoreError, match="Cannot read"):
        store.load()


def test_file_state_store_poll_notifies_on_external_write(tmp_path) -> None:
    path = str(tmp_path / "state.json")
    ours = FileStateStore(path)
    theirs = FileStateStore(path)

    ours.save(OperationalState(sessions=[None, None], last_checked_date=dt.date(2026, 10, 21)))
    ours.load()
    received: list[OperationalState] = []
    ours.subscribe(received.append)

    assert ours.poll() is False

    theirs.save(_state())
    # Make sure the write is visible even on filesystems with coarse timestamps.
    stat = os.stat(path)
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))

    assert ours.poll() is True
    assert received == [_state()]
    assert ours.poll() is False


def test_file_config_store_defaults_when_missing(tmp_path) -> None:
    store = FileConfigStore(str(tmp_path / "shop_settings.json"))
    assert store.load() == default_config()


def test_file_config_store_merges_partial_document(tmp_path) -> None:
    path = tmp_path / "shop_settings.json"
    path.write_text(json.dumps({"shop": {"name": "Barber K"}, "waiting": {"seatCount": 3}}), encoding="utf-8")

    config = FileConfigStore(str(path)).load()
    assert config.shop.name == "Barber K"
    assert config.seat_count == 3
    assert config.max_queue_count == 3


def test_file_config_store_save_and_load(tmp_path) -> None:
    store = FileConfigStore(str(tmp_path / "shop_settings.json"))
    config = config_from_document({"closedDays": [0]})
    store.save(config)
    assert store.load() == config


@pytest.fixture
def host_in_utc(monkeypatch: pytest.MonkeyPatch):
    # Host clock in UTC while the shop runs on Tokyo time.
    monkeypatch.setenv("TZ", "UTC")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


def test_start_time_is_encoded_in_the_shop_zone(host_in_utc) -> None:
    tokyo = ZoneInfo("Asia/Tokyo")
    state = OperationalState(sessions=[Session(kind="cut", started_at=dt.datetime(2026, 10, 21, 10, 0))])

    row = state_to_row(state, tokyo)

    utc_start = dt.datetime(2026, 10, 21, 1, 0, tzinfo=dt.timezone.utc)
    assert row["active_services"][0]["startTime"] == int(utc_start.timestamp() * 1000)
    assert state_from_row(row, tokyo) == state


def test_board_in_shop_zone_persists_true_epoch(host_in_utc, tmp_path) -> None:
    path = str(tmp_path / "state.json")
    tokyo_clock = lambda: dt.datetime(2026, 10, 21, 10, 0)  # noqa: E731
    store = FileStateStore(path, ZoneInfo("Asia/Tokyo"))
    board = Board(FileConfigStore(str(tmp_path / "shop_settings.json")), store, clock=tokyo_clock)
    board.start()

    board.execute(StartSession(seat=0, kind="cut"))

    with open(path, encoding="utf-8") as f:
        row = json.load(f)
    utc_start = dt.datetime(2026, 10, 21, 1, 0, tzinfo=dt.timezone.utc)
    assert row["active_services"][0]["startTime"] == int(utc_start.timestamp() * 1000)
    assert store.load().sessions[0] == Session(kind="cut", started_at=dt.datetime(2026, 10, 21, 10, 0))


def test_state_from_row_ignores_wrongly_shaped_collections() -> None:
    state = state_from_row(
        {
            "waiting_count": 1,
            "active_services": {"0": {"type": "cut"}},
            "special_dates": ["2026-01-01"],
            "last_checked_date": "2026-10-21",
        }
    )

    assert state.queue_count == 1
    assert state.sessions == []
    assert state.special_dates == {}


def test_board_starts_from_row_with_special_dates_list(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text(
        json.dumps({"waiting_count": 2, "active_services": [None, None], "special_dates": ["2026-01-01"]}),
        encoding="utf-8",
    )
    clock = lambda: dt.datetime(2026, 10, 21, 10, 0)  # noqa: E731
    board = Board(FileConfigStore(str(tmp_path / "shop_settings.json")), FileStateStore(str(path)), clock=clock)

    snapshot = board.start()

    assert snapshot.state.special_dates == {}
    assert snapshot.state.queue_count == 2


def test_unreadable_row_falls_back_to_fresh_state(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"waiting_count": ["x"]}), encoding="utf-8")
    clock = lambda: dt.datetime(2026, 10, 21, 10, 0)  # noqa: E731
    board = Board(FileConfigStore(str(tmp_path / "shop_settings.json")), FileStateStore(str(path)), clock=clock)

    snapshot = board.start()

    assert snapshot.state == OperationalState(sessions=[None, None], last_checked_date=dt.date(2026, 10, 21))
