from __future__ import annotations

import datetime as dt
import logging
import queue
import time
from dataclasses import dataclass
from typing import Callable, Union
from zoneinfo import ZoneInfo

from salonboard.config import Settings
from salonboard.domain import (
    BoardError,
    InvalidHoursError,
    InvalidSeatError,
    QueueLimitError,
    SeatOccupiedError,
    StoreError,
    UnknownServiceError,
    check_hours_order,
)
from salonboard.lifecycle import prune_expired_special_dates, reconcile
from salonboard.shop_config import ShopConfig, default_config
from salonboard.state import OperationalState, Session, SpecialDate, SpecialHours, fit_to_config, fresh_state
from salonboard.store import ConfigStore, StateStore, build_stores

logger = logging.getLogger(__name__)

Clock = Callable[[], dt.datetime]


def local_clock(timezone: str | None = None) -> Clock:
    """Naive wall-clock ``now`` for the shop's zone (host local time by default)."""
    if not timezone:
        return dt.datetime.now
    zone = ZoneInfo(timezone)
    return lambda: dt.datetime.now(zone).replace(tzinfo=None)


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class RemoteUpdate:
    state: OperationalState


@dataclass(frozen=True)
class StartSession:
    seat: int  # 0-based
    kind: str


@dataclass(frozen=True)
class EndSession:
    seat: int


@dataclass(frozen=True)
class ChangeQueue:
    delta: int


@dataclass(frozen=True)
class SetQueue:
    count: int


@dataclass(frozen=True)
class AddSpecialDate:
    day: dt.date
    entry: SpecialDate


@dataclass(frozen=True)
class RemoveSpecialDate:
    day: dt.date


@dataclass(frozen=True)
class SetTemporaryClosure:
    closed: bool


Command = Union[
    Tick,
    RemoteUpdate,
    StartSession,
    EndSession,
    ChangeQueue,
    SetQueue,
    AddSpecialDate,
    RemoveSpecialDate,
    SetTemporaryClosure,
]


@dataclass(frozen=True)
class Snapshot:
    now: dt.datetime
    config: ShopConfig
    state: OperationalState


class Board:
    """Owns the in-memory shop state.

    Every trigger (timer tick, remote change, admin action) is a command on
    one queue, drained by a single thread, so state changes never overlap.
    Local changes are applied first and persisted right after; a remote
    update replaces the local copy (last write wins).
    """

    def __init__(self, config_store: ConfigStore, state_store: StateStore, *, clock: Clock = dt.datetime.now) -> None:
        self._config_store = config_store
        self._state_store = state_store
        self._clock = clock
        self._inbox: queue.Queue[Command] = queue.Queue()
        self.config: ShopConfig = default_config()
        self.state: OperationalState = OperationalState()

    def start(self) -> Snapshot:
        today = self._clock().date()
        self.config = self._load_config()
        self.state = fit_to_config(self._load_state(today), self.config)

        if prune_expired_special_dates(self.state, today):
            self._persist()

        self._state_store.subscribe(lambda state: self.submit(RemoteUpdate(state)))
        return self.process()

    def _load_config(self) -> ShopConfig:
        try:
            return self._config_store.load()
        except StoreError as e:
            logger.warning("Shop settings unavailable, using defaults (%s)", e)
            return default_config()

    def _load_state(self, today: dt.date) -> OperationalState:
        try:
            return self._state_store.load()
        except StoreError as e:
            logger.warning("Shop state unavailable, starting fresh (%s)", e)
            state = fresh_state(self.config, today)
            self.state = state
            self._persist()
            return state

    def save_config(self) -> None:
        self._config_store.save(self.config)

    def snapshot(self) -> Snapshot:
        return Snapshot(now=self._clock(), config=self.config, state=self.state.copy())

    def submit(self, command: Command) -> None:
        self._inbox.put(command)

    def poll_remote(self) -> None:
        try:
            self._state_store.poll()
        except StoreError as e:
            logger.warning("Remote change check failed (%s)", e)

    def process(self, *, strict: bool = False) -> Snapshot:
        """Drain pending commands, then run the reset rules.

        With ``strict`` the first rejected command is re-raised after the
        queue has been drained.
        """
        rejected: BoardError | None = None
        while True:
            try:
                command = self._inbox.get_nowait()
            except queue.Empty:
                break
            try:
                self._apply(command)
            except BoardError as e:
                logger.warning("Rejected %s (%s)", type(command).__name__, e)
                if rejected is None:
                    rejected = e

        self._reconcile()

        if strict and rejected is not None:
            raise rejected
        return self.snapshot()

    def execute(self, command: Command) -> Snapshot:
        self.submit(command)
        return self.process(strict=True)

    def _reconcile(self) -> None:
        _, reset = reconcile(self.state, self._clock(), self.config)
        if reset:
            self._persist()

    def _persist(self) -> None:
        try:
            self._state_store.save(self.state)
        except StoreError as e:
            # No retry: the in-memory copy stays authoritative until the next save.
            logger.error("Failed to save state (%s)", e)

    def _check_seat(self, seat: int) -> None:
        if not 0 <= seat < len(self.state.sessions):
            raise InvalidSeatError(f"Seat {seat + 1} does not exist (seats: {len(self.state.sessions)})")

    def _apply(self, command: Command) -> None:
        if isinstance(command, Tick):
            return

        if isinstance(command, RemoteUpdate):
            self.state = fit_to_config(command.state, self.config)
            logger.info("Remote state received (queue=%d)", self.state.queue_count)
            return

        if isinstance(command, StartSession):
            self._check_seat(command.seat)
            if command.kind not in self.config.services:
                raise UnknownServiceError(f"Unknown service: {command.kind!r}")
            if self.state.sessions[command.seat] is not None:
                raise SeatOccupiedError(f"Seat {command.seat + 1} is already in use")
            self.state.sessions[command.seat] = Session(kind=command.kind, started_at=self._clock())
            if self.state.queue_count > 0:
                self.state.queue_count -= 1
            logger.info("Seat %d: %s started", command.seat + 1, command.kind)

        elif isinstance(command, EndSession):
            self._check_seat(command.seat)
            if self.state.sessions[command.seat] is None:
                return
            self.state.sessions[command.seat] = None
            logger.info("Seat %d: service finished", command.seat + 1)

        elif isinstance(command, ChangeQueue):
            count = self.state.queue_count + command.delta
            if count > self.config.max_queue_count:
                raise QueueLimitError(f"The waiting area holds at most {self.config.max_queue_count}")
            if count < 0:
                return
            self.state.queue_count = count

        elif isinstance(command, SetQueue):
            if not 0 <= command.count <= self.config.max_queue_count:
                raise QueueLimitError(f"Queue must be between 0 and {self.config.max_queue_count}")
            self.state.queue_count = command.count

        elif isinstance(command, AddSpecialDate):
            if isinstance(command.entry, SpecialHours):
                try:
                    check_hours_order(command.entry.open, command.entry.close)
                except ValueError as e:
                    raise InvalidHoursError(str(e)) from e
            self.state.special_dates[command.day] = command.entry
            self.state.special_dates = dict(sorted(self.state.special_dates.items()))
            logger.info("Special date %s set", command.day)

        elif isinstance(command, RemoveSpecialDate):
            if self.state.special_dates.pop(command.day, None) is None:
                return
            logger.info("Special date %s removed", command.day)

        elif isinstance(command, SetTemporaryClosure):
            self.state.temporarily_closed_today = command.closed
            logger.info("Temporary closure %s", "on" if command.closed else "off")

        else:
            raise TypeError(f"Unsupported command: {command!r}")

        self._persist()


def open_board(settings: Settings) -> Board:
    config_store, state_store = build_stores(settings)
    board = Board(config_store, state_store, clock=local_clock(settings.shop_timezone))
    board.start()
    return board


def run_forever(settings: Settings, on_update: Callable[[Snapshot], None]) -> None:
    board = open_board(settings)
    logger.info("Board started. Interval=%ss", settings.check_interval_seconds)
    while True:
        try:
            board.poll_remote()
            board.submit(Tick())
            on_update(board.process())
        except Exception as e:
            logger.error("Refresh failed (%s: %s)", type(e).__name__, e)
        time.sleep(settings.check_interval_seconds)
