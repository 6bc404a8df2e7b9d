import argparse
import logging
import sys

from salonboard.board import (
    AddSpecialDate,
    ChangeQueue,
    Command,
    EndSession,
    RemoveSpecialDate,
    SetQueue,
    SetTemporaryClosure,
    StartSession,
    open_board,
    run_forever,
)
from salonboard.config import load_settings, verify_pin
from salonboard.domain import BoardError, StoreError, check_hours_order, parse_date, parse_hhmm
from salonboard.state import ClosedDay, SpecialHours
from salonboard.views import render_admin_view, render_customer_view

ADMIN_COMMANDS = {
    "start",
    "end",
    "queue",
    "special-add",
    "special-remove",
    "close-today",
    "reopen-today",
    "init-config",
}


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Salon front-desk status board")
    parser.add_argument("--pin", help="Admin PIN (required for admin commands)")
    sub = parser.add_subparsers(dest="command")
    parser.set_defaults(command="status", admin=False)

    status = sub.add_parser("status", help="Print the board once (default)")
    status.add_argument("--admin", action="store_true", help="Show the admin view")

    sub.add_parser("watch", help="Re-evaluate and print the customer view periodically")

    start = sub.add_parser("start", help="Start a service on a seat")
    start.add_argument("seat", type=int, help="Seat number, starting at 1")
    start.add_argument("kind", help="Service kind, e.g. cut")

    end = sub.add_parser("end", help="Finish the service on a seat")
    end.add_argument("seat", type=int)

    queue = sub.add_parser("queue", help="'+' or '-' to change the queue by one, or an exact count")
    queue.add_argument("value")

    special_add = sub.add_parser("special-add", help="Override the hours of one date")
    special_add.add_argument("date", type=parse_date, help="YYYY-MM-DD")
    special_add.add_argument("--closed", action="store_true")
    special_add.add_argument("--open", dest="open_", type=parse_hhmm, default="09:30")
    special_add.add_argument("--close", type=parse_hhmm, default="19:00")
    special_add.add_argument("--note", default="")

    special_remove = sub.add_parser("special-remove", help="Remove a date override")
    special_remove.add_argument("date", type=parse_date)

    sub.add_parser("close-today", help="Close the shop for the rest of today")
    sub.add_parser("reopen-today", help="Cancel today's temporary closure")
    sub.add_parser("init-config", help="Write the effective shop settings to the config store")
    return parser


def _to_command(args: argparse.Namespace) -> Command:
    if args.command == "start":
        return StartSession(seat=args.seat - 1, kind=args.kind)
    if args.command == "end":
        return EndSession(seat=args.seat - 1)
    if args.command == "queue":
        if args.value == "+":
            return ChangeQueue(delta=1)
        if args.value == "-":
            return ChangeQueue(delta=-1)
        return SetQueue(count=int(args.value))
    if args.command == "special-add":
        if args.closed:
            return AddSpecialDate(day=args.date, entry=ClosedDay(note=args.note))
        check_hours_order(args.open_, args.close)
        return AddSpecialDate(day=args.date, entry=SpecialHours(open=args.open_, close=args.close, note=args.note))
    if args.command == "special-remove":
        return RemoveSpecialDate(day=args.date)
    if args.command == "close-today":
        return SetTemporaryClosure(closed=True)
    if args.command == "reopen-today":
        return SetTemporaryClosure(closed=False)
    raise ValueError(f"Not an action: {args.command}")


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    _setup_logging()
    settings = load_settings()

    needs_pin = args.command in ADMIN_COMMANDS or (args.command == "status" and args.admin)
    if needs_pin and not verify_pin(args.pin, settings):
        print("Wrong PIN.", file=sys.stderr)
        return 2

    if args.command == "watch":
        run_forever(settings, on_update=lambda snapshot: print(render_customer_view(snapshot), end="\n\n", flush=True))
        return 0

    board = open_board(settings)

    if args.command == "status":
        snapshot = board.snapshot()
        print(render_admin_view(snapshot) if args.admin else render_customer_view(snapshot))
        return 0

    if args.command == "init-config":
        try:
            board.save_config()
        except StoreError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print("Shop settings written.")
        return 0

    try:
        command = _to_command(args)
        snapshot = board.execute(command)
    except (BoardError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(render_admin_view(snapshot))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
