"""Plain-text customer and admin views of a board snapshot."""

from __future__ import annotations

from dataclasses import dataclass

from salonboard.board import Snapshot
from salonboard.domain import DayHours
from salonboard.schedule import (
    DAY_NAMES_SHORT,
    effective_hours,
    format_short_date,
    is_open_now,
    next_opening_description,
)
from salonboard.shop_config import ShopConfig
from salonboard.state import ClosedDay, SpecialDate
from salonboard.wait import RECOMMENDATION_TEXT, earliest_freeing, projected_window, recommendation, seat_timings

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
ORDINALS = ("", "1st", "2nd", "3rd", "4th", "5th")
WEEKDAYS_MON_FRI = (1, 2, 3, 4, 5)


@dataclass(frozen=True)
class HoursLine:
    days: str
    hours: DayHours


def _is_consecutive(days: list[int]) -> bool:
    ordered = sorted(days)
    return all(b - a == 1 for a, b in zip(ordered, ordered[1:]))


def _group_name(days: list[int]) -> str:
    if len(days) == 1:
        return DAY_NAMES[days[0]]
    if sorted(days) == list(WEEKDAYS_MON_FRI):
        return "Weekdays"
    if _is_consecutive(days):
        return f"{DAY_NAMES_SHORT[days[0]]}~{DAY_NAMES_SHORT[days[-1]]}"
    return "/".join(DAY_NAMES_SHORT[d] for d in days)


def weekly_hours_summary(config: ShopConfig) -> list[HoursLine]:
    """Regular hours grouped by identical open/close times.

    Days with a label or note are listed on their own; "Weekdays" goes first.
    """
    lines: list[HoursLine] = []
    used: set[int] = set()

    for day in range(7):
        hours = config.weekly_hours.get(day)
        if hours and not hours.closed and day not in config.closed_weekdays and (hours.label or hours.note):
            lines.append(HoursLine(days=DAY_NAMES[day], hours=hours))
            used.add(day)

    groups: dict[tuple[str, str], list[int]] = {}
    first_hours: dict[tuple[str, str], DayHours] = {}
    for day in range(7):
        hours = config.weekly_hours.get(day)
        if day in used or not hours or hours.closed or day in config.closed_weekdays:
            continue
        key = (hours.open, hours.close)
        groups.setdefault(key, []).append(day)
        first_hours.setdefault(key, hours)

    for key, days in groups.items():
        lines.append(HoursLine(days=_group_name(days), hours=first_hours[key]))

    lines.sort(key=lambda line: 0 if line.days == "Weekdays" else 1)
    return lines


def closed_days_text(config: ShopConfig) -> str:
    parts = [DAY_NAMES_SHORT[d] for d in sorted(config.closed_weekdays)]
    parts.extend(f"{ORDINALS[c.week]} {DAY_NAMES_SHORT[c.weekday]}" for c in config.nth_weekday_closures)
    return ", ".join(parts)


def special_date_text(entry: SpecialDate) -> str:
    text = "closed" if isinstance(entry, ClosedDay) else f"{entry.open}~{entry.close}"
    if entry.note:
        text += f" - {entry.note}"
    return text


def today_hours_text(hours: DayHours) -> str:
    if hours.closed:
        return "Closed today"
    text = f"{hours.open} - {hours.close}"
    if hours.is_holiday:
        text += " (holiday)"
    return text


def render_customer_view(snapshot: Snapshot) -> str:
    now, config, state = snapshot.now, snapshot.config, snapshot.state
    is_open = is_open_now(now, config, state)

    lines = [config.shop.name]
    if config.shop.address:
        lines.append(config.shop.address)
    if config.shop.phone:
        lines.append(f"Tel: {config.shop.phone}")
    lines.append("")
    lines.append(f"Status: {'Open' if is_open else 'Closed'}")
    lines.append(f"Today: {today_hours_text(effective_hours(now.date(), config, state))}")

    if not is_open:
        lines.append(f"Next opening: {next_opening_description(now, config, state)}")

    lines.append(f"Waiting: {state.queue_count} (up to {config.max_queue_count} seats in the waiting area)")

    timings = {t.seat: t for t in seat_timings(state.sessions, now, config)}
    earliest = earliest_freeing(state.sessions, now, config)
    for seat in range(len(state.sessions)):
        timing = timings.get(seat)
        if timing is None:
            lines.append(f"  Seat {seat + 1}: free")
            continue
        text = f"  Seat {seat + 1}: {config.service_name(timing.session.kind)}, {timing.remaining} min left"
        if earliest is not None and earliest.seat == seat:
            text += " [next free]"
        lines.append(text)

    window = projected_window(now, config, state)
    text = f"Your turn: {window.describe()}"
    if window.next_free_in:
        text += f" (next chair frees in about {window.next_free_in} min)"
    lines.append(text)
    lines.append(RECOMMENDATION_TEXT[recommendation(now, config, state)])

    upcoming = [(d, e) for d, e in state.special_dates.items() if d >= now.date()]
    if upcoming:
        lines.append("")
        lines.append("Special dates:")
        lines.extend(f"  {format_short_date(d)}: {special_date_text(e)}" for d, e in upcoming)

    lines.append("")
    lines.append("Business hours:")
    for line in weekly_hours_summary(config):
        text = f"  {line.days}: {line.hours.open} - {line.hours.close}"
        if line.hours.label:
            text += f" [{line.hours.label}]"
        if line.hours.note:
            text += f" ({line.hours.note})"
        lines.append(text)
    closed = closed_days_text(config)
    if closed:
        lines.append(f"  Closed: {closed}")

    lines.append(f"Updated: {now:%H:%M}")
    return "\n".join(lines)


def render_admin_view(snapshot: Snapshot) -> str:
    now, config, state = snapshot.now, snapshot.config, snapshot.state

    lines = [
        f"[admin] {config.shop.name}",
        f"Status: {'Open' if is_open_now(now, config, state) else 'Closed'}",
        f"Waiting: {state.queue_count}/{config.max_queue_count}",
        f"Temporarily closed today: {'yes' if state.temporarily_closed_today else 'no'}",
        "Seats:",
    ]
    timings = {t.seat: t for t in seat_timings(state.sessions, now, config)}
    for seat in range(len(state.sessions)):
        timing = timings.get(seat)
        if timing is None:
            lines.append(f"  {seat + 1}: free")
        else:
            lines.append(
                f"  {seat + 1}: in use, {config.service_name(timing.session.kind)} "
                f"since {timing.session.started_at:%H:%M}, {timing.remaining} min left"
            )

    lines.append("Services: " + ", ".join(f"{kind} ({s.name}, {s.minutes} min)" for kind, s in config.services.items()))

    if state.special_dates:
        lines.append("Special dates:")
        lines.extend(f"  {d.isoformat()} {format_short_date(d)}: {special_date_text(e)}" for d, e in state.special_dates.items())
    else:
        lines.append("Special dates: none")

    return "\n".join(lines)
