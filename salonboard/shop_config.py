from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from salonboard.domain import DayHours, check_hours_order, parse_hhmm

logger = logging.getLogger(__name__)

T = TypeVar("T")

PRIMARY_SERVICE = "cut"
UNKNOWN_SERVICE_MINUTES = 60

# Wire document stored in the shop_settings row. Partial documents are merged
# over this one, so every field always has a value.
DEFAULT_DOCUMENT: dict[str, Any] = {
    "shop": {
        "name": "Hair Stage",
        "address": "",
        "phone": "",
    },
    "waiting": {
        "maxCount": 3,
        "seatCount": 2,
    },
    "service": {
        "cutName": "Cut",
        "cutTime": 60,
        "special1Name": "Special 1",
        "special1Time": 180,
        "special2Name": "Special 2",
        "special2Time": 120,
    },
    # 0=Sunday .. 6=Saturday
    "businessHours": {
        "0": {"closed": False, "open": "08:30", "close": "18:00", "label": "", "note": ""},
        "1": {"closed": True, "open": "09:30", "close": "19:00", "label": "", "note": ""},
        "2": {"closed": False, "open": "09:30", "close": "19:00", "label": "", "note": ""},
        "3": {"closed": False, "open": "09:30", "close": "19:00", "label": "", "note": ""},
        "4": {"closed": False, "open": "13:00", "close": "21:00", "label": "Night", "note": "except holidays"},
        "5": {"closed": False, "open": "09:30", "close": "19:00", "label": "", "note": ""},
        "6": {"closed": False, "open": "09:30", "close": "19:00", "label": "", "note": ""},
    },
    "closedDays": [1],
    "weeklyClosed": [
        {"week": 2, "day": 2},
        {"week": 3, "day": 2},
    ],
    "holidayHours": {"open": "08:30", "close": "18:00"},
    "holidayOverrideDays": [4],
}


@dataclass(frozen=True)
class ShopInfo:
    name: str
    address: str = ""
    phone: str = ""


@dataclass(frozen=True)
class ServiceKind:
    name: str
    minutes: int


@dataclass(frozen=True)
class NthWeekday:
    """Closure on the Nth given weekday of every month (week 1..5)."""

    week: int
    weekday: int


@dataclass(frozen=True)
class HolidayHours:
    open: str
    close: str


@dataclass(frozen=True)
class ShopConfig:
    shop: ShopInfo
    seat_count: int
    max_queue_count: int
    services: dict[str, ServiceKind]
    weekly_hours: dict[int, DayHours]
    closed_weekdays: frozenset[int]
    nth_weekday_closures: tuple[NthWeekday, ...]
    holiday_override_weekdays: frozenset[int]
    holiday_hours: HolidayHours

    def duration(self, kind: str) -> int:
        service = self.services.get(kind)
        return service.minutes if service else UNKNOWN_SERVICE_MINUTES

    def service_name(self, kind: str) -> str:
        service = self.services.get(kind)
        return service.name if service else kind

    @property
    def primary_minutes(self) -> int:
        return self.duration(PRIMARY_SERVICE)


def merge_deep(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` over a copy of ``base``.

    Nested objects are merged key by key; lists and scalars are replaced.
    """
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge_deep(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _weekday(value: Any) -> int:
    day = int(value)
    if not 0 <= day <= 6:
        raise ValueError(f"weekday out of range: {value!r}")
    return day


def _hours_pair(raw: dict[str, Any]) -> tuple[str, str]:
    open_ = parse_hhmm(raw["open"])
    close = parse_hhmm(raw["close"])
    check_hours_order(open_, close)
    return open_, close


def _parse_shop(doc: dict[str, Any]) -> ShopInfo:
    raw = doc["shop"]
    return ShopInfo(
        name=str(raw.get("name") or ""),
        address=str(raw.get("address") or ""),
        phone=str(raw.get("phone") or ""),
    )


def _parse_seat_count(doc: dict[str, Any]) -> int:
    count = int(doc["waiting"]["seatCount"])
    if count < 1:
        raise ValueError("seatCount must be >= 1")
    return count


def _parse_max_queue(doc: dict[str, Any]) -> int:
    count = int(doc["waiting"]["maxCount"])
    if count < 0:
        raise ValueError("maxCount must be >= 0")
    return count


def _parse_services(doc: dict[str, Any]) -> dict[str, ServiceKind]:
    raw = doc["service"]
    defaults = DEFAULT_DOCUMENT["service"]
    services: dict[str, ServiceKind] = {}
    for key in raw:
        if not key.endswith("Time"):
            continue
        kind = key[: -len("Time")]
        try:
            minutes = int(raw[key])
            if minutes <= 0:
                raise ValueError(f"{key} must be positive")
        except (TypeError, ValueError):
            if key not in defaults:
                logger.warning("Dropping service %r with invalid duration %r", kind, raw[key])
                continue
            logger.warning("Invalid %s=%r, using default %s", key, raw[key], defaults[key])
            minutes = int(defaults[key])
        name = str(raw.get(f"{kind}Name") or kind)
        services[kind] = ServiceKind(name=name, minutes=minutes)
    if PRIMARY_SERVICE not in services:
        raise ValueError("cut service is missing")
    return services


def _parse_day(raw: dict[str, Any]) -> DayHours:
    closed = bool(raw.get("closed", False))
    if closed:
        # Hours of a closed day are kept for display but not validated against each other.
        open_ = parse_hhmm(raw.get("open", "09:30"))
        close = parse_hhmm(raw.get("close", "19:00"))
    else:
        open_, close = _hours_pair(raw)
    return DayHours(
        closed=closed,
        open=open_,
        close=close,
        label=str(raw.get("label") or ""),
        note=str(raw.get("note") or ""),
    )


def _parse_weekly_hours(doc: dict[str, Any]) -> dict[int, DayHours]:
    raw = doc["businessHours"]
    result: dict[int, DayHours] = {}
    for day in range(7):
        default_day = DEFAULT_DOCUMENT["businessHours"][str(day)]
        day_raw = raw.get(str(day))
        if not isinstance(day_raw, dict):
            day_raw = default_day
        try:
            result[day] = _parse_day(day_raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Invalid business hours for weekday %s (%s), using default", day, e)
            result[day] = _parse_day(default_day)
    return result


def _parse_closed_weekdays(doc: dict[str, Any]) -> frozenset[int]:
    return frozenset(_weekday(d) for d in doc["closedDays"])


def _parse_nth_weekday_closures(doc: dict[str, Any]) -> tuple[NthWeekday, ...]:
    result: list[NthWeekday] = []
    for item in doc["weeklyClosed"]:
        week = int(item["week"])
        if not 1 <= week <= 5:
            raise ValueError(f"week out of range: {week}")
        result.append(NthWeekday(week=week, weekday=_weekday(item["day"])))
    return tuple(result)


def _parse_holiday_hours(doc: dict[str, Any]) -> HolidayHours:
    open_, close = _hours_pair(doc["holidayHours"])
    return HolidayHours(open=open_, close=close)


def _parse_holiday_override_weekdays(doc: dict[str, Any]) -> frozenset[int]:
    return frozenset(_weekday(d) for d in doc["holidayOverrideDays"])


def _with_fallback(name: str, parse: Callable[[dict[str, Any]], T], doc: dict[str, Any]) -> T:
    try:
        return parse(doc)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.warning("Invalid shop setting %s (%s), using default", name, e)
        return parse(DEFAULT_DOCUMENT)


def config_from_document(document: dict[str, Any] | None) -> ShopConfig:
    """Build a ShopConfig from a (possibly partial or malformed) wire document."""
    doc = merge_deep(DEFAULT_DOCUMENT, document or {})
    return ShopConfig(
        shop=_with_fallback("shop", _parse_shop, doc),
        seat_count=_with_fallback("waiting.seatCount", _parse_seat_count, doc),
        max_queue_count=_with_fallback("waiting.maxCount", _parse_max_queue, doc),
        services=_with_fallback("service", _parse_services, doc),
        weekly_hours=_with_fallback("businessHours", _parse_weekly_hours, doc),
        closed_weekdays=_with_fallback("closedDays", _parse_closed_weekdays, doc),
        nth_weekday_closures=_with_fallback("weeklyClosed", _parse_nth_weekday_closures, doc),
        holiday_override_weekdays=_with_fallback("holidayOverrideDays", _parse_holiday_override_weekdays, doc),
        holiday_hours=_with_fallback("holidayHours", _parse_holiday_hours, doc),
    )


def default_config() -> ShopConfig:
    return config_from_document(None)


def config_to_document(config: ShopConfig) -> dict[str, Any]:
    service: dict[str, Any] = {}
    for kind, svc in config.services.items():
        service[f"{kind}Name"] = svc.name
        service[f"{kind}Time"] = svc.minutes

    return {
        "shop": {
            "name": config.shop.name,
            "address": config.shop.address,
            "phone": config.shop.phone,
        },
        "waiting": {
            "maxCount": config.max_queue_count,
            "seatCount": config.seat_count,
        },
        "service": service,
        "businessHours": {
            str(day): {
                "closed": hours.closed,
                "open": hours.open,
                "close": hours.close,
                "label": hours.label,
                "note": hours.note,
            }
            for day, hours in sorted(config.weekly_hours.items())
        },
        "closedDays": sorted(config.closed_weekdays),
        "weeklyClosed": [{"week": c.week, "day": c.weekday} for c in config.nth_weekday_closures],
        "holidayHours": {"open": config.holiday_hours.open, "close": config.holiday_hours.close},
        "holidayOverrideDays": sorted(config.holiday_override_weekdays),
    }
