from __future__ import annotations

import datetime as dt
import logging

from salonboard.domain import minutes_of_day
from salonboard.schedule import effective_hours, is_open_now
from salonboard.shop_config import ShopConfig
from salonboard.state import OperationalState

logger = logging.getLogger(__name__)

# Minutes after closing before leftover queue/chairs are cleared.
CLOSING_GRACE_MINUTES = 30


def reset_on_rollover(state: OperationalState, today: dt.date) -> bool:
    if state.last_checked_date == today:
        return False
    state.temporarily_closed_today = False
    state.clear_activity()
    state.last_checked_date = today
    logger.info("Date changed to %s, state reset", today)
    return True


def reset_after_closing(state: OperationalState, now: dt.datetime, config: ShopConfig) -> bool:
    hours = effective_hours(now.date(), config, state)
    if hours.closed:
        return False
    if minutes_of_day(now) <= hours.close_minutes + CLOSING_GRACE_MINUTES:
        return False
    if not state.has_activity():
        return False
    state.clear_activity()
    logger.info("More than %d minutes past closing (%s), state reset", CLOSING_GRACE_MINUTES, hours.close)
    return True


def reset_when_closed(state: OperationalState, now: dt.datetime, config: ShopConfig) -> bool:
    # Also fires while loading outside business hours; clearing empty state is a no-op.
    if is_open_now(now, config, state) or not state.has_activity():
        return False
    state.clear_activity()
    logger.info("Shop is closed now, queue and chairs cleared")
    return True


def reconcile(state: OperationalState, now: dt.datetime, config: ShopConfig) -> tuple[OperationalState, bool]:
    """Apply the automatic reset rules; the bool tells whether anything changed."""
    rolled = reset_on_rollover(state, now.date())
    after_closing = reset_after_closing(state, now, config)
    closed_now = reset_when_closed(state, now, config)
    return state, rolled or after_closing or closed_now


def prune_expired_special_dates(state: OperationalState, today: dt.date) -> bool:
    """Drop special dates strictly before today. Run once at startup."""
    expired = [d for d in state.special_dates if d < today]
    for day in expired:
        del state.special_dates[day]
    if expired:
        logger.info("Removed %d expired special date(s)", len(expired))
    return bool(expired)
