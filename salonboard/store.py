from __future__ import annotations

import logging
from typing import Callable, Protocol
from zoneinfo import ZoneInfo

from salonboard.config import Settings
from salonboard.shop_config import ShopConfig
from salonboard.state import OperationalState

logger = logging.getLogger(__name__)

StateListener = Callable[[OperationalState], None]


class ConfigStore(Protocol):
    def load(self) -> ShopConfig: ...

    def save(self, config: ShopConfig) -> None: ...


class StateStore(Protocol):
    def load(self) -> OperationalState: ...

    def save(self, state: OperationalState) -> None: ...

    def subscribe(self, callback: StateListener) -> None: ...

    def poll(self) -> bool: ...


class ChangeFeed:
    """Delivers states written by other clients to local subscribers."""

    def __init__(self) -> None:
        self._listeners: list[StateListener] = []

    def subscribe(self, callback: StateListener) -> None:
        self._listeners.append(callback)

    def _notify(self, state: OperationalState) -> None:
        for callback in self._listeners:
            try:
                callback(state.copy())
            except Exception:
                # One broken listener must not starve the others.
                logger.warning("State listener failed", exc_info=True)


def build_stores(settings: Settings) -> tuple[ConfigStore, StateStore]:
    zone = ZoneInfo(settings.shop_timezone) if settings.shop_timezone else None
    if settings.store_backend == "rest":
        from salonboard.rest_store import RestClient, RestConfigStore, RestStateStore

        client = RestClient(
            base_url=settings.store_url or "",
            api_key=settings.store_api_key or "",
            timeout_seconds=settings.store_timeout_seconds,
            retry_attempts=settings.store_retry_attempts,
        )
        return RestConfigStore(client), RestStateStore(client, zone)

    from salonboard.state_file import FileConfigStore, FileStateStore

    return FileConfigStore(settings.shop_config_file), FileStateStore(settings.state_file, zone)
