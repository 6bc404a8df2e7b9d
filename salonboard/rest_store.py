from __future__ import annotations

import datetime as dt
import logging
from typing import Any
from zoneinfo import ZoneInfo

import httpx
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from salonboard.domain import StoreError
from salonboard.shop_config import ShopConfig, config_from_document, config_to_document
from salonboard.state import OperationalState, state_from_row, state_to_row
from salonboard.store import ChangeFeed

logger = logging.getLogger(__name__)

ROW_ID = 1
SETTINGS_TABLE = "shop_settings"
STATE_TABLE = "shop_state"


def _utc_now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def _log_before_sleep(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    sleep_seconds = getattr(retry_state.next_action, "sleep", 0.0)
    logger.info(
        "Store load attempt %s failed (%s), retrying in %.0fs",
        retry_state.attempt_number,
        f"{type(exc).__name__}: {exc}" if exc else "unknown",
        sleep_seconds,
    )


class RestClient:
    """Single-row tables over a PostgREST-compatible API (Supabase REST)."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 10.0,
        retry_attempts: int = 3,
        client: httpx.Client | None = None,
    ) -> None:
        self._retry_attempts = retry_attempts
        self._client = client or httpx.Client(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            timeout=timeout_seconds,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    def close(self) -> None:
        self._client.close()

    def _fetch_row(self, table: str) -> dict[str, Any] | None:
        r = self._client.get(f"/{table}", params={"id": f"eq.{ROW_ID}", "select": "*"})
        r.raise_for_status()
        rows = r.json()
        if not rows:
            return None
        return rows[0]

    def fetch_row(self, table: str) -> dict[str, Any] | None:
        decorated = retry(
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=4),
            retry=retry_if_exception_type(httpx.HTTPError),
            before_sleep=_log_before_sleep,
            reraise=True,
        )(self._fetch_row)

        try:
            return decorated(table)
        except (httpx.HTTPError, ValueError) as e:
            raise StoreError(f"Failed to load {table}: {type(e).__name__}: {e}") from e

    def upsert_row(self, table: str, row: dict[str, Any]) -> None:
        # Single attempt: a failed save is reported, never retried.
        try:
            r = self._client.post(
                f"/{table}",
                json={"id": ROW_ID, **row},
                headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
            )
            r.raise_for_status()
        except httpx.HTTPError as e:
            raise StoreError(f"Failed to save {table}: {type(e).__name__}: {e}") from e


class RestConfigStore:
    def __init__(self, client: RestClient) -> None:
        self._client = client

    def load(self) -> ShopConfig:
        row = self._client.fetch_row(SETTINGS_TABLE)
        document = row.get("settings") if row else None
        if not isinstance(document, dict):
            document = None
        return config_from_document(document)

    def save(self, config: ShopConfig) -> None:
        self._client.upsert_row(
            SETTINGS_TABLE,
            {"settings": config_to_document(config), "updated_at": _utc_now_iso()},
        )


class RestStateStore(ChangeFeed):
    """Shop state row; changes from other clients are detected by updated_at."""

    def __init__(self, client: RestClient, zone: ZoneInfo | None = None) -> None:
        super().__init__()
        self._client = client
        self._zone = zone
        self._seen_updated_at: str | None = None

    def _load_row(self) -> dict[str, Any]:
        row = self._client.fetch_row(STATE_TABLE)
        if row is None:
            raise StoreError("No shop_state row")
        return row

    def _decode(self, row: dict[str, Any]) -> OperationalState:
        try:
            return state_from_row(row, self._zone)
        except (TypeError, ValueError, AttributeError) as e:
            raise StoreError(f"Malformed shop_state row: {e}") from e

    def load(self) -> OperationalState:
        row = self._load_row()
        state = self._decode(row)
        self._seen_updated_at = row.get("updated_at")
        return state

    def save(self, state: OperationalState) -> None:
        updated_at = _utc_now_iso()
        self._client.upsert_row(STATE_TABLE, {**state_to_row(state, self._zone), "updated_at": updated_at})
        self._seen_updated_at = updated_at

    def poll(self) -> bool:
        row = self._load_row()
        updated_at = row.get("updated_at")
        if updated_at == self._seen_updated_at:
            return False
        self._seen_updated_at = updated_at
        self._notify(self._decode(row))
        return True
