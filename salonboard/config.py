from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

STORE_BACKENDS = ("file", "rest")


@dataclass(frozen=True)
class Settings:
    store_backend: str = "file"

    # File backend
    state_file: str = "state.json"
    shop_config_file: str = "shop_settings.json"

    # REST backend (PostgREST / Supabase style row store)
    store_url: str | None = None
    store_api_key: str | None = None
    store_timeout_seconds: float = 10.0
    # How many times a remote load is attempted before falling back to defaults.
    store_retry_attempts: int = 3

    # Re-evaluation / remote polling period for `watch`
    check_interval_seconds: int = 60

    # Plain equality check, not a security boundary.
    admin_pin: str = "1234"

    # IANA zone for wall-clock time; None means the host's local time.
    shop_timezone: str | None = None


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _int_env(name: str, default: str, *, minimum: int) -> int:
    raw = os.getenv(name, default)
    try:
        value = int(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected integer.") from e
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}")
    return value


def _parse_admin_pin(raw: str) -> str:
    pin = raw.strip()
    if len(pin) != 4 or not pin.isdigit():
        raise RuntimeError("Invalid ADMIN_PIN value: expected 4 digits")
    return pin


def load_settings(dotenv_path: str | None = None) -> Settings:
    # Prefer .env in repo root; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    backend = os.getenv("STORE_BACKEND", "file").strip().lower()
    if backend not in STORE_BACKENDS:
        raise RuntimeError(f"Invalid STORE_BACKEND value: {backend!r}. Expected one of {', '.join(STORE_BACKENDS)}.")

    store_url: str | None = None
    store_api_key: str | None = None
    if backend == "rest":
        store_url = _require("STORE_URL").rstrip("/")
        store_api_key = _require("STORE_API_KEY")

    timeout_raw = os.getenv("STORE_TIMEOUT_SECONDS", "10")
    try:
        store_timeout_seconds = float(timeout_raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid STORE_TIMEOUT_SECONDS value: {timeout_raw!r}") from e

    return Settings(
        store_backend=backend,
        state_file=os.getenv("STATE_FILE", "state.json"),
        shop_config_file=os.getenv("SHOP_CONFIG_FILE", "shop_settings.json"),
        store_url=store_url,
        store_api_key=store_api_key,
        store_timeout_seconds=store_timeout_seconds,
        store_retry_attempts=_int_env("STORE_RETRY_ATTEMPTS", "3", minimum=1),
        check_interval_seconds=_int_env("CHECK_INTERVAL_SECONDS", "60", minimum=1),
        admin_pin=_parse_admin_pin(os.getenv("ADMIN_PIN", "1234")),
        shop_timezone=os.getenv("SHOP_TIMEZONE") or None,
    )


def verify_pin(pin: str | None, settings: Settings) -> bool:
    return pin is not None and pin == settings.admin_pin
