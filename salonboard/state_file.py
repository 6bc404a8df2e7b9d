from __future__ import annotations

import json
import os
import tempfile
from typing import Any
from zoneinfo import ZoneInfo

from salonboard.domain import StoreError
from salonboard.shop_config import ShopConfig, config_from_document, config_to_document
from salonboard.state import OperationalState, state_from_row, state_to_row
from salonboard.store import ChangeFeed


def _mtime(path: str) -> int | None:
    try:
        return os.stat(path).st_mtime_ns
    except FileNotFoundError:
        return None


def read_document(path: str) -> dict[str, Any] | None:
    if not os.path.exists(path):
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise StoreError(f"Cannot read {path}: {e}") from e

    if not isinstance(raw, dict):
        raise StoreError(f"Cannot read {path}: expected a JSON object")
    return raw


def write_document(path: str, data: dict[str, Any]) -> None:
    folder = os.path.dirname(os.path.abspath(path))
    try:
        if folder and not os.path.exists(folder):
            os.makedirs(folder, exist_ok=True)

        # Atomic write
        with tempfile.NamedTemporaryFile("w", delete=False, encoding="utf-8", dir=folder, suffix=".tmp") as tf:
            json.dump(data, tf, ensure_ascii=False, indent=2)
            tmp_name = tf.name

        os.replace(tmp_name, path)
    except OSError as e:
        raise StoreError(f"Cannot write {path}: {e}") from e


class FileConfigStore:
    def __init__(self, path: str) -> None:
        self.path = path

    def load(self) -> ShopConfig:
        # A missing file simply means "all defaults".
        return config_from_document(read_document(self.path))

    def save(self, config: ShopConfig) -> None:
        write_document(self.path, config_to_document(config))


class FileStateStore(ChangeFeed):
    """Shop state in a JSON file; other processes' writes are seen via mtime."""

    def __init__(self, path: str, zone: ZoneInfo | None = None) -> None:
        super().__init__()
        self.path = path
        self.zone = zone
        self._seen_mtime: int | None = None

    def load(self) -> OperationalState:
        raw = read_document(self.path)
        if raw is None:
            raise StoreError(f"No saved state at {self.path}")
        self._seen_mtime = _mtime(self.path)
        try:
            return state_from_row(raw, self.zone)
        except (TypeError, ValueError, AttributeError) as e:
            raise StoreError(f"Malformed state in {self.path}: {e}") from e

    def save(self, state: OperationalState) -> None:
        write_document(self.path, state_to_row(state, self.zone))
        self._seen_mtime = _mtime(self.path)

    def poll(self) -> bool:
        mtime = _mtime(self.path)
        if mtime is None or mtime == self._seen_mtime:
            return False
        self._notify(self.load())
        return True
