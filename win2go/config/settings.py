"""Settings storage for application configuration."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


SETTINGS_PATH = Path(
    os.environ.get(
        "WIN2GO_SETTINGS_PATH",
        Path.home() / ".config" / "win2go" / "settings.json",
    )
)

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_ESP_SIZE_MIB = 512
DEFAULT_IMAGE_INDEX = 1
DEFAULT_LARGE_DRIVE_THRESHOLD_GB = 64
DEFAULT_SPINNER_INTERVAL = 0.2
DEFAULT_SETTLE_DELAY_SECONDS = 2.0
TINY10_URL = "https://archive.org/download/tiny-10-23-h2/tiny10%20x64%2023h2.iso"

DEFAULT_SETTINGS: dict[str, Any] = {
    "iso_search_dirs": [".", "~/Downloads"],
    "iso_patterns": ["*win*.iso", "*tiny10*.iso", "*win10*.iso", "*win11*.iso"],
    "tiny10_url": TINY10_URL,
    "esp_size_mib": DEFAULT_ESP_SIZE_MIB,
    "image_index": DEFAULT_IMAGE_INDEX,
    "large_drive_threshold_gb": DEFAULT_LARGE_DRIVE_THRESHOLD_GB,
    "win_mount": "/mnt/win",
    "boot_mount": "/mnt/boot",
    "iso_mount": "/mnt/iso",
    "spinner_interval": DEFAULT_SPINNER_INTERVAL,
    "settle_delay_seconds": DEFAULT_SETTLE_DELAY_SECONDS,
}


@dataclass
class SettingsStore:
    values: dict[str, Any] = field(default_factory=dict)


settings_store = SettingsStore()


def load_settings() -> None:
    settings_store.values = dict(DEFAULT_SETTINGS)
    if not SETTINGS_PATH.exists():
        return
    try:
        data = json.loads(SETTINGS_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return
    if isinstance(data, dict):
        settings_store.values.update(data)


def get_setting(key: str, default: Any | None = None) -> Any:
    return settings_store.values.get(key, default)


def get_int(key: str, default: int = 0) -> int:
    try:
        return int(get_setting(key, default))
    except (TypeError, ValueError):
        return default


def get_float(key: str, default: float = 0.0) -> float:
    try:
        return float(get_setting(key, default))
    except (TypeError, ValueError):
        return default


def get_path(key: str) -> Path:
    return Path(str(get_setting(key, DEFAULT_SETTINGS.get(key, "")))).expanduser()


load_settings()
