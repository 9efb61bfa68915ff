from __future__ import annotations

"""Loading and saving user settings for the session engine.

The settings are stored as a list of dictionaries to preserve order.
Each dictionary contains ``key``, ``value`` and ``type`` entries.
"""

from pathlib import Path
import json
import logging
from typing import Any, List, Dict

from workout_core import (
    DEFAULT_DISTANCE_REGRESS_STEP,
    DEFAULT_REST_DURATION,
    DEFAULT_SETS_PER_EXERCISE,
    DEFAULT_WEIGHT_REGRESS_STEP,
)

# Path to the JSON file where settings are persisted.
SETTINGS_PATH = Path(__file__).resolve().parents[1] / "data" / "settings.json"

# Default settings to initialize the file on first run.
DEFAULT_SETTINGS: List[Dict[str, Any]] = [
    {"key": "default_rest_duration", "value": DEFAULT_REST_DURATION, "type": "int"},
    {"key": "default_sets_per_exercise", "value": DEFAULT_SETS_PER_EXERCISE, "type": "int"},
    {"key": "weight_regress_step", "value": DEFAULT_WEIGHT_REGRESS_STEP, "type": "float"},
    {"key": "distance_regress_step", "value": DEFAULT_DISTANCE_REGRESS_STEP, "type": "float"},
    {"key": "auto_start_rest_timer", "value": True, "type": "bool"},
]

# Internal cache so settings are only read from disk once.
_settings_cache: List[Dict[str, Any]] | None = None


def load_settings() -> List[Dict[str, Any]]:
    """Load settings from :data:`SETTINGS_PATH` or create defaults."""
    if SETTINGS_PATH.exists():
        try:
            with SETTINGS_PATH.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
            if isinstance(data, list):
                return data
            logging.error("Ignoring malformed settings file %s", SETTINGS_PATH)
        except (OSError, ValueError):
            logging.exception("Could not read settings from %s", SETTINGS_PATH)
    defaults = [dict(item) for item in DEFAULT_SETTINGS]
    save_settings(defaults)
    return defaults


def save_settings(settings: List[Dict[str, Any]]) -> None:
    """Persist ``settings`` to :data:`SETTINGS_PATH`."""
    SETTINGS_PATH.parent.mkdir(parents=True, exist_ok=True)
    with SETTINGS_PATH.open("w", encoding="utf-8") as fh:
        json.dump(settings, fh)


def get_settings() -> List[Dict[str, Any]]:
    """Return the cached settings list, loading from disk if needed."""
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = load_settings()
    return _settings_cache


def reset_cache() -> None:
    """Forget cached settings so the next read goes to disk."""
    global _settings_cache
    _settings_cache = None


def get_value(key: str, default: Any = None) -> Any:
    """Fetch the value associated with ``key``.

    Keys missing from an older settings file fall back to the shipped
    default, then to ``default``.
    """
    for item in get_settings():
        if item.get("key") == key:
            return item.get("value")
    for item in DEFAULT_SETTINGS:
        if item["key"] == key:
            return item["value"]
    return default


def set_value(key: str, value: Any) -> None:
    """Update ``key`` with ``value`` and persist the change."""
    settings = get_settings()
    for item in settings:
        if item.get("key") == key:
            item["value"] = value
            break
    else:
        settings.append({"key": key, "value": value, "type": type(value).__name__})
    save_settings(settings)
