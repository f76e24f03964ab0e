"""Schema helpers for the client settings file."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from jsonschema import Draft202012Validator

from ..config import (
    DEFAULT_API_BASE,
    MESSAGE_TIMEOUT_MS,
    PAGE_SIZE,
    POLL_INTERVAL_MS,
    REQUEST_TIMEOUT_SEC,
    SEARCH_DEBOUNCE_MS,
)

SETTINGS_SCHEMA: dict[str, Any] = {
    "$id": "roster/settings.schema.json",
    "type": "object",
    "required": ["schema", "api", "ui"],
    "properties": {
        "schema": {"const": "roster/settings@1"},
        "api": {
            "type": "object",
            "properties": {
                "base_url": {"type": "string", "minLength": 1},
                "timeout_sec": {"type": "number", "exclusiveMinimum": 0},
            },
            "additionalProperties": True,
        },
        "ui": {
            "type": "object",
            "properties": {
                "page_size": {"type": "integer", "minimum": 1, "maximum": 100},
                "poll_interval_ms": {"type": "integer", "minimum": 1000},
                "search_debounce_ms": {"type": "integer", "minimum": 0},
                "message_timeout_ms": {"type": "integer", "minimum": 0},
            },
            "additionalProperties": True,
        },
    },
    "additionalProperties": True,
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "schema": "roster/settings@1",
    "api": {
        "base_url": DEFAULT_API_BASE,
        "timeout_sec": REQUEST_TIMEOUT_SEC,
    },
    "ui": {
        "page_size": PAGE_SIZE,
        "poll_interval_ms": POLL_INTERVAL_MS,
        "search_debounce_ms": SEARCH_DEBOUNCE_MS,
        "message_timeout_ms": MESSAGE_TIMEOUT_MS,
    },
}

_validator = Draft202012Validator(SETTINGS_SCHEMA)


def merge_with_defaults(data: dict[str, Any] | None) -> dict[str, Any]:
    """Merge *data* with :data:`DEFAULT_SETTINGS` and validate the result."""

    merged = deepcopy(DEFAULT_SETTINGS)
    if data:
        for key, value in data.items():
            if key in ("api", "ui") and isinstance(value, dict):
                merged.setdefault(key, {}).update(value)
                continue
            merged[key] = value
    _validator.validate(merged)
    return merged


def validate_settings(data: dict[str, Any]) -> None:
    """Validate *data* against the settings schema."""

    _validator.validate(data)


__all__ = ["DEFAULT_SETTINGS", "SETTINGS_SCHEMA", "merge_with_defaults", "validate_settings"]
