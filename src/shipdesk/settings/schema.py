"""Schema helpers for the shipdesk settings file."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from jsonschema import Draft202012Validator

from ..config import (
    CHANGE_CHANNEL,
    OBJECT_API_NAME,
    REPLAY_ALL_RETAINED,
    REPLAY_NEW_EVENTS_ONLY,
    STATUS_ASSIGNED_TO_AGENT,
    STATUS_IN_REVIEW,
)

SETTINGS_SCHEMA: dict[str, Any] = {
    "$id": "shipdesk/settings.schema.json",
    "type": "object",
    "required": ["schema", "stream", "statuses", "logging"],
    "properties": {
        "schema": {"const": "shipdesk/settings@1"},
        "object_api_name": {"type": "string", "minLength": 1},
        "stream": {
            "type": "object",
            "required": ["channel", "replay_from"],
            "properties": {
                "channel": {"type": "string", "pattern": "^/"},
                "replay_from": {"type": "integer", "minimum": REPLAY_ALL_RETAINED},
            },
            "additionalProperties": False,
        },
        "statuses": {
            "type": "object",
            "required": ["assigned", "in_review"],
            "properties": {
                "assigned": {"type": "string", "minLength": 1},
                "in_review": {"type": "string", "minLength": 1},
                "allowed": {
                    "type": "array",
                    "items": {"type": "string"},
                    "uniqueItems": True,
                },
            },
            "additionalProperties": False,
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {
                    "type": "string",
                    "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                },
                "json": {"type": "boolean"},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": True,
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "schema": "shipdesk/settings@1",
    "object_api_name": OBJECT_API_NAME,
    "stream": {
        "channel": CHANGE_CHANNEL,
        "replay_from": REPLAY_NEW_EVENTS_ONLY,
    },
    "statuses": {
        "assigned": STATUS_ASSIGNED_TO_AGENT,
        "in_review": STATUS_IN_REVIEW,
        "allowed": [
            "New",
            STATUS_ASSIGNED_TO_AGENT,
            STATUS_IN_REVIEW,
            "In Transit",
            "Delivered",
            "Cancelled",
        ],
    },
    "logging": {
        "level": "INFO",
        "json": False,
    },
}

_validator = Draft202012Validator(SETTINGS_SCHEMA)

_SECTIONS = ("stream", "statuses", "logging")


def merge_with_defaults(data: dict[str, Any] | None) -> dict[str, Any]:
    """Merge *data* with :data:`DEFAULT_SETTINGS` and validate the result."""

    merged = deepcopy(DEFAULT_SETTINGS)
    if data:
        for key, value in data.items():
            if key in _SECTIONS and isinstance(value, dict):
                target = merged.setdefault(key, {})
                for sub_key, sub_value in value.items():
                    target[sub_key] = sub_value
                continue
            merged[key] = value
    _validator.validate(merged)
    return merged


def validate_settings(data: dict[str, Any]) -> None:
    """Validate *data* against the settings schema."""

    _validator.validate(data)


__all__ = ["DEFAULT_SETTINGS", "SETTINGS_SCHEMA", "merge_with_defaults", "validate_settings"]
