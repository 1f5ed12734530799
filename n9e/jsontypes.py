"""Raw JSON column values: reading from storage and rendering for clients."""

from __future__ import annotations

import json


def scan_json(value: bytes | str) -> str:
    """Validate a stored JSON value and return its text."""
    if isinstance(value, (bytes, bytearray)):
        text = bytes(value).decode("utf-8")
    elif isinstance(value, str):
        text = value
    else:
        raise ValueError(f"Failed to unmarshal JSONB value:{value}")
    try:
        json.loads(text)
    except json.JSONDecodeError as err:
        raise ValueError(f"invalid JSON: {err}") from err
    return text.strip()


def json_value(raw: str | None) -> str | None:
    """Value to store: None for an empty document, else the raw text."""
    if not raw:
        return None
    return raw


def _marshal(raw: str | None, empty: str) -> str:
    if not raw or raw.startswith('"'):
        return empty
    return raw


def marshal_obj(raw: str | None) -> str:
    """JSON text of an object column, ``{}`` when empty or not an object."""
    return _marshal(raw, "{}")


def marshal_arr(raw: str | None) -> str:
    """JSON text of an array column, ``[]`` when empty or not an array."""
    return _marshal(raw, "[]")