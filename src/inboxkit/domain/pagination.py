"""Opaque cursor tokens for keyset pagination over inbox items."""

from __future__ import annotations

import base64
import binascii
from datetime import UTC, datetime

_SEPARATOR = "|"


def encode_cursor(timestamp: datetime, item_id: str) -> str:
    raw = f"{timestamp.astimezone(UTC).isoformat()}{_SEPARATOR}{item_id}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(cursor: str) -> tuple[datetime, str] | None:
    """Return ``(timestamp, id)`` for a cursor, or ``None`` when it cannot be read."""

    padded = cursor + "=" * (-len(cursor) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        return None
    timestamp_text, separator, item_id = raw.partition(_SEPARATOR)
    if not separator or not item_id:
        return None
    try:
        timestamp = datetime.fromisoformat(timestamp_text)
    except ValueError:
        return None
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    return timestamp, item_id


def is_after_cursor(timestamp: datetime, item_id: str, cursor: tuple[datetime, str]) -> bool:
    """Whether an item sorts strictly after the cursor position (newest first)."""

    cursor_time, cursor_id = cursor
    return timestamp < cursor_time or (timestamp == cursor_time and item_id < cursor_id)
