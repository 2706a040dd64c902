"""Opaque pagination tokens.

Two payload shapes share the same encoding (URL-safe base64 of compact JSON):

* ``{"id": ..., "sortValue": ...}`` for keyset pagination of lookup lists.
* ``{"skip": n}`` for offset pagination of table charts.

Decoding never guesses: a token that is not base64, not a JSON object, or that
carries the wrong field types raises :class:`~app.core.errors.InvalidCursor`.
"""
from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from app.core.errors import InvalidCursor


@dataclass(frozen=True)
class Cursor:
    id: str
    sort_value: str | None = None

    def to_payload(self) -> dict[str, str]:
        payload = {"id": self.id}
        if self.sort_value is not None:
            payload["sortValue"] = self.sort_value
        return payload


def _encode(payload: dict[str, Any]) -> str:
    raw = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def _decode(token: str) -> dict[str, Any]:
    if not isinstance(token, str) or not token.strip():
        raise InvalidCursor("Cursor is empty")
    padded = token.strip() + "=" * (-len(token.strip()) % 4)
    try:
        raw = base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError):
        raise InvalidCursor("Cursor is not valid base64") from None
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise InvalidCursor("Cursor payload is not valid JSON") from None
    if not isinstance(payload, dict):
        raise InvalidCursor("Cursor payload must be an object")
    return payload


def encode_cursor(cursor: Cursor) -> str:
    if not cursor.id:
        raise ValueError("Cursor id must be a non-empty string")
    return _encode(cursor.to_payload())


def decode_cursor(token: str) -> Cursor:
    payload = _decode(token)
    cursor_id = payload.get("id")
    if not isinstance(cursor_id, str) or not cursor_id:
        raise InvalidCursor("Cursor id must be a non-empty string")
    sort_value = payload.get("sortValue")
    if sort_value is not None and not isinstance(sort_value, str):
        raise InvalidCursor("Cursor sortValue must be a string")
    return Cursor(id=cursor_id, sort_value=sort_value)


def encode_offset_cursor(skip: int) -> str:
    if skip < 0:
        raise ValueError("skip must be non-negative")
    return _encode({"skip": skip})


def decode_offset_cursor(token: str) -> int:
    payload = _decode(token)
    skip = payload.get("skip")
    # bool is an int subclass; reject it explicitly.
    if isinstance(skip, bool) or not isinstance(skip, int) or skip < 0:
        raise InvalidCursor("Cursor skip must be a non-negative integer")
    return skip
