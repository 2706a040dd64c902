from __future__ import annotations

import base64
import json

import pytest

from app.core.cursor import (
    Cursor,
    decode_cursor,
    decode_offset_cursor,
    encode_cursor,
    encode_offset_cursor,
)
from app.core.errors import InvalidCursor, ValidationError


def _token(payload: object) -> str:
    raw = payload if isinstance(payload, str) else json.dumps(payload)
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


@pytest.mark.parametrize(
    "cursor",
    [
        Cursor(id="0b6f1c1e-8f5a-4c3e-9d59-1f2a3b4c5d6e", sort_value="Açaí & Co / Ltda"),
        Cursor(id="North"),
    ],
)
def test_cursor_round_trip(cursor: Cursor) -> None:
    token = encode_cursor(cursor)

    assert "+" not in token and "/" not in token
    assert decode_cursor(token) == cursor


def test_decode_accepts_unpadded_tokens() -> None:
    token = encode_cursor(Cursor(id="abc", sort_value="x")).rstrip("=")

    assert decode_cursor(token) == Cursor(id="abc", sort_value="x")


@pytest.mark.parametrize(
    "token",
    [
        "",
        "   ",
        "!!!not-base64!!!",
        _token("not json"),
        _token([1, 2, 3]),
        _token({"sortValue": "Alpha"}),
        _token({"id": ""}),
        _token({"id": 42}),
        _token({"id": "abc", "sortValue": 3}),
    ],
)
def test_decode_rejects_malformed_tokens(token: str) -> None:
    with pytest.raises(InvalidCursor):
        decode_cursor(token)


def test_invalid_cursor_is_a_validation_error() -> None:
    with pytest.raises(ValidationError) as excinfo:
        decode_cursor("!!!")

    assert excinfo.value.status_code == 400
    assert excinfo.value.errors


def test_encode_requires_an_id() -> None:
    with pytest.raises(ValueError):
        encode_cursor(Cursor(id=""))


def test_offset_cursor_round_trip() -> None:
    assert decode_offset_cursor(encode_offset_cursor(0)) == 0
    assert decode_offset_cursor(encode_offset_cursor(40)) == 40


@pytest.mark.parametrize(
    "payload",
    [{"skip": -1}, {"skip": True}, {"skip": "3"}, {"skip": 1.5}, {"id": "abc"}],
)
def test_offset_cursor_rejects_bad_payloads(payload: dict) -> None:
    with pytest.raises(InvalidCursor):
        decode_offset_cursor(_token(payload))


def test_offset_cursor_rejects_negative_skip() -> None:
    with pytest.raises(ValueError):
        encode_offset_cursor(-1)
