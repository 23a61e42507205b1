"""Binary JSON ("qbjs") encoding of flat objects, as embedded in plugin metadata."""

from __future__ import annotations

import struct
from collections.abc import Iterable
from typing import Union

Value = Union[str, float, bool]

_MAX_STRING_LENGTH = 0xFFFF


def _encode_text(text: str) -> bytes:
    data = text.encode("utf-8")
    if len(data) > _MAX_STRING_LENGTH:
        raise ValueError(f"string of {len(data)} bytes is too long for qbjs")
    return data


def string_size(text: str) -> int:
    """Return the number of bytes a string occupies, length prefix and padding included."""
    return (2 + len(text.encode("utf-8")) + 3) & ~3


def _write_string(out: bytearray, text: str) -> None:
    data = _encode_text(text)
    out += struct.pack("<H", len(data))
    out += data
    pad = (len(data) + 2) % 4
    if pad:
        out += bytes(4 - pad)


def _value_size(value: Value) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, str):
        return string_size(value)
    if isinstance(value, (int, float)):
        return 8
    raise TypeError(f"unsupported qbjs value type: {type(value).__name__}")


def _value_header(value: Value, offset: int) -> int:
    if isinstance(value, bool):
        return 1 | (int(value) << 5)
    if isinstance(value, str):
        # Strings are assumed to be Latin-1 compatible.
        return (3 | (1 << 3)) | (offset << 5)
    return 2 | (offset << 5)


def _write_value(out: bytearray, value: Value) -> None:
    if isinstance(value, bool):
        return  # encoded in the header
    if isinstance(value, str):
        _write_string(out, value)
        return
    out += struct.pack("<d", float(value))


def serialize(entries: Iterable[tuple[str, Value]]) -> bytes:
    """Encode ``(key, value)`` pairs as a qbjs object, in the order given."""
    items = list(entries)
    count = len(items)
    size = 12 + sum(string_size(key) + _value_size(value) + 8 for key, value in items)

    out = bytearray(
        struct.pack("<III", size & 0xFFFFFFFF, (1 | (count << 1)) & 0xFFFFFFFF,
                    (size - count * 4) & 0xFFFFFFFF)
    )
    table: list[int] = []
    offset = 12
    for key, value in items:
        table.append(offset)
        offset += 4 + string_size(key)
        header = _value_header(value, offset) | (1 << 4)
        out += struct.pack("<I", header & 0xFFFFFFFF)
        _write_string(out, key)
        _write_value(out, value)
        offset += _value_size(value)
    out += struct.pack(f"<{len(table)}I", *table)
    return bytes(out)