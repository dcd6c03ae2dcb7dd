"""Minimal Clarity value codec for read-only calls.

Only the types the DEX contract's getters return are supported:
int, uint, bool, response ok/err, optional none/some. Anything else
raises ValueError so a contract upgrade can't silently misprice.
"""

from dataclasses import dataclass
from typing import Any

_INT = 0x00
_UINT = 0x01
_TRUE = 0x03
_FALSE = 0x04
_OK = 0x07
_ERR = 0x08
_NONE = 0x09
_SOME = 0x0A


@dataclass(frozen=True)
class ClarityErr:
    """An ``(err ...)`` response from a contract call."""

    value: Any


def encode_uint(value: int) -> str:
    if value < 0 or value >= 2**128:
        raise ValueError(f"uint out of range: {value}")
    return "0x" + bytes([_UINT]).hex() + value.to_bytes(16, "big").hex()


def decode_hex(hex_str: str) -> Any:
    """Decode a serialized Clarity value.

    ``(ok u5)`` -> 5, ``(err u1)`` -> ClarityErr(1), ``none`` -> None.
    """
    raw = bytes.fromhex(hex_str[2:] if hex_str.startswith("0x") else hex_str)
    value, consumed = _decode(raw, 0)
    if consumed != len(raw):
        raise ValueError(f"Trailing bytes in Clarity value: {hex_str}")
    return value


def _decode(buf: bytes, pos: int) -> tuple[Any, int]:
    if pos >= len(buf):
        raise ValueError("Truncated Clarity value")
    type_id = buf[pos]
    pos += 1
    if type_id in (_INT, _UINT):
        chunk = buf[pos : pos + 16]
        if len(chunk) != 16:
            raise ValueError("Truncated 128-bit integer")
        return int.from_bytes(chunk, "big", signed=type_id == _INT), pos + 16
    if type_id == _TRUE:
        return True, pos
    if type_id == _FALSE:
        return False, pos
    if type_id in (_OK, _SOME):
        return _decode(buf, pos)
    if type_id == _ERR:
        inner, pos = _decode(buf, pos)
        return ClarityErr(inner), pos
    if type_id == _NONE:
        return None, pos
    raise ValueError(f"Unsupported Clarity type id: 0x{type_id:02x}")
