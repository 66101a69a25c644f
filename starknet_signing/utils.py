from __future__ import annotations

import math
import re
from typing import Any, Optional, Union

ADDRESS_HEX_DIGITS = 64

_DECIMAL_RE = re.compile(r"[+-]?\d+")
_HEX_RE = re.compile(r"0[xX][0-9a-fA-F]+")


def pad_address(address: str) -> str:
    body = address[2:] if address.startswith("0x") else address
    return "0x" + body.lower().rjust(ADDRESS_HEX_DIGITS, "0")


def normalize_address(address: str) -> str:
    if address.startswith("0X"):
        address = "0x" + address[2:]
    return pad_address(address).lower()


def address_equals(a: str, b: str) -> bool:
    return normalize_address(a) == normalize_address(b)


def parse_integer(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return None
    if isinstance(value, str):
        text = value.strip()
        if _DECIMAL_RE.fullmatch(text):
            return int(text, 10)
        if _HEX_RE.fullmatch(text):
            return int(text, 16)
    return None


def parse_number(value: Any) -> Optional[Union[int, float]]:
    as_int = parse_integer(value)
    if as_int is not None:
        return as_int
    if isinstance(value, float) and math.isfinite(value):
        return value
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        if math.isfinite(parsed):
            return parsed
    return None


def to_hex(value: Union[int, str]) -> str:
    if isinstance(value, str):
        parsed = parse_integer(value)
        if parsed is None:
            raise ValueError(f"not a felt: {value!r}")
        value = parsed
    if value < 0:
        raise ValueError("felt must be non-negative")
    return hex(value)
