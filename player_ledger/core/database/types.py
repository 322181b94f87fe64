"""
Custom column types.

`Uint256` stores a 256-bit unsigned word as a fixed-width, zero-padded,
lowercase hex string (``0x`` + 64 digits). Neither SQLite nor PostgreSQL
has a native 256-bit integer, and fixed-width hex keeps the value exact on
both while preserving lexical ordering.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator

UINT256_MAX = (1 << 256) - 1
_HEX_WIDTH = 64


class Uint256(TypeDecorator):
    """Python ``int`` in [0, 2**256) persisted as ``0x``-prefixed hex."""

    impl = String(2 + _HEX_WIDTH)
    cache_ok = True

    def process_bind_param(self, value: Optional[int], dialect: Any) -> Optional[str]:
        if value is None:
            return None
        value = int(value)
        if value < 0 or value > UINT256_MAX:
            raise ValueError(f"value out of uint256 range: {value}")
        return "0x" + format(value, f"0{_HEX_WIDTH}x")

    def process_result_value(self, value: Optional[str], dialect: Any) -> Optional[int]:
        if value is None:
            return None
        return int(value, 16)
