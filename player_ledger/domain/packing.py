"""
Packed dual-value words.

Two independent uint128 values share one uint256 word: the low half holds
bits 0-127, the high half bits 128-255. Balance packs (gold, marble) and
progression packs (draws_per_match, draw_length), low half first.

Arithmetic is done per half and the word is always rebuilt whole. A result
outside [0, 2**128) raises `PackedValueOverflowError` instead of wrapping or
carrying into the neighbouring half.
"""

from __future__ import annotations

from typing import Tuple

from player_ledger.modules.shared.exceptions import PackedValueOverflowError

HALF_BITS = 128
HALF_MASK = (1 << HALF_BITS) - 1
UINT128_MAX = HALF_MASK
WORD_MAX = (1 << (2 * HALF_BITS)) - 1


def _check_half(field: str, value: int) -> int:
    if value < 0 or value > UINT128_MAX:
        raise PackedValueOverflowError(field, value)
    return value


def pack(low: int, high: int, *, low_field: str = "low", high_field: str = "high") -> int:
    """
    >>> hex(pack(1, 2))
    '0x200000000000000000000000000000001'
    """
    _check_half(low_field, low)
    _check_half(high_field, high)
    return (high << HALF_BITS) | low


def unpack(word: int) -> Tuple[int, int]:
    """Split a word into (low, high)."""
    if word < 0 or word > WORD_MAX:
        raise PackedValueOverflowError("word", word)
    return word & HALF_MASK, word >> HALF_BITS


def low_half(word: int) -> int:
    return unpack(word)[0]


def high_half(word: int) -> int:
    return unpack(word)[1]


def with_low(word: int, value: int, field: str = "low") -> int:
    """Replace the low half, leaving the high half untouched."""
    _, high = unpack(word)
    return pack(value, high, low_field=field)


def with_high(word: int, value: int, field: str = "high") -> int:
    """Replace the high half, leaving the low half untouched."""
    low, _ = unpack(word)
    return pack(low, value, high_field=field)


def add_low(word: int, delta: int, field: str = "low") -> int:
    """Add a signed delta to the low half. Raises on overflow or underflow."""
    low, high = unpack(word)
    return pack(_check_half(field, low + delta), high)


def add_high(word: int, delta: int, field: str = "high") -> int:
    """Add a signed delta to the high half. Raises on overflow or underflow."""
    low, high = unpack(word)
    return pack(low, _check_half(field, high + delta))
