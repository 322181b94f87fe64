"""
Unit Tests for Packed Dual-Value Words
======================================

Test Coverage
-------------
- pack/unpack layout (low half first)
- Per-half arithmetic never carries into the neighbouring half
- Overflow and underflow raise instead of wrapping
- Balance and Progression word conversion

Testing Strategy
----------------
- Pure functions, no database
- Boundary values at 0, 2**128-1 and 2**256-1
"""

import pytest

from player_ledger.domain import packing
from player_ledger.domain.models import Balance, Progression
from player_ledger.modules.shared.exceptions import PackedValueOverflowError

MAX = packing.UINT128_MAX

# Representative values across the half range, including both edges.
HALF_SAMPLES = [0, 1, 2**64, 2**127, MAX - 1, MAX]


# ============================================================================
# LAYOUT
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestPackLayout:
    """Test bit layout of packed words."""

    def test_low_half_occupies_low_bits(self):
        """Test that the low value lands in bits 0-127."""
        assert packing.pack(5, 0) == 5

    def test_high_half_occupies_high_bits(self):
        """Test that the high value lands in bits 128-255."""
        assert packing.pack(0, 1) == 1 << 128

    def test_unpack_inverts_pack_at_edges(self):
        """Test unpack on the extreme words."""
        assert packing.unpack(0) == (0, 0)
        assert packing.unpack(packing.WORD_MAX) == (MAX, MAX)

    def test_accessors(self):
        """Test low_half/high_half helpers."""
        # Arrange
        word = packing.pack(7, 9)

        # Act & Assert
        assert packing.low_half(word) == 7
        assert packing.high_half(word) == 9

    def test_pack_rejects_out_of_range_half(self):
        """Test that a half above 2**128-1 is rejected with its field name."""
        with pytest.raises(PackedValueOverflowError) as exc_info:
            packing.pack(MAX + 1, 0, low_field="gold")

        assert exc_info.value.field == "gold"
        assert exc_info.value.value == MAX + 1

    def test_unpack_rejects_negative_word(self):
        with pytest.raises(PackedValueOverflowError):
            packing.unpack(-1)

    def test_with_low_and_with_high_replace_one_half(self):
        """Test that replacing one half leaves the other untouched."""
        word = packing.pack(3, 4)

        assert packing.unpack(packing.with_low(word, 10)) == (10, 4)
        assert packing.unpack(packing.with_high(word, 10)) == (3, 10)


# ============================================================================
# ISOLATION
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestHalfIsolation:
    """Test that arithmetic on one half never alters the other."""

    @pytest.mark.parametrize("high", HALF_SAMPLES)
    @pytest.mark.parametrize("low", [0, 1, 2**100, MAX - 1])
    def test_incrementing_low_keeps_high(self, low, high):
        """Test incrementing the low half across the high-half range."""
        # Arrange
        word = packing.pack(low, high)

        # Act
        updated = packing.add_low(word, 1)

        # Assert
        assert packing.high_half(updated) == high
        assert packing.low_half(updated) == low + 1

    @pytest.mark.parametrize("low", HALF_SAMPLES)
    @pytest.mark.parametrize("high", [0, 1, 2**100, MAX - 1])
    def test_incrementing_high_keeps_low(self, low, high):
        """Test incrementing the high half across the low-half range."""
        word = packing.pack(low, high)

        updated = packing.add_high(word, 1)

        assert packing.low_half(updated) == low
        assert packing.high_half(updated) == high + 1

    def test_low_overflow_raises_instead_of_carrying(self):
        """Test that a full low half cannot carry into the high half."""
        # Arrange
        word = packing.pack(MAX, 0)

        # Act & Assert
        with pytest.raises(PackedValueOverflowError) as exc_info:
            packing.add_low(word, 1, field="gold")

        assert exc_info.value.field == "gold"

    def test_high_underflow_raises_instead_of_borrowing(self):
        """Test that an empty high half cannot borrow from the low half."""
        word = packing.pack(MAX, 0)

        with pytest.raises(PackedValueOverflowError):
            packing.add_high(word, -1, field="marble")


# ============================================================================
# VALUE OBJECTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestBalance:
    """Test Balance value object."""

    def test_default_is_zero(self):
        balance = Balance()

        assert balance.is_zero
        assert balance.to_word() == 0

    def test_word_round_trip(self):
        """Test from_word(to_word()) for a mixed balance."""
        balance = Balance(gold=123, marble=MAX)

        assert Balance.from_word(balance.to_word()) == balance

    def test_gold_is_low_half(self):
        assert Balance(gold=1, marble=0).to_word() == 1
        assert Balance(gold=0, marble=1).to_word() == 1 << 128

    def test_credit_adds_per_half(self):
        # Arrange
        balance = Balance(gold=10, marble=20)

        # Act
        updated = balance.credit(gold=5, marble=1)

        # Assert
        assert updated == Balance(gold=15, marble=21)
        assert balance == Balance(gold=10, marble=20)

    def test_crediting_gold_never_touches_marble(self):
        """Test gold credit at the top of the marble range."""
        balance = Balance(gold=0, marble=MAX)

        updated = balance.credit(gold=MAX)

        assert updated.marble == MAX
        assert updated.gold == MAX

    def test_debit_below_zero_raises(self):
        """Test that debiting more gold than held is rejected."""
        with pytest.raises(PackedValueOverflowError) as exc_info:
            Balance(gold=5, marble=100).debit(gold=6)

        assert exc_info.value.field == "gold"

    def test_credit_past_max_raises(self):
        with pytest.raises(PackedValueOverflowError) as exc_info:
            Balance(gold=0, marble=MAX).credit(marble=1)

        assert exc_info.value.field == "marble"

    def test_negative_construction_rejected(self):
        with pytest.raises(PackedValueOverflowError):
            Balance(gold=-1)


@pytest.mark.unit
@pytest.mark.domain
class TestProgression:
    """Test Progression value object."""

    def test_draws_per_match_is_low_half(self):
        progression = Progression(draws_per_match=3, draw_length=2)

        assert progression.to_word() == (2 << 128) | 3

    def test_from_word(self):
        word = packing.pack(8, 30)

        assert Progression.from_word(word) == Progression(draws_per_match=8, draw_length=30)

    def test_out_of_range_rejected_with_field_name(self):
        with pytest.raises(PackedValueOverflowError) as exc_info:
            Progression(draws_per_match=0, draw_length=MAX + 1)

        assert exc_info.value.field == "draw_length"
