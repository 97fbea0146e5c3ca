"""
luckymint/tests/test_numeric.py

Tests for checked u64 arithmetic.
"""

import pytest

from luckymint.config import U64_MAX
from luckymint.errors import ArithmeticFault, MintError
from luckymint.protocol.numeric import (
    ensure_u64,
    checked_add,
    checked_sub,
    checked_mul,
    floor_div,
)


class TestEnsureU64:
    """Test range validation."""

    def test_accepts_bounds(self):
        """Test 0 and U64_MAX are valid."""
        assert ensure_u64(0) == 0
        assert ensure_u64(U64_MAX) == U64_MAX

    def test_rejects_negative(self):
        """Test negative values fault."""
        with pytest.raises(ArithmeticFault, match="underflow"):
            ensure_u64(-1)

    def test_rejects_overflow(self):
        """Test values above U64_MAX fault."""
        with pytest.raises(ArithmeticFault, match="overflow"):
            ensure_u64(U64_MAX + 1)

    def test_rejects_non_integers(self):
        """Test floats and bools are not accepted as counters."""
        with pytest.raises(ArithmeticFault):
            ensure_u64(1.5)
        with pytest.raises(ArithmeticFault):
            ensure_u64(True)

    def test_label_in_message(self):
        """Test the label shows up in the error."""
        with pytest.raises(ArithmeticFault, match="remaining_supply"):
            ensure_u64(-5, "remaining_supply")


class TestCheckedOps:
    """Test checked add/sub/mul/div."""

    def test_add(self):
        assert checked_add(2, 3) == 5

    def test_add_overflow(self):
        with pytest.raises(ArithmeticFault):
            checked_add(U64_MAX, 1)

    def test_sub(self):
        assert checked_sub(10, 4) == 6

    def test_sub_underflow(self):
        """Test subtraction below zero faults instead of going negative."""
        with pytest.raises(ArithmeticFault):
            checked_sub(4, 10)

    def test_mul(self):
        assert checked_mul(10000, 100) == 1_000_000

    def test_mul_overflow(self):
        with pytest.raises(ArithmeticFault):
            checked_mul(U64_MAX, 2)

    def test_floor_div_truncates(self):
        assert floor_div(4999, 10) == 499

    def test_floor_div_by_zero(self):
        with pytest.raises(ArithmeticFault, match="division by zero"):
            floor_div(10, 0)

    def test_fault_is_not_a_mint_error(self):
        """Test a broad MintError handler never swallows an arithmetic fault."""
        assert not issubclass(ArithmeticFault, MintError)
        assert issubclass(ArithmeticFault, ArithmeticError)
