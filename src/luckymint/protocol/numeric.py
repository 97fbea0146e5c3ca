"""
luckymint/protocol/numeric.py

Checked unsigned 64-bit arithmetic.

Python integers never wrap, so the ledger's u64 semantics are enforced
here: any result outside 0..U64_MAX raises ArithmeticFault instead.
"""

from ..config import U64_MAX
from ..errors import ArithmeticFault


def ensure_u64(value: int, label: str = "value") -> int:
    """Return value unchanged if it fits in u64, else raise."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise ArithmeticFault(f"{label} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ArithmeticFault(f"{label} underflow: {value}")
    if value > U64_MAX:
        raise ArithmeticFault(f"{label} overflow: {value}")
    return value


def checked_add(a: int, b: int) -> int:
    return ensure_u64(ensure_u64(a, "lhs") + ensure_u64(b, "rhs"), "sum")


def checked_sub(a: int, b: int) -> int:
    return ensure_u64(ensure_u64(a, "lhs") - ensure_u64(b, "rhs"), "difference")


def checked_mul(a: int, b: int) -> int:
    return ensure_u64(ensure_u64(a, "lhs") * ensure_u64(b, "rhs"), "product")


def floor_div(a: int, b: int) -> int:
    """Truncating division; a zero divisor is an arithmetic fault."""
    if ensure_u64(b, "divisor") == 0:
        raise ArithmeticFault("division by zero")
    return ensure_u64(a, "dividend") // b
