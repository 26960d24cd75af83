"""
Checked unsigned integer arithmetic (u64 / u128 semantics).

Python ints never overflow, so every helper here enforces the width of the
field it models and raises `ArithmeticFailure` instead of wrapping or
clamping. Division helpers reject a zero denominator.
"""

from __future__ import annotations

from ...errors import ArithmeticFailure


U64_MAX = (1 << 64) - 1
U128_MAX = (1 << 128) - 1


def _in_range(value: int, bound: int, op: str) -> int:
    if value < 0:
        raise ArithmeticFailure(f"underflow in {op}")
    if value > bound:
        raise ArithmeticFailure(f"overflow in {op}")
    return value


def checked_add(a: int, b: int, *, bound: int = U128_MAX) -> int:
    return _in_range(a + b, bound, "add")


def checked_sub(a: int, b: int, *, bound: int = U128_MAX) -> int:
    return _in_range(a - b, bound, "sub")


def checked_mul(a: int, b: int, *, bound: int = U128_MAX) -> int:
    return _in_range(a * b, bound, "mul")


def checked_div(a: int, b: int) -> int:
    if b == 0:
        raise ArithmeticFailure("division by zero")
    return _in_range(a, U128_MAX, "div") // b


def checked_rem(a: int, b: int) -> int:
    if b == 0:
        raise ArithmeticFailure("division by zero")
    return _in_range(a, U128_MAX, "rem") % b


def checked_ceil_div(a: int, b: int) -> int:
    """`ceil(a / b)` for non-negative operands."""
    if b == 0:
        raise ArithmeticFailure("division by zero")
    _in_range(a, U128_MAX, "ceil_div")
    return (a + b - 1) // b


def to_u64(value: int) -> int:
    """Narrow a u128 intermediate into a u64 field."""
    return _in_range(value, U64_MAX, "u64 conversion")
