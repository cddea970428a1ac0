"""Checked uint256 arithmetic and fixed-point proportional math.

Python ints never wrap, so every helper here enforces the ``[0, 2**256)``
range explicitly and raises instead of silently producing an out-of-range
value. Proportional splits always multiply before dividing.
"""
from __future__ import annotations

from metric_vault.errors import ArithmeticOverflow, DivisionByZero

UINT256_MAX = 2**256 - 1
UINT24_MASK = 0xFFFFFF

# Fixed-point scale for percentages: 10**18 == 100%.
SCALE = 10**18


def check_uint256(value: int, name: str = "value") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ArithmeticOverflow(f"{name} underflows uint256: {value}")
    if value > UINT256_MAX:
        raise ArithmeticOverflow(f"{name} overflows uint256: {value}")
    return value


def checked_add(a: int, b: int) -> int:
    return check_uint256(check_uint256(a, "a") + check_uint256(b, "b"), "a + b")


def checked_sub(a: int, b: int) -> int:
    return check_uint256(check_uint256(a, "a") - check_uint256(b, "b"), "a - b")


def checked_mul(a: int, b: int) -> int:
    return check_uint256(check_uint256(a, "a") * check_uint256(b, "b"), "a * b")


def checked_div(a: int, b: int) -> int:
    check_uint256(a, "a")
    if check_uint256(b, "b") == 0:
        raise DivisionByZero("division by zero")
    return a // b


def compute_percentage(amount: int, supply: int, scale: int = SCALE) -> int:
    """Return ``amount / supply`` as a fixed-point fraction of ``scale``.

    Raises DivisionByZero when ``supply`` is zero.
    """
    if check_uint256(supply, "supply") == 0:
        raise DivisionByZero("total share supply is zero")
    return checked_div(checked_mul(amount, scale), supply)


def proportional_share(balance: int, percentage: int, scale: int = SCALE) -> int:
    """Floor of ``balance * percentage / scale``."""
    return checked_div(checked_mul(balance, percentage), scale)
