"""
safe_math.py - Overflow-Checked Unsigned Integer Arithmetic

Every amount in the lending ledger is an unsigned 128-bit integer. Python ints
never overflow, so these helpers emulate fixed-width arithmetic explicitly:

    add(a, b)       wraps modulo 2**128, fails if the result is below an operand
    subtract(a, b)  a - b, or 0 when b > a (floor at zero, never fails)
    multiply(a, b)  wraps modulo 2**128, fails unless a == 0 or product // a == b

The floor-at-zero rule of subtract() silently absorbs underflow. Callers that
must reject an amount larger than the balance check that themselves before
subtracting (see PositionLedger.prepare_repay).
"""

from __future__ import annotations

from .core import MAX_UINT, Amount, ArithmeticOverflow, require_uint


def add(a: Amount, b: Amount) -> Amount:
    """
    Return a + b.

    Raises:
        ArithmeticOverflow: If the wrapped sum is less than either operand
    """
    require_uint("a", a)
    require_uint("b", b)
    total = (a + b) & MAX_UINT
    if total < a or total < b:
        raise ArithmeticOverflow(f"add overflow: {a} + {b}")
    return total


def subtract(a: Amount, b: Amount) -> Amount:
    """Return a - b, or 0 if b exceeds a."""
    require_uint("a", a)
    require_uint("b", b)
    if a >= b:
        return a - b
    return 0


def multiply(a: Amount, b: Amount) -> Amount:
    """
    Return a * b.

    Overflow is detected with the inverse-division check on the wrapped product.

    Raises:
        ArithmeticOverflow: If the true product does not fit in the integer width
    """
    require_uint("a", a)
    require_uint("b", b)
    if a == 0:
        return 0
    product = (a * b) & MAX_UINT
    if product // a != b:
        raise ArithmeticOverflow(f"multiply overflow: {a} * {b}")
    return product
