"""Checked fixed-point integer arithmetic on the unsigned 256-bit width."""
from __future__ import annotations

from decimal import Decimal, localcontext

from ...errors import ArithmeticOverflowError
from .constants import MAX_U256, WAD


def checked(value: int) -> int:
    """Return ``value`` if it fits in an unsigned 256-bit integer."""
    if value < 0:
        raise ArithmeticOverflowError(f"Arithmetic underflow: {value}")
    if value > MAX_U256:
        raise ArithmeticOverflowError("Arithmetic overflow beyond u256")
    return value


def checked_mul(a: int, b: int) -> int:
    """Multiply with overflow checking"""
    return checked(checked(a) * checked(b))


def mul_div(a: int, b: int, denominator: int) -> int:
    """``a * b // denominator`` with the product checked."""
    if denominator <= 0:
        raise ArithmeticOverflowError("Division by zero")
    return checked_mul(a, b) // denominator


def wad_mul(a: int, b: int) -> int:
    return mul_div(a, b, WAD)


def wad_pow(base: int, exponent: int) -> int:
    """Raise a WAD-scaled ``base`` to an integer power by repeated squaring.

    Each product is rescaled by WAD, so the cost is O(log exponent) checked
    multiplications.
    """
    if exponent < 0:
        raise ArithmeticOverflowError(f"Negative exponent: {exponent}")

    result = WAD
    while exponent > 0:
        if exponent & 1:
            result = wad_mul(result, base)
        exponent >>= 1
        if exponent:
            base = wad_mul(base, base)
    return result


def to_wad(value: Decimal) -> int:
    """Convert a decimal to a WAD integer, truncating toward zero."""
    with localcontext() as ctx:
        ctx.prec = 80
        return checked(int(value * WAD))


def from_wad(value: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = 80
        return Decimal(value) / WAD
