"""
Checked unsigned arithmetic for contract logic.

Every helper validates its operands and result against the declared width and
raises ArithmeticOverflow / ArithmeticUnderflow (both call failures) instead
of wrapping.
"""

from __future__ import annotations

from ..errors import ArithmeticOverflow, ArithmeticUnderflow

__all__ = ["uint_max", "check_uint", "add", "sub", "mul", "div"]


def uint_max(bits: int = 256) -> int:
    if bits < 8 or bits > 256 or bits % 8:
        raise ValueError(f"invalid width {bits}")
    return (1 << bits) - 1


def check_uint(v: int, bits: int = 256) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise TypeError(f"expected int, got {type(v).__name__}")
    if v < 0:
        raise ArithmeticUnderflow(data={"value": v, "bits": bits})
    if v > uint_max(bits):
        raise ArithmeticOverflow(data={"value": v, "bits": bits})
    return v


def add(a: int, b: int, bits: int = 256) -> int:
    check_uint(a, bits)
    check_uint(b, bits)
    r = a + b
    if r > uint_max(bits):
        raise ArithmeticOverflow(f"uint{bits} addition overflow", data={"a": a, "b": b})
    return r


def sub(a: int, b: int, bits: int = 256) -> int:
    check_uint(a, bits)
    check_uint(b, bits)
    if b > a:
        raise ArithmeticUnderflow(f"uint{bits} subtraction underflow", data={"a": a, "b": b})
    return a - b


def mul(a: int, b: int, bits: int = 256) -> int:
    check_uint(a, bits)
    check_uint(b, bits)
    r = a * b
    if r > uint_max(bits):
        raise ArithmeticOverflow(f"uint{bits} multiplication overflow", data={"a": a, "b": b})
    return r


def div(a: int, b: int, bits: int = 256) -> int:
    check_uint(a, bits)
    check_uint(b, bits)
    if b == 0:
        # Division by zero is reported as an overflow of the quotient.
        raise ArithmeticOverflow(f"uint{bits} division by zero", data={"a": a})
    return a // b
