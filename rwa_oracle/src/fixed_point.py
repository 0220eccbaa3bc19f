"""Overflow-checked fixed-point helpers.

Prices and yields are plain ``int`` values scaled by ``10**decimals``.
Every result is kept inside the signed 128-bit range and every division
truncates toward zero. Products that feed a division are computed at full
width; only the quotient is range checked.

.. code-block:: python

    >>> rescale(1_005, 3, 14)
    100500000000000
    >>> div_trunc(-7, 2)
    -3
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Context, Decimal

from .errors import ArithmeticOverflow

I128_MAX = 2**127 - 1
I128_MIN = -(2**127)

# Wide enough for any i128 value plus the largest supported scale.
_CONTEXT = Context(prec=80, rounding=ROUND_DOWN)


def checked(value: int) -> int:
    """Return ``value`` if it fits into a signed 128-bit integer.

    :raises ArithmeticOverflow: If the value is out of range.
    """
    if value > I128_MAX or value < I128_MIN:
        raise ArithmeticOverflow(f"Value {value} exceeds the 128-bit range")
    return value


def mul(a: int, b: int) -> int:
    """Multiply two fixed-point integers with overflow checking."""
    return checked(a * b)


def sub(a: int, b: int) -> int:
    return checked(a - b)


def div_trunc(a: int, b: int) -> int:
    """Divide, rounding toward zero.

    :raises ArithmeticOverflow: On division by zero.
    """
    if b == 0:
        raise ArithmeticOverflow("Division by zero")
    quotient = abs(a) // abs(b)
    return checked(-quotient if (a < 0) != (b < 0) else quotient)


def pow10(exponent: int) -> int:
    if exponent < 0:
        raise ArithmeticOverflow(f"Negative exponent {exponent}")
    return checked(10**exponent)


def rescale(value: int, from_decimals: int, to_decimals: int) -> int:
    """Move a fixed-point value from one scale to another.

    Scaling down truncates toward zero.

    :param value: Value scaled by ``10**from_decimals``.
    :param from_decimals: Current scale.
    :param to_decimals: Target scale.
    :returns: Value scaled by ``10**to_decimals``.
    :raises ArithmeticOverflow: If the result does not fit.
    """
    if to_decimals >= from_decimals:
        return mul(value, pow10(to_decimals - from_decimals))
    return div_trunc(value, 10 ** (from_decimals - to_decimals))


def mul_div(a: int, b: int, divisor: int) -> int:
    """Compute ``a * b / divisor`` with a full-width intermediate product.

    :raises ArithmeticOverflow: If the quotient does not fit or ``divisor`` is zero.
    """
    return div_trunc(a * b, divisor)


def to_fixed(value: Decimal | int | str, decimals: int) -> int:
    """Convert a decimal number into a fixed-point integer (truncating)."""
    scaled = Decimal(value).scaleb(decimals, _CONTEXT)
    if not scaled.is_finite():
        raise ArithmeticOverflow(f"Value {value} is not a finite number")
    return checked(int(scaled))


def from_fixed(value: int, decimals: int) -> Decimal:
    """Convert a fixed-point integer back into an exact Decimal."""
    return Decimal(value).scaleb(-decimals, _CONTEXT)
