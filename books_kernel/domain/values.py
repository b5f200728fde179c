"""
Values -- Decimal arithmetic helpers for money, rates and quantities.

Responsibility:
    Normalizes every monetary input to ``Decimal`` and fixes the precision
    the rest of the kernel works in: amounts carry two places, derived unit
    rates carry six.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Money is never a float.  ``to_decimal`` converts floats through ``str``
      so ``0.1`` becomes ``Decimal("0.1")`` rather than its binary expansion.
    - ``BALANCE_TOLERANCE`` is the single definition of "balanced".

Failure modes:
    - ``ValueError`` from ``to_decimal`` for NaN, infinity, booleans or
      values that are not numbers.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Debits and credits may differ by less than one paisa.
BALANCE_TOLERANCE = Decimal("0.01")

# Net balances inside this band are displayed as nil.
DISPLAY_EPSILON = Decimal("0.001")

_AMOUNT_PLACES = Decimal("0.01")
_RATE_PLACES = Decimal("0.000001")


def to_decimal(value: object) -> Decimal:
    """Coerce int / float / str / Decimal into a finite Decimal."""
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a number: {value!r}") from exc
    else:
        raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def quantize_amount(value: object) -> Decimal:
    """Round a monetary amount to two places (half-up)."""
    return to_decimal(value).quantize(_AMOUNT_PLACES, rounding=ROUND_HALF_UP)


def quantize_rate(value: object) -> Decimal:
    """Round a unit rate to six places (half-up)."""
    return to_decimal(value).quantize(_RATE_PLACES, rounding=ROUND_HALF_UP)


def decimal_sum(values: Iterable[Decimal]) -> Decimal:
    """Sum Decimals starting from Decimal zero (``sum`` starts from int 0)."""
    return sum(values, ZERO)


def is_balanced(debits: Decimal, credits: Decimal, tolerance: Decimal = BALANCE_TOLERANCE) -> bool:
    """True when debits and credits differ by no more than ``tolerance``."""
    return abs(debits - credits) <= tolerance


def percent_of(base: Decimal, percent: Decimal) -> Decimal:
    """``base * percent / 100``, unrounded."""
    return base * percent / HUNDRED
