"""Display formatting for report amounts."""

from __future__ import annotations

from decimal import Decimal

from books_config.schema import NegativeFormat
from books_kernel.domain.values import DISPLAY_EPSILON, quantize_amount, to_decimal


def format_amount(value, negative_format: NegativeFormat = NegativeFormat.MINUS) -> str:
    """
    Two decimals with thousands separators.

    Values below -0.001 render as ``-1,234.50`` (MINUS) or ``(1,234.50)``
    (BRACKETS); anything inside the display band renders unsigned.
    """
    amount = to_decimal(value)
    text = f"{abs(quantize_amount(amount)):,.2f}"
    if amount < -DISPLAY_EPSILON:
        if negative_format == NegativeFormat.BRACKETS:
            return f"({text})"
        return f"-{text}"
    return text


def format_balance(net_debit: Decimal, negative_format: NegativeFormat = NegativeFormat.MINUS) -> str:
    """A ledger balance as ``1,000.00 Dr`` / ``250.00 Cr``."""
    if abs(net_debit) <= DISPLAY_EPSILON:
        return format_amount(0, negative_format)
    suffix = "Dr" if net_debit > 0 else "Cr"
    return f"{format_amount(abs(net_debit), negative_format)} {suffix}"
