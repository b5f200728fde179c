"""
Module: books_kernel.models.inventory
Responsibility: Inventory items and the perpetual stock movement log.
Architecture position: Kernel > Models.  Pure data, zero I/O.

Invariants enforced:
    - Movement quantity is strictly positive.
    - Receipt amount is quantity x rate; issue amount is the cost computed by
      the active valuation method at posting time and is never recomputed.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from books_kernel.domain.values import ZERO, quantize_amount, quantize_rate, to_decimal
from books_kernel.models.account import normalize_name


class StockMovementType(str, Enum):
    """Direction of a stock movement."""

    RECEIPT = "RECEIPT"
    ISSUE = "ISSUE"


@dataclass(frozen=True)
class InventoryItem:
    """
    A stock-keeping item.

    ``last_purchase_rate`` is replaced on every purchase posting and values
    any issue quantity the receipt layers cannot cover.
    """

    id: str
    name: str
    unit: str = "Pcs"
    last_purchase_rate: Decimal = ZERO

    def __post_init__(self) -> None:
        object.__setattr__(self, "last_purchase_rate", quantize_rate(self.last_purchase_rate))

    @property
    def name_key(self) -> str:
        return normalize_name(self.name)

    def with_last_purchase_rate(self, rate: Decimal) -> InventoryItem:
        return dataclasses.replace(self, last_purchase_rate=rate)


@dataclass(frozen=True)
class StockTransaction:
    """One receipt or issue of one item."""

    id: str
    date: date
    type: StockMovementType
    item_id: str
    item_name: str
    quantity: Decimal
    rate: Decimal
    amount: Decimal
    ref_doc_id: str | None = None

    def __post_init__(self) -> None:
        quantity = to_decimal(self.quantity)
        if quantity <= 0:
            raise ValueError(f"Stock movement quantity must be positive, got {quantity}")
        object.__setattr__(self, "quantity", quantity)
        object.__setattr__(self, "rate", quantize_rate(self.rate))
        object.__setattr__(self, "amount", quantize_amount(self.amount))

    @property
    def is_receipt(self) -> bool:
        return self.type == StockMovementType.RECEIPT

    @property
    def signed_quantity(self) -> Decimal:
        return self.quantity if self.is_receipt else -self.quantity
