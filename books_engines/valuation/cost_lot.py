"""
books_engines.valuation.cost_lot -- Cost layer value objects for issue costing.

Responsibility:
    Define immutable value objects for receipt layers, the slices of layers
    an issue consumes, and the costed result of an issue.  These model the
    FIFO / LIFO / weighted-average flow of cost through inventory.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import books_kernel/domain and books_kernel/models.
    The stateful InventoryLedger lives in books_services/.

Invariants enforced:
    - Positive layer quantity: CostLayer.__post_init__ rejects
      original_quantity <= 0 and remaining outside [0, original].
    - Non-negative rate.
    - All value objects are frozen dataclasses.

Failure modes:
    - ValueError from CostLayer.__post_init__ on invalid quantities or rate.
    - Division-by-zero safe: IssueCosting.rate is zero for a zero quantity.

Audit relevance:
    ``IssueCosting.consumptions`` names every receipt an issue drew from,
    and ``shortfall_quantity`` records how much was valued at the item's
    last purchase rate because the layers ran out.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from books_kernel.domain.values import ZERO, decimal_sum, quantize_amount, quantize_rate
from books_kernel.logging_config import get_logger

logger = get_logger("engines.valuation.cost_lot")


class CostMethod(str, Enum):
    """Inventory valuation methods."""

    FIFO = "FIFO"                          # First-in, first-out
    LIFO = "LIFO"                          # Last-in, first-out (perpetual)
    WEIGHTED_AVERAGE = "WEIGHTED_AVERAGE"  # Perpetual moving average


@dataclass(frozen=True, slots=True)
class CostLayer:
    """
    A receipt of stock still (partly) on hand, at its receipt rate.

    Layers are derived by replaying movements; they are never stored.
    """

    item_id: str
    layer_date: date
    rate: Decimal
    original_quantity: Decimal
    remaining_quantity: Decimal
    source_txn_id: str
    ref_doc_id: str | None = None

    def __post_init__(self) -> None:
        if self.original_quantity <= 0:
            logger.error("cost_layer_invalid_quantity", extra={
                "item_id": self.item_id,
                "source_txn_id": self.source_txn_id,
                "quantity": str(self.original_quantity),
            })
            raise ValueError(f"Layer quantity must be positive, got {self.original_quantity}")
        if not ZERO <= self.remaining_quantity <= self.original_quantity:
            raise ValueError(
                f"Remaining quantity {self.remaining_quantity} outside "
                f"[0, {self.original_quantity}]"
            )
        if self.rate < 0:
            raise ValueError(f"Layer rate cannot be negative, got {self.rate}")

    @property
    def remaining_value(self) -> Decimal:
        return self.remaining_quantity * self.rate

    @property
    def is_exhausted(self) -> bool:
        return self.remaining_quantity == 0


@dataclass(frozen=True, slots=True)
class LayerConsumption:
    """The part of one layer an issue drew from."""

    source_txn_id: str
    ref_doc_id: str | None
    rate: Decimal
    quantity: Decimal

    @property
    def cost(self) -> Decimal:
        return self.quantity * self.rate


@dataclass(frozen=True, slots=True)
class IssueCosting:
    """
    The cost of issuing ``quantity`` of one item.

    ``cost`` is the sum of consumed layers plus any shortfall valued at
    ``fallback_rate``, rounded to two places.  ``rate`` is cost / quantity.
    """

    item_id: str
    method: CostMethod
    quantity: Decimal
    cost: Decimal
    rate: Decimal
    consumptions: tuple[LayerConsumption, ...] = ()
    shortfall_quantity: Decimal = ZERO
    fallback_rate: Decimal = ZERO

    @property
    def used_fallback(self) -> bool:
        return self.shortfall_quantity > 0

    @classmethod
    def create(
        cls,
        item_id: str,
        method: CostMethod,
        quantity: Decimal,
        consumptions: list[LayerConsumption],
        shortfall_quantity: Decimal,
        fallback_rate: Decimal,
    ) -> IssueCosting:
        """Total the consumed layers and the fallback-valued shortfall."""
        layer_cost = decimal_sum(c.cost for c in consumptions)
        cost = quantize_amount(layer_cost + shortfall_quantity * fallback_rate)
        rate = quantize_rate(cost / quantity) if quantity > 0 else ZERO

        if shortfall_quantity > 0:
            logger.warning("issue_cost_fallback_used", extra={
                "item_id": item_id,
                "cost_method": method.value,
                "requested_quantity": str(quantity),
                "shortfall_quantity": str(shortfall_quantity),
                "fallback_rate": str(fallback_rate),
            })
        logger.debug("issue_costed", extra={
            "item_id": item_id,
            "cost_method": method.value,
            "quantity": str(quantity),
            "cost": str(cost),
            "layers_consumed": len(consumptions),
        })

        return cls(
            item_id=item_id,
            method=method,
            quantity=quantity,
            cost=cost,
            rate=rate,
            consumptions=tuple(consumptions),
            shortfall_quantity=shortfall_quantity,
            fallback_rate=fallback_rate,
        )
