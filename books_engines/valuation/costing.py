"""
books_engines.valuation.costing -- Issue costing strategies.

Responsibility:
    Compute the cost of issuing a quantity of one item from that item's
    movement history, under FIFO, LIFO or weighted-average, and expose the
    layers still on hand.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Called by the
    InventoryLedger in books_services/ with the item's full history.

Invariants enforced:
    - Deterministic: same history and quantity always give the same cost.
      Movements sharing a date keep their recorded order.
    - Graceful degradation: quantity the layers cannot cover is valued at
      the item's last purchase rate instead of failing.

Failure modes:
    - ValueError for a non-positive issue quantity.
    - ValueError from ``get_costing_strategy`` for an unknown method.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Sequence

from books_engines.tracer import traced_engine
from books_engines.valuation.cost_lot import CostLayer, CostMethod, IssueCosting, LayerConsumption
from books_kernel.domain.values import ZERO, decimal_sum, to_decimal
from books_kernel.models.inventory import StockTransaction

POOLED_LAYER_ID = "weighted-average"


def _chronological(transactions: Sequence[StockTransaction]) -> list[StockTransaction]:
    return sorted(transactions, key=lambda t: t.date)


def _receipts(transactions: Sequence[StockTransaction]) -> list[StockTransaction]:
    return [t for t in _chronological(transactions) if t.is_receipt]


def _total_issued(transactions: Sequence[StockTransaction]) -> Decimal:
    return decimal_sum(t.quantity for t in transactions if not t.is_receipt)


def _layer(txn: StockTransaction, remaining: Decimal) -> CostLayer:
    return CostLayer(
        item_id=txn.item_id,
        layer_date=txn.date,
        rate=txn.rate,
        original_quantity=txn.quantity,
        remaining_quantity=remaining,
        source_txn_id=txn.id,
        ref_doc_id=txn.ref_doc_id,
    )


def available_for_issue(transactions: Sequence[StockTransaction], on: date) -> Decimal:
    """
    Largest quantity of one item an issue dated ``on`` can take.

    The issue is placed after every movement dated on or before ``on``;
    the running balance, replayed date ascending, must not drop below zero
    at that point or at any later movement.  The answer is the lowest
    running balance from ``on`` onwards.
    """
    balance = ZERO
    lowest: Decimal | None = None
    for txn in _chronological(transactions):
        if txn.date > on and lowest is None:
            lowest = balance
        balance += txn.signed_quantity
        if lowest is not None:
            lowest = min(lowest, balance)
    return balance if lowest is None else lowest


class CostingStrategy(ABC):
    """
    Contract:
        ``cost_issue`` never mutates its inputs and never fails for lack of
        stock; ``remaining_layers`` returns only layers with quantity left.
    """

    method: CostMethod

    @abstractmethod
    def remaining_layers(
        self, item_id: str, transactions: Sequence[StockTransaction],
    ) -> tuple[CostLayer, ...]:
        ...

    @abstractmethod
    def _take(
        self, layers: list[CostLayer], quantity: Decimal,
    ) -> list[LayerConsumption]:
        ...

    @traced_engine("issue_costing", "1.0", fingerprint_fields=("item_id", "quantity", "last_purchase_rate"))
    def cost_issue(
        self,
        item_id: str,
        transactions: Sequence[StockTransaction],
        quantity: Decimal,
        last_purchase_rate: Decimal,
    ) -> IssueCosting:
        """Cost an issue of ``quantity`` against the remaining layers."""
        quantity = to_decimal(quantity)
        if quantity <= 0:
            raise ValueError(f"Issue quantity must be positive, got {quantity}")
        layers = list(self.remaining_layers(item_id, transactions))
        consumptions = self._take(layers, quantity)
        covered = decimal_sum(c.quantity for c in consumptions)
        return IssueCosting.create(
            item_id=item_id,
            method=self.method,
            quantity=quantity,
            consumptions=consumptions,
            shortfall_quantity=quantity - covered,
            fallback_rate=last_purchase_rate,
        )


def _take_in_order(layers: Sequence[CostLayer], quantity: Decimal) -> list[LayerConsumption]:
    consumptions: list[LayerConsumption] = []
    need = quantity
    for layer in layers:
        if need <= 0:
            break
        taken = min(layer.remaining_quantity, need)
        if taken <= 0:
            continue
        consumptions.append(LayerConsumption(
            source_txn_id=layer.source_txn_id,
            ref_doc_id=layer.ref_doc_id,
            rate=layer.rate,
            quantity=taken,
        ))
        need -= taken
    return consumptions


class FifoCosting(CostingStrategy):
    """
    First-in, first-out.

    Receipts are walked oldest first.  Everything issued so far is assumed
    to have come out of the oldest receipts, so that quantity is skipped
    before the new issue starts taking.
    """

    method = CostMethod.FIFO

    def remaining_layers(self, item_id, transactions):
        to_skip = _total_issued(transactions)
        layers: list[CostLayer] = []
        for receipt in _receipts(transactions):
            available = receipt.quantity
            if to_skip > 0:
                if to_skip >= available:
                    to_skip -= available
                    continue
                available -= to_skip
                to_skip = ZERO
            layers.append(_layer(receipt, available))
        return tuple(layers)

    def _take(self, layers, quantity):
        return _take_in_order(layers, quantity)


class LifoCosting(CostingStrategy):
    """
    Perpetual last-in, first-out.

    Movements are replayed in date order against a stack of receipt layers;
    each past issue drew from the newest layers on hand at the time.  The
    new issue takes from the newest layers still left.
    """

    method = CostMethod.LIFO

    def remaining_layers(self, item_id, transactions):
        stack: list[tuple[StockTransaction, Decimal]] = []
        for txn in _chronological(transactions):
            if txn.is_receipt:
                stack.append((txn, txn.quantity))
                continue
            need = txn.quantity
            while need > 0 and stack:
                top, remaining = stack[-1]
                if remaining <= need:
                    need -= remaining
                    stack.pop()
                else:
                    stack[-1] = (top, remaining - need)
                    need = ZERO
        return tuple(_layer(txn, remaining) for txn, remaining in stack)

    def _take(self, layers, quantity):
        return _take_in_order(list(reversed(layers)), quantity)


class WeightedAverageCosting(CostingStrategy):
    """
    Perpetual moving average.

    Every receipt re-averages the pool; every issue leaves at the running
    average.  What remains is one pooled layer at the current average.
    """

    method = CostMethod.WEIGHTED_AVERAGE

    def remaining_layers(self, item_id, transactions):
        quantity = ZERO
        value = ZERO
        last_receipt: StockTransaction | None = None
        for txn in _chronological(transactions):
            if txn.is_receipt:
                quantity += txn.quantity
                value += txn.quantity * txn.rate
                last_receipt = txn
                continue
            if quantity <= 0:
                continue
            average = value / quantity
            taken = min(txn.quantity, quantity)
            quantity -= taken
            value -= taken * average
        if quantity <= 0 or last_receipt is None:
            return ()
        return (
            CostLayer(
                item_id=item_id,
                layer_date=last_receipt.date,
                rate=value / quantity,
                original_quantity=quantity,
                remaining_quantity=quantity,
                source_txn_id=POOLED_LAYER_ID,
            ),
        )

    def _take(self, layers, quantity):
        return _take_in_order(layers, quantity)


_STRATEGIES: dict[CostMethod, CostingStrategy] = {
    CostMethod.FIFO: FifoCosting(),
    CostMethod.LIFO: LifoCosting(),
    CostMethod.WEIGHTED_AVERAGE: WeightedAverageCosting(),
}


def get_costing_strategy(method: CostMethod | str) -> CostingStrategy:
    """Return the strategy for ``method`` (enum or its string value)."""
    return _STRATEGIES[CostMethod(method)]
