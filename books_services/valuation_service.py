"""
books_services.valuation_service -- Perpetual inventory ledger.

Responsibility:
    Own the inventory items and the stock movement log; answer balance,
    costing, stock register and live batch questions by replaying the log
    through the costing strategies in books_engines.valuation.

Architecture position:
    Services -- stateful store over the pure costing engines.

Invariants enforced:
    - Stock non-negativity in date order: ``record`` refuses an issue
      that would take any running balance, replayed date ascending, below
      zero.  Posting translators check first and return a
      failure result; reaching the raise means a translator skipped its
      check.
    - Item names are unique after trimming and case-folding.
    - Movements are append-only; ``clear_transactions`` / ``replace_all``
      exist for reset and import only.

Failure modes:
    - InsufficientStockError from ``record`` on an over-issue.
    - InventoryItemNotFoundError from ``require_item`` / ``record`` for
      unknown item ids.

Audit relevance:
    Issue amounts are fixed at posting time.  Changing the valuation method
    later affects future issues and the live batch view, never the amounts
    already in the log.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from books_engines.valuation import (
    CostLayer,
    CostMethod,
    IssueCosting,
    available_for_issue,
    get_costing_strategy,
)
from books_kernel.domain.identity import IdFactory, UuidIdFactory
from books_kernel.domain.values import ZERO, decimal_sum, quantize_rate
from books_kernel.exceptions import InsufficientStockError, InventoryItemNotFoundError
from books_kernel.logging_config import get_logger
from books_kernel.models.account import normalize_name
from books_kernel.models.inventory import InventoryItem, StockMovementType, StockTransaction

logger = get_logger("services.valuation")


@dataclass(frozen=True)
class StockRegisterLine:
    """One movement with the item's running position after it."""

    transaction: StockTransaction
    balance_quantity: Decimal
    balance_amount: Decimal

    @property
    def balance_rate(self) -> Decimal:
        if self.balance_quantity == 0:
            return ZERO
        return quantize_rate(self.balance_amount / self.balance_quantity)


class InventoryLedger:
    """
    Items and stock movements.

    Contract:
        ``transactions`` is in the order movements were recorded.  Costing
        and the stock register replay them date ascending, stable for
        movements sharing a date.
    """

    def __init__(self, id_factory: IdFactory | None = None):
        self._ids = id_factory or UuidIdFactory()
        self._items: dict[str, InventoryItem] = {}
        self._transactions: list[StockTransaction] = []
        self._lock = threading.RLock()

    # =========================================================================
    # Items
    # =========================================================================

    @property
    def items(self) -> tuple[InventoryItem, ...]:
        return tuple(self._items.values())

    def get_item(self, item_id: str) -> InventoryItem | None:
        return self._items.get(item_id)

    def require_item(self, item_id: str) -> InventoryItem:
        item = self._items.get(item_id)
        if item is None:
            raise InventoryItemNotFoundError(item_id)
        return item

    def find_item_by_name(self, name: str) -> InventoryItem | None:
        key = normalize_name(name)
        for item in self._items.values():
            if item.name_key == key:
                return item
        return None

    def build_item(self, name: str, unit: str = "Pcs", last_purchase_rate: Decimal = ZERO) -> InventoryItem:
        """A new item record that is NOT yet registered (posting plans commit it)."""
        return InventoryItem(
            id=self._ids.new_id(),
            name=name.strip(),
            unit=unit or "Pcs",
            last_purchase_rate=last_purchase_rate,
        )

    def register_item(self, item: InventoryItem) -> InventoryItem:
        with self._lock:
            if self.find_item_by_name(item.name) is not None or item.id in self._items:
                raise ValueError(f"Inventory item already exists: {item.name!r}")
            self._items[item.id] = item
        logger.info("inventory_item_created", extra={
            "item_id": item.id,
            "item_name": item.name,
            "unit": item.unit,
        })
        return item

    def find_or_create_item(
        self, name: str, unit: str = "Pcs", last_purchase_rate: Decimal = ZERO,
    ) -> InventoryItem:
        with self._lock:
            existing = self.find_item_by_name(name)
            if existing is not None:
                return existing
            return self.register_item(self.build_item(name, unit, last_purchase_rate))

    def update_last_purchase_rate(self, item_id: str, rate: Decimal) -> InventoryItem:
        with self._lock:
            updated = self.require_item(item_id).with_last_purchase_rate(rate)
            self._items[item_id] = updated
        return updated

    # =========================================================================
    # Movements
    # =========================================================================

    @property
    def transactions(self) -> tuple[StockTransaction, ...]:
        return tuple(self._transactions)

    def transactions_for(self, item_id: str) -> list[StockTransaction]:
        return [t for t in self._transactions if t.item_id == item_id]

    def get_current_stock_balance(self, item_id: str) -> Decimal:
        """Total receipts minus total issues; zero for unknown items."""
        return decimal_sum(t.signed_quantity for t in self._transactions if t.item_id == item_id)

    def available_on(self, item_id: str, on: date) -> Decimal:
        """What an issue dated ``on`` may take without any later balance going negative."""
        return available_for_issue(self.transactions_for(item_id), on)

    def new_transaction(
        self,
        *,
        movement: StockMovementType,
        txn_date: date,
        item: InventoryItem,
        quantity: Decimal,
        rate: Decimal,
        amount: Decimal,
        ref_doc_id: str | None,
    ) -> StockTransaction:
        return StockTransaction(
            id=self._ids.new_id(),
            date=txn_date,
            type=movement,
            item_id=item.id,
            item_name=item.name,
            quantity=quantity,
            rate=rate,
            amount=amount,
            ref_doc_id=ref_doc_id,
        )

    def cost_issue(
        self,
        item: InventoryItem,
        quantity: Decimal,
        method: CostMethod,
        pending: Sequence[StockTransaction] = (),
    ) -> IssueCosting:
        """
        Cost an issue of ``item`` under ``method``.

        ``pending`` holds movements of the same document not yet recorded,
        so two lines for one item cost consecutively.
        """
        history = self.transactions_for(item.id) + [t for t in pending if t.item_id == item.id]
        return get_costing_strategy(method).cost_issue(
            item_id=item.id,
            transactions=history,
            quantity=quantity,
            last_purchase_rate=item.last_purchase_rate,
        )

    def record(self, txn: StockTransaction) -> StockTransaction:
        """Append one movement."""
        with self._lock:
            item = self.require_item(txn.item_id)
            if not txn.is_receipt:
                available = self.available_on(txn.item_id, txn.date)
                if txn.quantity > available:
                    raise InsufficientStockError(item.name, str(available), str(txn.quantity))
            self._transactions.append(txn)
        logger.info("stock_movement_recorded", extra={
            "item_id": txn.item_id,
            "movement": txn.type.value,
            "quantity": txn.quantity,
            "amount": txn.amount,
            "ref_doc_id": txn.ref_doc_id,
        })
        return txn

    def clear_transactions(self) -> None:
        with self._lock:
            self._transactions = []

    def replace_all(
        self, items: Sequence[InventoryItem], transactions: Sequence[StockTransaction],
    ) -> None:
        """Swap items and movements wholesale (import / reset)."""
        with self._lock:
            self._items = {item.id: item for item in items}
            self._transactions = list(transactions)

    # =========================================================================
    # Views
    # =========================================================================

    def live_batches(self, item_id: str, method: CostMethod) -> tuple[CostLayer, ...]:
        """Receipt layers still on hand under ``method``."""
        return get_costing_strategy(method).remaining_layers(
            item_id, self.transactions_for(item_id),
        )

    def stock_register(self, item_id: str | None = None) -> list[StockRegisterLine]:
        """Movements date ascending with each item's running quantity and value."""
        movements = self._transactions if item_id is None else self.transactions_for(item_id)
        running: dict[str, tuple[Decimal, Decimal]] = {}
        lines: list[StockRegisterLine] = []
        for txn in sorted(movements, key=lambda t: t.date):
            quantity, amount = running.get(txn.item_id, (ZERO, ZERO))
            if txn.is_receipt:
                quantity, amount = quantity + txn.quantity, amount + txn.amount
            else:
                quantity, amount = quantity - txn.quantity, amount - txn.amount
            running[txn.item_id] = (quantity, amount)
            lines.append(StockRegisterLine(
                transaction=txn,
                balance_quantity=quantity,
                balance_amount=amount,
            ))
        return lines

    def closing_stock_value(self) -> Decimal:
        """Sum of receipt amounts less sum of issue amounts, all items."""
        receipts = decimal_sum(t.amount for t in self._transactions if t.is_receipt)
        issues = decimal_sum(t.amount for t in self._transactions if not t.is_receipt)
        return receipts - issues

