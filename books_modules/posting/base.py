"""
Posting translator protocol, posting plans and the plan builder.

A PostingTranslator is a pure mapping from a business document to a
PostingPlan: exactly one journal entry, the stock movements that go with
it, and the accounts and inventory items that must exist for both.  It
reads the stores but never writes them.  The ledger system commits a plan
as a whole or not at all.

Accounts and items a document needs but the books lack are created as
*provisional* records inside the plan.  They reach the registry only when
the plan commits, so a rejected posting leaves no orphan accounts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Generic, TypeVar

from books_config.schema import AccountSpec, PostingConventions
from books_engines.valuation import CostMethod
from books_kernel.domain.identity import IdFactory
from books_kernel.domain.results import ValidationError, ValidationResult
from books_kernel.domain.values import ZERO, quantize_amount
from books_kernel.logging_config import get_logger
from books_kernel.models.account import Account, normalize_name
from books_kernel.models.inventory import InventoryItem, StockMovementType, StockTransaction
from books_kernel.models.journal import JournalEntry, JournalLine, LineSide
from books_kernel.services.account_registry import AccountRegistry

if TYPE_CHECKING:
    from books_services.valuation_service import InventoryLedger

logger = get_logger("modules.posting")

D = TypeVar("D")


# =============================================================================
# Plan and result
# =============================================================================


@dataclass(frozen=True)
class PostingPlan:
    """Everything one posting writes, ready to commit atomically."""

    entry: JournalEntry
    new_accounts: tuple[Account, ...] = ()
    new_items: tuple[InventoryItem, ...] = ()
    stock_transactions: tuple[StockTransaction, ...] = ()
    rate_updates: tuple[tuple[str, Decimal], ...] = ()


@dataclass(frozen=True)
class TranslationResult:
    """
    Result of translating one document.

    Either contains a plan OR validation errors, never both.
    """

    plan: PostingPlan | None
    validation: ValidationResult

    @classmethod
    def success(cls, plan: PostingPlan) -> TranslationResult:
        return cls(plan=plan, validation=ValidationResult.success())

    @classmethod
    def failure(cls, *errors: ValidationError) -> TranslationResult:
        return cls(plan=None, validation=ValidationResult.failure(*errors))

    @property
    def is_valid(self) -> bool:
        return self.validation.is_valid and self.plan is not None

    def __bool__(self) -> bool:
        return self.is_valid


@dataclass(frozen=True)
class PostingContext:
    """Read access to the stores plus the rules a translation follows."""

    registry: AccountRegistry
    inventory: InventoryLedger
    ids: IdFactory
    conventions: PostingConventions
    inventory_method: CostMethod


# =============================================================================
# Builder
# =============================================================================


class PlanBuilder:
    """
    Accumulates lines, provisional records and stock movements for one plan.

    Zero-amount lines are dropped, so optional legs (a discount, an empty
    bank column) simply do not appear.
    """

    def __init__(self, ctx: PostingContext):
        self._ctx = ctx
        self._lines: list[JournalLine] = []
        self._new_accounts: dict[str, Account] = {}
        self._new_items: dict[str, InventoryItem] = {}
        self._stock: list[StockTransaction] = []
        self._rate_updates: dict[str, Decimal] = {}

    # -- accounts -----------------------------------------------------------

    def account(self, spec: AccountSpec) -> Account:
        """The account named by ``spec``: existing, or provisional."""
        existing = self._ctx.registry.get_account_by_name(spec.name)
        if existing is not None:
            return existing
        key = normalize_name(spec.name)
        if key not in self._new_accounts:
            self._new_accounts[key] = self._ctx.registry.build_account(
                spec.name,
                spec.account_type,
                spec.classification,
                spec.final_category,
                reserved_codes={a.code for a in self._new_accounts.values()},
            )
        return self._new_accounts[key]

    def _line(self, account: Account, side: LineSide, amount: Decimal) -> None:
        amount = quantize_amount(amount)
        if amount == ZERO:
            return
        self._lines.append(JournalLine(
            id=self._ctx.ids.new_id(),
            account_id=account.id,
            account_name=account.name,
            code=account.code,
            side=side,
            amount=amount,
        ))

    def debit(self, account: Account, amount: Decimal) -> None:
        self._line(account, LineSide.DEBIT, amount)

    def credit(self, account: Account, amount: Decimal) -> None:
        self._line(account, LineSide.CREDIT, amount)

    # -- inventory ----------------------------------------------------------

    def item(self, name: str, unit: str, last_purchase_rate: Decimal = ZERO) -> InventoryItem:
        """The inventory item named ``name``: existing, or provisional."""
        existing = self._ctx.inventory.find_item_by_name(name)
        if existing is not None:
            return existing
        key = normalize_name(name)
        if key not in self._new_items:
            self._new_items[key] = self._ctx.inventory.build_item(name, unit, last_purchase_rate)
        return self._new_items[key]

    def set_last_purchase_rate(self, item: InventoryItem, rate: Decimal) -> None:
        key = item.name_key
        if key in self._new_items:
            self._new_items[key] = self._new_items[key].with_last_purchase_rate(rate)
        else:
            self._rate_updates[item.id] = rate

    def receive(
        self, item: InventoryItem, quantity: Decimal, rate: Decimal, on: date, ref_doc_id: str | None,
    ) -> StockTransaction:
        txn = self._ctx.inventory.new_transaction(
            movement=StockMovementType.RECEIPT,
            txn_date=on,
            item=item,
            quantity=quantity,
            rate=rate,
            amount=quantity * rate,
            ref_doc_id=ref_doc_id,
        )
        self._stock.append(txn)
        return txn

    def issue(
        self, item: InventoryItem, quantity: Decimal, on: date, ref_doc_id: str | None,
    ) -> StockTransaction:
        """Issue at cost under the configured valuation method."""
        costing = self._ctx.inventory.cost_issue(
            item, quantity, self._ctx.inventory_method, pending=self._stock,
        )
        txn = self._ctx.inventory.new_transaction(
            movement=StockMovementType.ISSUE,
            txn_date=on,
            item=item,
            quantity=quantity,
            rate=costing.rate,
            amount=costing.cost,
            ref_doc_id=ref_doc_id,
        )
        self._stock.append(txn)
        return txn

    # -- output -------------------------------------------------------------

    def build(self, on: date, narration: str, is_depreciation_entry: bool = False) -> PostingPlan:
        entry = JournalEntry(
            id=self._ctx.ids.new_id(),
            date=on,
            narration=narration,
            lines=tuple(self._lines),
            is_depreciation_entry=is_depreciation_entry,
        )
        return PostingPlan(
            entry=entry,
            new_accounts=tuple(self._new_accounts.values()),
            new_items=tuple(self._new_items.values()),
            stock_transactions=tuple(self._stock),
            rate_updates=tuple(self._rate_updates.items()),
        )


# =============================================================================
# Translator protocol
# =============================================================================


class PostingTranslator(ABC, Generic[D]):
    """
    Base translator.

    Subclasses implement ``_validate`` (business-rule checks, returning
    errors instead of raising) and ``_compose`` (lines and movements).
    """

    document_type: str = "document"

    @abstractmethod
    def _validate(self, document: D, ctx: PostingContext) -> list[ValidationError]:
        ...

    @abstractmethod
    def _compose(self, document: D, builder: PlanBuilder, ctx: PostingContext) -> PostingPlan:
        ...

    def propose(self, document: D, ctx: PostingContext) -> TranslationResult:
        """Validate ``document`` and map it to a posting plan."""
        errors = self._validate(document, ctx)
        if errors:
            logger.warning("posting_rejected", extra={
                "document_type": self.document_type,
                "error_codes": [e.code for e in errors],
            })
            return TranslationResult.failure(*errors)
        plan = self._compose(document, PlanBuilder(ctx), ctx)
        logger.debug("posting_plan_built", extra={
            "document_type": self.document_type,
            "line_count": len(plan.entry.lines),
            "new_accounts": [a.name for a in plan.new_accounts],
            "stock_movements": len(plan.stock_transactions),
        })
        return TranslationResult.success(plan)
