"""
Module: books_kernel.models.documents
Responsibility: Source documents that the posting translators turn into
    journal entries -- subsidiary-book invoices, cash-book lines -- plus the
    free-form working notes kept alongside the books.
Architecture position: Kernel > Models.  Pure data, zero I/O.

Invariants enforced:
    - ``SubsidiaryEntry.compose`` is the one place invoice totals are
      derived: sub_total = sum of item amounts, discount = sub_total x
      trade% / 100, total = sub_total - discount - cash discount.
    - Contra cash-book lines carry an explicit ``ContraDirection``; nothing
      infers direction from free-text particulars.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable

from books_kernel.domain.values import ZERO, decimal_sum, percent_of, quantize_amount, to_decimal


class SubsidiaryBookType(str, Enum):
    """Books of original entry."""

    SALES = "SALES"
    PURCHASE = "PURCHASE"
    SALES_RETURN = "SALES_RETURN"
    PURCHASE_RETURN = "PURCHASE_RETURN"
    CASH = "CASH"

    @property
    def is_sales_side(self) -> bool:
        """Sales and sales returns deal with debtors; the rest with creditors."""
        return self in (SubsidiaryBookType.SALES, SubsidiaryBookType.SALES_RETURN)

    @property
    def label(self) -> str:
        return self.value.lower().replace("_", " ")


class CashBookEntryType(str, Enum):
    RECEIPT = "RECEIPT"
    PAYMENT = "PAYMENT"


class ContraDirection(str, Enum):
    """Transfers between the cash and bank columns."""

    CASH_TO_BANK = "CASH_TO_BANK"   # cash deposited into bank
    BANK_TO_CASH = "BANK_TO_CASH"   # cash withdrawn from bank


@dataclass(frozen=True)
class InvoiceItem:
    """One line on an invoice."""

    id: str
    description: str
    quantity: Decimal
    rate: Decimal
    unit: str = "Pcs"
    amount: Decimal | None = None

    def __post_init__(self) -> None:
        quantity = to_decimal(self.quantity)
        rate = to_decimal(self.rate)
        object.__setattr__(self, "quantity", quantity)
        object.__setattr__(self, "rate", rate)
        amount = quantity * rate if self.amount is None else self.amount
        object.__setattr__(self, "amount", quantize_amount(amount))


@dataclass(frozen=True)
class SubsidiaryEntry:
    """An invoice or return note recorded in a subsidiary book."""

    id: str
    invoice_number: str
    date: date
    book_type: SubsidiaryBookType
    party_name: str
    items: tuple[InvoiceItem, ...]
    trade_discount_percent: Decimal = ZERO
    cash_discount_amount: Decimal = ZERO
    sub_total: Decimal = ZERO
    discount_amount: Decimal = ZERO
    total_amount: Decimal = ZERO
    reference_id: str | None = None
    transaction_id: str = ""
    posted: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "trade_discount_percent", to_decimal(self.trade_discount_percent))
        for name in ("cash_discount_amount", "sub_total", "discount_amount", "total_amount"):
            object.__setattr__(self, name, quantize_amount(getattr(self, name)))

    @classmethod
    def compose(
        cls,
        *,
        id: str,
        invoice_number: str,
        date: date,
        book_type: SubsidiaryBookType,
        party_name: str,
        items: Iterable[InvoiceItem],
        trade_discount_percent: Decimal | int | str = 0,
        cash_discount_amount: Decimal | int | str = 0,
        reference_id: str | None = None,
    ) -> SubsidiaryEntry:
        """Build an entry with its totals derived from the items."""
        items = tuple(items)
        trade_pct = to_decimal(trade_discount_percent)
        cash_discount = quantize_amount(cash_discount_amount)
        sub_total = decimal_sum(item.amount for item in items)
        discount = quantize_amount(percent_of(sub_total, trade_pct))
        return cls(
            id=id,
            invoice_number=invoice_number,
            date=date,
            book_type=book_type,
            party_name=party_name,
            items=items,
            trade_discount_percent=trade_pct,
            cash_discount_amount=cash_discount,
            sub_total=sub_total,
            discount_amount=discount,
            total_amount=sub_total - discount - cash_discount,
            reference_id=reference_id,
        )

    @property
    def gross_after_trade_discount(self) -> Decimal:
        return self.sub_total - self.discount_amount

    def mark_posted(self, transaction_id: str) -> SubsidiaryEntry:
        return dataclasses.replace(self, posted=True, transaction_id=transaction_id)


@dataclass(frozen=True)
class CashBookEntry:
    """
    One line of the two-column (cash and bank) cash book.

    ``account_id``/``account_name`` name the other side of the transaction;
    they are ignored for contra and opening-balance lines.
    """

    id: str
    date: date
    type: CashBookEntryType
    particulars: str
    cash_amount: Decimal = ZERO
    bank_amount: Decimal = ZERO
    discount_amount: Decimal = ZERO
    account_id: str = ""
    account_name: str = ""
    contra: ContraDirection | None = None
    is_opening_balance: bool = False
    posted: bool = False

    def __post_init__(self) -> None:
        for name in ("cash_amount", "bank_amount", "discount_amount"):
            object.__setattr__(self, name, quantize_amount(getattr(self, name)))

    @property
    def is_contra(self) -> bool:
        return self.contra is not None

    @property
    def total(self) -> Decimal:
        return self.cash_amount + self.bank_amount + self.discount_amount

    def mark_posted(self, account_id: str, account_name: str) -> CashBookEntry:
        return dataclasses.replace(
            self, posted=True, account_id=account_id, account_name=account_name,
        )


@dataclass(frozen=True)
class SavedNote:
    """A free-form working note kept with the books."""

    id: str
    title: str
    content: str
    date: datetime
