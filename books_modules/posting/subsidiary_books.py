"""
Subsidiary book translator.

Maps an invoice or return note to one journal entry plus one stock
movement per item line:

    Book              Debit                               Credit
    ----------------  ----------------------------------  ----------------------------------
    PURCHASE          Purchase A/c (after trade disc.)    Party (total), Discount Received
    SALES             Party (total), Discount Allowed     Sales A/c (after trade disc.)
    PURCHASE_RETURN   Party (total)                       Purchase Return A/c (total)
    SALES_RETURN      Sales Return A/c (total)            Party (total)

Trade discount reduces the Sales/Purchase figure and so lands in the
Trading account; cash discount is always its own line and lands in Profit
& Loss.  Parties on sales-side books are sundry debtors, on purchase-side
books sundry creditors.

Stock: PURCHASE and SALES_RETURN receive at the invoice rate; SALES and
PURCHASE_RETURN issue at cost under the configured valuation method, after
checking the quantity is on hand at the document date.  Each PURCHASE line replaces the item's
last purchase rate.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from books_kernel.domain.results import (
    EMPTY_DOCUMENT,
    INSUFFICIENT_STOCK,
    INVALID_AMOUNT,
    MISSING_PARTY,
    UNSUPPORTED_BOOK,
    ValidationError,
)
from books_kernel.domain.values import ZERO
from books_kernel.models.account import normalize_name
from books_kernel.models.documents import InvoiceItem, SubsidiaryBookType, SubsidiaryEntry
from books_modules.posting.base import PostingContext, PostingTranslator

RECEIVING_BOOKS = frozenset({SubsidiaryBookType.PURCHASE, SubsidiaryBookType.SALES_RETURN})
ISSUING_BOOKS = frozenset({SubsidiaryBookType.SALES, SubsidiaryBookType.PURCHASE_RETURN})


def stock_lines(entry: SubsidiaryEntry) -> list[InvoiceItem]:
    """Invoice lines that move stock: named, with a positive quantity."""
    return [item for item in entry.items if item.description.strip() and item.quantity > 0]


def check_stock_available(entry: SubsidiaryEntry, ctx: PostingContext) -> list[ValidationError]:
    """
    Refuse issues beyond the quantity on hand at the document date.

    Quantities are summed per item across the document's lines and placed
    after every movement dated on or before the document; the running
    balance must stay non-negative from there on.  Items the books do not
    know yet have nothing on hand.
    """
    requested: dict[str, Decimal] = defaultdict(lambda: ZERO)
    names: dict[str, str] = {}
    for line in stock_lines(entry):
        key = normalize_name(line.description)
        requested[key] += line.quantity
        names.setdefault(key, line.description.strip())

    errors: list[ValidationError] = []
    for key, quantity in requested.items():
        item = ctx.inventory.find_item_by_name(names[key])
        available = ctx.inventory.available_on(item.id, entry.date) if item else ZERO
        if quantity > available:
            errors.append(ValidationError(
                code=INSUFFICIENT_STOCK,
                message=(
                    f"Insufficient stock for {names[key]} on {entry.date.isoformat()}: "
                    f"available {available}, requested {quantity}"
                ),
                field="items",
                details={
                    "item": names[key],
                    "available": str(available),
                    "requested": str(quantity),
                },
            ))
    return errors


class SubsidiaryBookTranslator(PostingTranslator[SubsidiaryEntry]):
    """Sales, purchase and return books to journal entries."""

    document_type = "subsidiary_book"

    def _validate(self, document, ctx):
        if document.book_type == SubsidiaryBookType.CASH:
            return [ValidationError(
                code=UNSUPPORTED_BOOK,
                message="Cash transactions are posted through the cash book",
                field="book_type",
            )]
        errors: list[ValidationError] = []
        if not document.party_name.strip():
            errors.append(ValidationError(
                code=MISSING_PARTY,
                message="Invoice needs a party name",
                field="party_name",
            ))
        for index, item in enumerate(document.items):
            if item.quantity < 0 or item.rate < 0:
                errors.append(ValidationError(
                    code=INVALID_AMOUNT,
                    message="Quantity and rate cannot be negative",
                    field=f"items[{index}]",
                ))
        if document.cash_discount_amount < 0 or document.trade_discount_percent < 0:
            errors.append(ValidationError(
                code=INVALID_AMOUNT,
                message="Discounts cannot be negative",
                field="cash_discount_amount",
            ))
        if not document.items or document.sub_total <= ZERO:
            errors.append(ValidationError(
                code=EMPTY_DOCUMENT,
                message="Invoice has no value",
                field="items",
            ))
        if errors:
            return errors
        if document.book_type in ISSUING_BOOKS:
            return check_stock_available(document, ctx)
        return []

    def _compose(self, document, builder, ctx):
        conventions = ctx.conventions
        book = document.book_type
        template = conventions.debtor if book.is_sales_side else conventions.creditor
        party = builder.account(template.named(document.party_name))
        total = document.total_amount

        if book == SubsidiaryBookType.PURCHASE:
            builder.debit(builder.account(conventions.purchase), document.gross_after_trade_discount)
            builder.credit(party, total)
            if document.cash_discount_amount:
                builder.credit(
                    builder.account(conventions.discount_received), document.cash_discount_amount,
                )
        elif book == SubsidiaryBookType.SALES:
            builder.debit(party, total)
            if document.cash_discount_amount:
                builder.debit(
                    builder.account(conventions.discount_allowed), document.cash_discount_amount,
                )
            builder.credit(builder.account(conventions.sales), document.gross_after_trade_discount)
        elif book == SubsidiaryBookType.SALES_RETURN:
            builder.debit(builder.account(conventions.sales_return), total)
            builder.credit(party, total)
        else:
            builder.debit(party, total)
            builder.credit(builder.account(conventions.purchase_return), total)

        for line in stock_lines(document):
            initial_rate = line.rate if book == SubsidiaryBookType.PURCHASE else ZERO
            item = builder.item(line.description, line.unit, initial_rate)
            if book in RECEIVING_BOOKS:
                builder.receive(item, line.quantity, line.rate, document.date, document.invoice_number)
            else:
                builder.issue(item, line.quantity, document.date, document.invoice_number)
            if book == SubsidiaryBookType.PURCHASE:
                builder.set_last_purchase_rate(item, line.rate)

        return builder.build(document.date, f"Being {book.label} posted from book")
