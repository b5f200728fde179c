"""
Cash book translator.

Maps one line of the two-column cash book to a journal entry:

    Receipt          Dr Cash / Dr Bank / Dr Discount Allowed   Cr source account
    Payment          Dr target account    Cr Cash / Cr Bank / Cr Discount Received
    Contra CASH_TO_BANK   Dr Bank   Cr Cash   (bank column amount)
    Contra BANK_TO_CASH   Dr Cash   Cr Bank   (cash column amount)
    Opening balance  Dr Cash / Dr Bank         Cr Capital

A receipt or payment names its other side by ``account_id`` (must exist)
or by ``account_name`` (auto-created as an indirect income or expense when
missing).  The cash discount rides on its own Discount Allowed / Received
line so it lands in Profit & Loss.
"""

from __future__ import annotations

from decimal import Decimal

from books_kernel.domain.results import (
    EMPTY_DOCUMENT,
    INVALID_AMOUNT,
    MISSING_PARTY,
    ValidationError,
)
from books_kernel.domain.values import ZERO, decimal_sum
from books_kernel.models.account import Account
from books_kernel.models.documents import CashBookEntry, CashBookEntryType, ContraDirection
from books_modules.posting.base import PlanBuilder, PostingContext, PostingPlan, PostingTranslator


def contra_amount(entry: CashBookEntry) -> Decimal:
    """The amount a contra line moves: the column being debited."""
    if entry.contra == ContraDirection.CASH_TO_BANK:
        return entry.bank_amount
    return entry.cash_amount


class CashBookTranslator(PostingTranslator[CashBookEntry]):
    """Cash-book lines to journal entries."""

    document_type = "cash_book"

    def _validate(self, document, ctx):
        errors: list[ValidationError] = []
        for name in ("cash_amount", "bank_amount", "discount_amount"):
            if getattr(document, name) < ZERO:
                errors.append(ValidationError(
                    code=INVALID_AMOUNT,
                    message=f"{name} cannot be negative",
                    field=name,
                ))
        if errors:
            return errors

        if document.is_contra:
            if contra_amount(document) <= ZERO:
                errors.append(ValidationError(
                    code=EMPTY_DOCUMENT,
                    message="Contra entry needs a positive transfer amount",
                    field="bank_amount" if document.contra == ContraDirection.CASH_TO_BANK else "cash_amount",
                ))
        elif document.is_opening_balance:
            if document.cash_amount + document.bank_amount <= ZERO:
                errors.append(ValidationError(
                    code=EMPTY_DOCUMENT,
                    message="Opening balance needs a cash or bank amount",
                ))
        else:
            if document.total <= ZERO:
                errors.append(ValidationError(
                    code=EMPTY_DOCUMENT,
                    message="Cash book entry has no amount",
                ))
            if not document.account_id and not document.account_name.strip():
                errors.append(ValidationError(
                    code=MISSING_PARTY,
                    message="Receipt or payment needs an account",
                    field="account_name",
                ))
        return errors

    def _compose(self, document, builder, ctx):
        conventions = ctx.conventions
        if document.is_contra:
            return self._contra(document, builder, ctx)
        if document.is_opening_balance:
            builder.debit(builder.account(conventions.cash), document.cash_amount)
            builder.debit(builder.account(conventions.bank), document.bank_amount)
            builder.credit(
                builder.account(conventions.capital),
                document.cash_amount + document.bank_amount,
            )
            return builder.build(document.date, document.particulars or "Being opening balance brought in")

        other = self.counter_account(document, builder, ctx)
        cash = builder.account(conventions.cash) if document.cash_amount else None
        bank = builder.account(conventions.bank) if document.bank_amount else None
        total = decimal_sum((document.cash_amount, document.bank_amount, document.discount_amount))

        if document.type == CashBookEntryType.RECEIPT:
            if cash is not None:
                builder.debit(cash, document.cash_amount)
            if bank is not None:
                builder.debit(bank, document.bank_amount)
            if document.discount_amount:
                builder.debit(builder.account(conventions.discount_allowed), document.discount_amount)
            builder.credit(other, total)
        else:
            builder.debit(other, total)
            if cash is not None:
                builder.credit(cash, document.cash_amount)
            if bank is not None:
                builder.credit(bank, document.bank_amount)
            if document.discount_amount:
                builder.credit(builder.account(conventions.discount_received), document.discount_amount)
        return builder.build(document.date, document.particulars)

    def _contra(
        self, document: CashBookEntry, builder: PlanBuilder, ctx: PostingContext,
    ) -> PostingPlan:
        cash = builder.account(ctx.conventions.cash)
        bank = builder.account(ctx.conventions.bank)
        amount = contra_amount(document)
        if document.contra == ContraDirection.CASH_TO_BANK:
            builder.debit(bank, amount)
            builder.credit(cash, amount)
            default = "Being cash deposited into bank"
        else:
            builder.debit(cash, amount)
            builder.credit(bank, amount)
            default = "Being cash withdrawn from bank"
        return builder.build(document.date, document.particulars or default)

    @staticmethod
    def counter_account(
        document: CashBookEntry, builder: PlanBuilder, ctx: PostingContext,
    ) -> Account:
        """The other side of a receipt or payment."""
        if document.account_id:
            return ctx.registry.require_account(document.account_id)
        template = (
            ctx.conventions.receipt_source
            if document.type == CashBookEntryType.RECEIPT
            else ctx.conventions.payment_target
        )
        return builder.account(template.named(document.account_name))
