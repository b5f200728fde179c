"""
Depreciation translator and the eligible-asset fold.

A charge posts Dr Depreciation A/c, Cr the asset account, flagged
``is_depreciation_entry`` so accumulated depreciation can be recovered from
the journal later: cost = current balance + credits from depreciation
entries.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from books_engines.depreciation import AssetPosition
from books_kernel.domain.results import INVALID_AMOUNT, ValidationError
from books_kernel.domain.values import ZERO, decimal_sum
from books_kernel.models.account import Account, AccountClassification
from books_kernel.models.journal import JournalEntry, LineSide
from books_modules.posting.base import PostingTranslator


@dataclass(frozen=True)
class DepreciationCharge:
    """One period's depreciation on one asset."""

    asset_account_id: str
    amount: Decimal
    date: date
    narration: str | None = None


class DepreciationTranslator(PostingTranslator[DepreciationCharge]):
    """Depreciation charges to journal entries."""

    document_type = "depreciation"

    def _validate(self, document, ctx):
        # AccountNotFoundError for an unknown asset
        ctx.registry.require_account(document.asset_account_id)
        if document.amount <= ZERO:
            return [ValidationError(
                code=INVALID_AMOUNT,
                message="Depreciation amount must be positive",
                field="amount",
            )]
        return []

    def _compose(self, document, builder, ctx):
        asset = ctx.registry.require_account(document.asset_account_id)
        builder.debit(builder.account(ctx.conventions.depreciation), document.amount)
        builder.credit(asset, document.amount)
        narration = document.narration or f"Being depreciation charged on {asset.name}"
        return builder.build(document.date, narration, is_depreciation_entry=True)


def accumulated_depreciation(account_id: str, entries: Iterable[JournalEntry]) -> Decimal:
    """Credits to ``account_id`` from depreciation entries."""
    return decimal_sum(
        line.amount
        for entry in entries if entry.is_depreciation_entry
        for line in entry.lines
        if line.account_id == account_id and line.side == LineSide.CREDIT
    )


def eligible_depreciation_assets(
    accounts: Iterable[Account],
    entries: Iterable[JournalEntry],
    balances: dict[str, Decimal],
    min_balance: Decimal,
) -> list[AssetPosition]:
    """Tangible assets whose book value exceeds ``min_balance``."""
    entries = list(entries)
    positions: list[AssetPosition] = []
    for account in accounts:
        if account.classification != AccountClassification.TANGIBLE_ASSET:
            continue
        balance = balances.get(account.id, ZERO)
        if balance <= min_balance:
            continue
        positions.append(AssetPosition(
            account_id=account.id,
            account_name=account.name,
            current_balance=balance,
            accumulated_depreciation=accumulated_depreciation(account.id, entries),
        ))
    return positions
