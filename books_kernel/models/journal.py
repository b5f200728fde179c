"""
Module: books_kernel.models.journal
Responsibility: Journal entries and lines -- the immutable record of every
    economic event and the only source the reports fold over.
Architecture position: Kernel > Models.  Pure data, zero I/O.

Invariants enforced:
    - Line amounts are non-negative Decimals quantized to two places.
    - Entries are frozen; there is no edit, void or reversal state.
    (Balance is checked by JournalStore.add_entry, which rejects rather
    than raises.)

Audit relevance:
    ``account_name`` and ``code`` are denormalized onto each line at posting
    time so the entry reads as it did when it was posted, even if the
    account is later renamed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from books_kernel.domain.values import BALANCE_TOLERANCE, decimal_sum, is_balanced, quantize_amount


class LineSide(str, Enum):
    """Debit or credit side of a journal line."""

    DEBIT = "DEBIT"
    CREDIT = "CREDIT"

    def opposite(self) -> LineSide:
        return LineSide.CREDIT if self == LineSide.DEBIT else LineSide.DEBIT


@dataclass(frozen=True)
class JournalLine:
    """One debit or credit against one account."""

    id: str
    account_id: str
    account_name: str
    code: str
    side: LineSide
    amount: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", quantize_amount(self.amount))

    @property
    def is_debit(self) -> bool:
        return self.side == LineSide.DEBIT

    @property
    def signed_amount(self) -> Decimal:
        """Positive for debits, negative for credits."""
        return self.amount if self.is_debit else -self.amount


@dataclass(frozen=True)
class JournalEntry:
    """
    A posted (or proposed) journal entry.

    Contract:
        Carries its lines in the order they were written.  ``transaction_id``
        may be empty on a proposed entry; the journal store assigns one.
    """

    id: str
    date: date
    narration: str
    lines: tuple[JournalLine, ...]
    transaction_id: str = ""
    is_depreciation_entry: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))

    @property
    def total_debits(self) -> Decimal:
        return decimal_sum(line.amount for line in self.lines if line.is_debit)

    @property
    def total_credits(self) -> Decimal:
        return decimal_sum(line.amount for line in self.lines if not line.is_debit)

    def is_balanced(self, tolerance: Decimal = BALANCE_TOLERANCE) -> bool:
        return is_balanced(self.total_debits, self.total_credits, tolerance)

    def account_ids(self) -> frozenset[str]:
        return frozenset(line.account_id for line in self.lines)

    def lines_for(self, account_id: str) -> tuple[JournalLine, ...]:
        return tuple(line for line in self.lines if line.account_id == account_id)

    def lines_on_side(self, side: LineSide) -> tuple[JournalLine, ...]:
        return tuple(line for line in self.lines if line.side == side)
