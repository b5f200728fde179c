"""
JournalStore -- append-only journal and the balance fold over it.

Responsibility:
    Validates and appends journal entries, and answers every balance
    question by folding over the full history.  There is no stored balance
    anywhere; ``get_account_balance`` is a pure function of the entries.

Architecture position:
    Kernel > Services -- in-memory store, no I/O.  Reads the
    AccountRegistry to check line references.

Invariants enforced:
    - Every stored entry balances: |sum(debits) - sum(credits)| <= 0.01.
    - Every stored entry has at least one line, all amounts >= 0.
    - Every line references an account known to the registry (or one the
      caller is registering in the same commit).
    - Entries are never edited or removed, only appended (most recent
      first).  ``clear``/``replace_all`` exist for reset and import only.

Failure modes:
    - Rejections come back as ``PostingResult.failure``; nothing raises for
      a business-rule violation and nothing is stored.

Audit relevance:
    Balances are memoized per store version.  Any append bumps the version,
    so a memoized answer is always identical to an uncached fold.
"""

from __future__ import annotations

import dataclasses
import threading
from decimal import Decimal
from typing import Iterable, Iterator

from books_kernel.domain.identity import IdFactory, UuidIdFactory
from books_kernel.domain.results import (
    EMPTY_ENTRY,
    NEGATIVE_AMOUNT,
    UNBALANCED_ENTRY,
    UNKNOWN_ACCOUNT,
    PostingResult,
    ValidationError,
    ValidationResult,
)
from books_kernel.domain.values import BALANCE_TOLERANCE, ZERO
from books_kernel.logging_config import get_logger
from books_kernel.models.journal import JournalEntry, JournalLine
from books_kernel.services.account_registry import AccountRegistry

logger = get_logger("services.journal_store")


class JournalStore:
    """
    The journal.

    Contract:
        ``entries`` is most-recent-first (the order entries were added,
        reversed).  ``chronological()`` is date ascending, stable for
        entries sharing a date.
    """

    def __init__(
        self,
        registry: AccountRegistry,
        id_factory: IdFactory | None = None,
        tolerance: Decimal = BALANCE_TOLERANCE,
    ):
        self._registry = registry
        self._ids = id_factory or UuidIdFactory()
        self._tolerance = tolerance
        self._entries: list[JournalEntry] = []
        self._version = 0
        self._balance_cache: dict[str, Decimal] | None = None
        self._cache_version = -1
        self._lock = threading.RLock()

    # =========================================================================
    # Validation and append
    # =========================================================================

    def validate(
        self,
        entry: JournalEntry,
        pending_account_ids: Iterable[str] = (),
    ) -> ValidationResult:
        """Check an entry without storing it."""
        errors: list[ValidationError] = []
        if not entry.lines:
            errors.append(ValidationError(
                code=EMPTY_ENTRY,
                message="Journal entry has no lines",
            ))
        for index, line in enumerate(entry.lines):
            if line.amount < ZERO:
                errors.append(ValidationError(
                    code=NEGATIVE_AMOUNT,
                    message=f"Line amount must not be negative: {line.amount}",
                    field=f"lines[{index}].amount",
                ))
        pending = set(pending_account_ids)
        for index, line in enumerate(entry.lines):
            if line.account_id not in self._registry and line.account_id not in pending:
                errors.append(ValidationError(
                    code=UNKNOWN_ACCOUNT,
                    message=f"Line references unknown account {line.account_id}",
                    field=f"lines[{index}].account_id",
                    details={"account_id": line.account_id},
                ))
        debits, credits = entry.total_debits, entry.total_credits
        if not entry.is_balanced(self._tolerance):
            errors.append(ValidationError(
                code=UNBALANCED_ENTRY,
                message=f"Debits {debits} do not equal credits {credits}",
                details={"debits": str(debits), "credits": str(credits)},
            ))
        if errors:
            return ValidationResult.failure(*errors)
        return ValidationResult.success()

    def add_entry(self, entry: JournalEntry) -> PostingResult:
        """Validate and append ``entry``; returns the stored entry or the errors."""
        with self._lock:
            validation = self.validate(entry)
            if not validation:
                logger.warning("journal_entry_rejected", extra={
                    "entry_id": entry.id,
                    "error_codes": [e.code for e in validation.errors],
                    "total_debits": entry.total_debits,
                    "total_credits": entry.total_credits,
                })
                return PostingResult.failure(*validation.errors)
            stored = self.append_validated(entry)
        return PostingResult.success(stored)

    def append_validated(self, entry: JournalEntry) -> JournalEntry:
        """
        Append an entry the caller has already validated.

        Used by the ledger system's atomic commit after the full posting
        plan has passed ``validate``.
        """
        with self._lock:
            if not entry.transaction_id:
                entry = dataclasses.replace(entry, transaction_id=self._ids.transaction_id())
            self._entries.insert(0, entry)
            self._version += 1
        logger.info("journal_entry_posted", extra={
            "entry_id": entry.id,
            "transaction_id": entry.transaction_id,
            "entry_date": entry.date,
            "line_count": len(entry.lines),
            "total_debits": entry.total_debits,
            "is_depreciation_entry": entry.is_depreciation_entry,
        })
        return entry

    def clear(self) -> None:
        with self._lock:
            self._entries = []
            self._version += 1

    def replace_all(self, entries_most_recent_first: Iterable[JournalEntry]) -> None:
        """Swap the whole journal (import). Entries must already be validated."""
        with self._lock:
            self._entries = list(entries_most_recent_first)
            self._version += 1

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def version(self) -> int:
        return self._version

    @property
    def entries(self) -> tuple[JournalEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[JournalEntry]:
        return iter(self.entries)

    def chronological(self) -> list[JournalEntry]:
        """Date ascending; entries sharing a date keep the order they were added."""
        return sorted(reversed(self._entries), key=lambda e: e.date)

    def get_entry(self, entry_id: str) -> JournalEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def lines_for(self, account_id: str) -> list[tuple[JournalEntry, JournalLine]]:
        """Every (entry, line) touching ``account_id``, chronological."""
        return [
            (entry, line)
            for entry in self.chronological()
            for line in entry.lines
            if line.account_id == account_id
        ]

    def reference_count(self, account_id: str) -> int:
        return sum(
            1 for entry in self._entries for line in entry.lines
            if line.account_id == account_id
        )

    def is_referenced(self, account_id: str) -> bool:
        return any(
            line.account_id == account_id
            for entry in self._entries
            for line in entry.lines
        )

    def balances(self) -> dict[str, Decimal]:
        """Net debit balance of every account that has lines (memoized)."""
        with self._lock:
            if self._balance_cache is None or self._cache_version != self._version:
                folded: dict[str, Decimal] = {}
                for entry in self._entries:
                    for line in entry.lines:
                        folded[line.account_id] = (
                            folded.get(line.account_id, ZERO) + line.signed_amount
                        )
                self._balance_cache = folded
                self._cache_version = self._version
            return dict(self._balance_cache)

    def get_account_balance(self, account_id: str) -> Decimal:
        """DEBIT adds, CREDIT subtracts; positive means a net debit balance."""
        return self.balances().get(account_id, ZERO)
