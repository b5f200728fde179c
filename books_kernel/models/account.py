"""
Module: books_kernel.models.account
Responsibility: The chart-of-accounts record -- the target of every journal
    line -- and the closed table of classifications each account type may
    carry.
Architecture position: Kernel > Models.  Pure data, zero I/O.

Invariants enforced:
    - type/classification compatibility: ``Account.__post_init__`` rejects a
      classification outside ``VALID_CLASSIFICATIONS[account_type]``.
    - ``code`` is immutable; ``with_changes`` refuses to touch it.

Failure modes:
    - InvalidClassificationError on an incompatible pair.

Audit relevance:
    Reports are recomputed from the journal on every call, so changing an
    account's classification or final category is retroactive: every
    historical statement reflects the new grouping.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum

from books_kernel.exceptions import InvalidClassificationError


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


class NormalBalance(str, Enum):
    """Normal balance side for an account."""

    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class AccountClassification(str, Enum):
    """Finer grouping used by the final accounts."""

    # Assets
    TANGIBLE_ASSET = "TANGIBLE_ASSET"
    INTANGIBLE_ASSET = "INTANGIBLE_ASSET"
    CURRENT_ASSET = "CURRENT_ASSET"
    SUNDRY_DEBTOR = "SUNDRY_DEBTOR"
    INVESTMENT = "INVESTMENT"
    ADVANCES = "ADVANCES"
    # Liabilities
    LOANS = "LOANS"
    SUNDRY_CREDITOR = "SUNDRY_CREDITOR"
    OUTSTANDING_EXP = "OUTSTANDING_EXP"
    SUNDRY_LIABILITY = "SUNDRY_LIABILITY"
    # Equity
    OWNER_CAPITAL = "OWNER_CAPITAL"
    OWNER_DRAWINGS = "OWNER_DRAWINGS"
    # Revenue
    DIRECT_REVENUE = "DIRECT_REVENUE"
    INDIRECT_REVENUE = "INDIRECT_REVENUE"
    # Expense
    DIRECT_EXPENSE = "DIRECT_EXPENSE"
    INDIRECT_EXPENSE = "INDIRECT_EXPENSE"


class FinalAccountCategory(str, Enum):
    """DIRECT items go to the Trading account, INDIRECT to Profit & Loss."""

    DIRECT = "DIRECT"
    INDIRECT = "INDIRECT"


VALID_CLASSIFICATIONS: dict[AccountType, frozenset[AccountClassification]] = {
    AccountType.ASSET: frozenset({
        AccountClassification.TANGIBLE_ASSET,
        AccountClassification.INTANGIBLE_ASSET,
        AccountClassification.CURRENT_ASSET,
        AccountClassification.SUNDRY_DEBTOR,
        AccountClassification.INVESTMENT,
        AccountClassification.ADVANCES,
    }),
    AccountType.LIABILITY: frozenset({
        AccountClassification.LOANS,
        AccountClassification.SUNDRY_CREDITOR,
        AccountClassification.OUTSTANDING_EXP,
        AccountClassification.SUNDRY_LIABILITY,
    }),
    AccountType.EQUITY: frozenset({
        AccountClassification.OWNER_CAPITAL,
        AccountClassification.OWNER_DRAWINGS,
    }),
    AccountType.REVENUE: frozenset({
        AccountClassification.DIRECT_REVENUE,
        AccountClassification.INDIRECT_REVENUE,
    }),
    AccountType.EXPENSE: frozenset({
        AccountClassification.DIRECT_EXPENSE,
        AccountClassification.INDIRECT_EXPENSE,
    }),
}

# Leading digit of synthetic account codes.
CODE_PREFIXES: dict[AccountType, str] = {
    AccountType.ASSET: "1",
    AccountType.LIABILITY: "2",
    AccountType.EQUITY: "2",
    AccountType.REVENUE: "3",
    AccountType.EXPENSE: "4",
}


def is_compatible(account_type: AccountType, classification: AccountClassification) -> bool:
    return classification in VALID_CLASSIFICATIONS[account_type]


def normal_balance_for(account_type: AccountType) -> NormalBalance:
    """ASSET and EXPENSE are debit-normal; everything else credit-normal."""
    if account_type in (AccountType.ASSET, AccountType.EXPENSE):
        return NormalBalance.DEBIT
    return NormalBalance.CREDIT


@dataclass(frozen=True)
class Account:
    """
    Chart of Accounts entry.

    Contract:
        Immutable record; updates produce a new record via ``with_changes``.
        Uniqueness of ``code`` and of the case-insensitive ``name`` is the
        registry's job, not this record's.

    Guarantees:
        - account_type, classification and final_account_category are enum
          members, even when built from their string values.
        - classification is valid for account_type.
    """

    id: str
    code: str
    name: str
    account_type: AccountType
    classification: AccountClassification
    final_account_category: FinalAccountCategory | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "account_type", AccountType(self.account_type))
        object.__setattr__(self, "classification", AccountClassification(self.classification))
        if self.final_account_category is not None:
            object.__setattr__(
                self, "final_account_category", FinalAccountCategory(self.final_account_category),
            )
        if not is_compatible(self.account_type, self.classification):
            raise InvalidClassificationError(
                self.account_type.value, self.classification.value,
            )

    @property
    def normal_balance(self) -> NormalBalance:
        return normal_balance_for(self.account_type)

    @property
    def is_direct(self) -> bool:
        return self.final_account_category == FinalAccountCategory.DIRECT

    @property
    def name_key(self) -> str:
        """Lookup key: trimmed, case-folded name."""
        return normalize_name(self.name)

    def with_changes(self, **changes: object) -> Account:
        """Return a copy with ``changes`` applied; ``id`` and ``code`` are fixed."""
        for fixed in ("id", "code"):
            if fixed in changes:
                raise ValueError(f"Account {fixed} is immutable")
        return dataclasses.replace(self, **changes)


def normalize_name(name: str) -> str:
    return name.strip().casefold()
