"""
Engine configuration schema.

Defines the human-authored configuration the ledger system runs under:
the default chart of accounts, the fixed account naming conventions the
posting translators follow, tolerances, and user-facing settings.  YAML
files are parsed into these types by the loader.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from books_engines.valuation import CostMethod
from books_kernel.domain.fiscal import FinancialYear
from books_kernel.models.account import AccountClassification, AccountType, FinalAccountCategory

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class NegativeFormat(str, Enum):
    """How negative amounts render in reports."""

    MINUS = "MINUS"        # -1,234.00
    BRACKETS = "BRACKETS"  # (1,234.00)


@dataclass(frozen=True)
class EngineSettings:
    """User-adjustable settings, persisted with the books."""

    inventory_method: CostMethod = CostMethod.FIFO
    negative_format: NegativeFormat = NegativeFormat.MINUS
    financial_year: FinancialYear = FinancialYear.INDIAN

    def with_changes(self, **changes: object) -> EngineSettings:
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class Tolerances:
    """Numeric thresholds used by validation and reports."""

    balance: Decimal = Decimal("0.01")          # journal entry debit/credit gap
    trial_balance: Decimal = Decimal("0.01")    # TB totals gap
    balance_sheet: Decimal = Decimal("0.01")    # assets vs liabilities + equity
    display_epsilon: Decimal = Decimal("0.001")  # nil band for Dr/Cr display
    anomaly: Decimal = Decimal("0.01")          # wrong-side balance threshold
    depreciable_balance: Decimal = Decimal("0.1")  # min book value to depreciate


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccountSpec:
    """How to create an account when a posting needs one that is missing."""

    name: str
    account_type: AccountType
    classification: AccountClassification
    final_category: FinalAccountCategory | None = None
    code: str | None = None


@dataclass(frozen=True)
class AccountTemplate:
    """Type and grouping for accounts named at posting time (parties, payees)."""

    account_type: AccountType
    classification: AccountClassification
    final_category: FinalAccountCategory | None = None

    def named(self, name: str) -> AccountSpec:
        return AccountSpec(
            name=name.strip(),
            account_type=self.account_type,
            classification=self.classification,
            final_category=self.final_category,
        )


@dataclass(frozen=True)
class PostingConventions:
    """The fixed accounts every posting translator writes to."""

    cash: AccountSpec
    bank: AccountSpec
    capital: AccountSpec
    drawings: AccountSpec
    stock: AccountSpec
    sales: AccountSpec
    purchase: AccountSpec
    sales_return: AccountSpec
    purchase_return: AccountSpec
    discount_allowed: AccountSpec
    discount_received: AccountSpec
    depreciation: AccountSpec
    debtor: AccountTemplate
    creditor: AccountTemplate
    receipt_source: AccountTemplate
    payment_target: AccountTemplate


ROLE_NAMES: tuple[str, ...] = (
    "cash",
    "bank",
    "capital",
    "drawings",
    "stock",
    "sales",
    "purchase",
    "sales_return",
    "purchase_return",
    "discount_allowed",
    "discount_received",
    "depreciation",
)

TEMPLATE_NAMES: tuple[str, ...] = (
    "debtor",
    "creditor",
    "receipt_source",
    "payment_target",
)


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineConfig:
    """Everything the ledger system needs besides its stores."""

    config_id: str
    version: int
    conventions: PostingConventions
    default_accounts: tuple[AccountSpec, ...]
    settings: EngineSettings = field(default_factory=EngineSettings)
    tolerances: Tolerances = field(default_factory=Tolerances)
