"""
Financial Reporting Domain Models (``books_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects for every projection of the books: account
ledgers, trial balance, trading account, profit & loss account, balance
sheet and the consolidated fiscal analysis.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built by the pure
functions in ``statements.py`` and returned by ``ReportingService``.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* Reports carry no wall-clock timestamp, so recomputing one without an
  intervening posting yields an identical value.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


# =========================================================================
# Enums
# =========================================================================


class ReportType(str, Enum):
    """Types of projections."""

    LEDGER = "ledger"
    TRIAL_BALANCE = "trial_balance"
    TRADING_ACCOUNT = "trading_account"
    PROFIT_AND_LOSS = "profit_and_loss"
    BALANCE_SHEET = "balance_sheet"
    FISCAL_ANALYSIS = "fiscal_analysis"


class BalanceSide(str, Enum):
    DEBIT = "Dr"
    CREDIT = "Cr"
    NIL = "Nil"


# =========================================================================
# Report Metadata
# =========================================================================


@dataclass(frozen=True)
class ReportMetadata:
    """Identifies the state a report was computed from."""

    report_type: ReportType
    entity_name: str
    journal_version: int
    entry_count: int


# =========================================================================
# Ledger
# =========================================================================


@dataclass(frozen=True)
class LedgerPosting:
    """One journal line as it reads in the account's ledger."""

    entry_id: str
    transaction_id: str
    date: date
    particulars: str
    narration: str
    debit: Decimal
    credit: Decimal
    running_balance: Decimal  # net debit after this posting


@dataclass(frozen=True)
class AccountLedger:
    """All postings to one account, date ascending."""

    account_id: str
    account_code: str
    account_name: str
    account_type: str
    postings: tuple[LedgerPosting, ...]
    total_debit: Decimal
    total_credit: Decimal
    balance: Decimal  # net debit
    balance_side: BalanceSide


# =========================================================================
# Trial Balance
# =========================================================================


@dataclass(frozen=True)
class TrialBalanceLine:
    """A single account on the trial balance."""

    account_id: str
    account_code: str
    account_name: str
    account_type: str
    classification: str
    debit: Decimal
    credit: Decimal
    is_anomaly: bool = False


@dataclass(frozen=True)
class TrialBalanceReport:
    metadata: ReportMetadata
    lines: tuple[TrialBalanceLine, ...]
    total_debits: Decimal
    total_credits: Decimal
    difference: Decimal
    is_balanced: bool

    @property
    def anomalies(self) -> tuple[TrialBalanceLine, ...]:
        return tuple(line for line in self.lines if line.is_anomaly)


# =========================================================================
# Final accounts
# =========================================================================


@dataclass(frozen=True)
class StatementLine:
    """A named amount on a statement (an account or a computed figure)."""

    label: str
    amount: Decimal
    account_id: str | None = None


@dataclass(frozen=True)
class StatementSection:
    """A group of statement lines with its total."""

    label: str
    lines: tuple[StatementLine, ...]
    total: Decimal


@dataclass(frozen=True)
class TradingAccountReport:
    """
    Trading account.

    Debit side: opening stock, net purchases, other direct expenses.
    Credit side: net sales, other direct incomes, closing stock.
    Gross profit balances the debit side, gross loss the credit side.
    """

    metadata: ReportMetadata
    opening_stock: Decimal
    purchases: Decimal
    purchase_returns: Decimal
    net_purchases: Decimal
    direct_expenses: StatementSection
    sales: Decimal
    sales_returns: Decimal
    net_sales: Decimal
    direct_incomes: StatementSection
    closing_stock: Decimal
    debit_total: Decimal
    credit_total: Decimal
    gross_profit: Decimal
    gross_loss: Decimal
    total: Decimal  # both sides, after the balancing figure


@dataclass(frozen=True)
class ProfitAndLossReport:
    metadata: ReportMetadata
    gross_profit: Decimal
    gross_loss: Decimal
    indirect_expenses: StatementSection
    indirect_incomes: StatementSection
    debit_total: Decimal
    credit_total: Decimal
    net_profit: Decimal
    net_loss: Decimal
    total: Decimal


@dataclass(frozen=True)
class BalanceSheetReport:
    """
    Horizontal balance sheet.

    Liabilities side: adjusted capital, other liabilities, creditors, bank
    overdraft, cash shortfall.  Assets side: cash, bank, fixed assets,
    debtors, other assets, closing stock.
    """

    metadata: ReportMetadata
    # Capital
    capital: Decimal
    net_profit: Decimal
    net_loss: Decimal
    drawings: Decimal
    net_capital: Decimal
    # Liabilities
    other_liabilities: StatementSection
    creditors: StatementSection
    bank_overdraft: Decimal
    cash_shortfall: Decimal
    total_liabilities_and_equity: Decimal
    # Assets
    cash: Decimal
    bank: Decimal
    fixed_assets: StatementSection
    debtors: StatementSection
    other_assets: StatementSection
    closing_stock: Decimal
    total_assets: Decimal
    # Check
    difference: Decimal
    is_balanced: bool


@dataclass(frozen=True)
class FinalAccounts:
    trading: TradingAccountReport
    profit_and_loss: ProfitAndLossReport
    balance_sheet: BalanceSheetReport


@dataclass(frozen=True)
class FiscalAnalysis:
    """Consolidated figures from an independent pass by account type."""

    opening_stock: Decimal
    closing_stock: Decimal
    gross_profit: Decimal
    gross_loss: Decimal
    net_profit: Decimal
    net_loss: Decimal
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    cash_balance: Decimal
    bank_balance: Decimal
    is_balanced: bool
