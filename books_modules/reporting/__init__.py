"""
Reporting projections: ledgers, trial balance and final accounts.

Every report is a pure fold over the journal and the stock log; the
service only gathers inputs.
"""

from books_modules.reporting.formatting import format_amount, format_balance
from books_modules.reporting.models import (
    AccountLedger,
    BalanceSheetReport,
    BalanceSide,
    FinalAccounts,
    FiscalAnalysis,
    LedgerPosting,
    ProfitAndLossReport,
    ReportMetadata,
    ReportType,
    StatementLine,
    StatementSection,
    TradingAccountReport,
    TrialBalanceLine,
    TrialBalanceReport,
)
from books_modules.reporting.service import ReportingService
from books_modules.reporting.statements import (
    StatementRoles,
    build_account_ledger,
    build_balance_sheet,
    build_final_accounts,
    build_fiscal_analysis,
    build_ledgers,
    build_profit_and_loss,
    build_trading_account,
    build_trial_balance,
    compute_natural_balance,
    render_to_dict,
)

__all__ = [
    "AccountLedger",
    "BalanceSheetReport",
    "BalanceSide",
    "FinalAccounts",
    "FiscalAnalysis",
    "LedgerPosting",
    "ProfitAndLossReport",
    "ReportMetadata",
    "ReportType",
    "ReportingService",
    "StatementLine",
    "StatementRoles",
    "StatementSection",
    "TradingAccountReport",
    "TrialBalanceLine",
    "TrialBalanceReport",
    "build_account_ledger",
    "build_balance_sheet",
    "build_final_accounts",
    "build_fiscal_analysis",
    "build_ledgers",
    "build_profit_and_loss",
    "build_trading_account",
    "build_trial_balance",
    "compute_natural_balance",
    "format_amount",
    "format_balance",
    "render_to_dict",
]
