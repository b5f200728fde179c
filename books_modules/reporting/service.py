"""
Reporting Module Service (``books_modules.reporting.service``).

Responsibility
--------------
Orchestrates report generation -- account ledgers, trial balance, trading
account, profit & loss, balance sheet, fiscal analysis and the stock views
-- by bridging the in-memory stores (``AccountRegistry``, ``JournalStore``,
``InventoryLedger``) to the pure transformation functions in
``statements.py``.  This is a **read-only** service: nothing is posted.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``LedgerSystem`` owns one instance and
delegates every report call to it.  Constructor: the three stores, the
posting conventions (to find the special accounts) and the tolerances.

Invariants enforced
-------------------
* Read-only -- no mutations to any store.
* All monetary amounts use ``Decimal`` -- NEVER ``float``.
* Every report is a fold over full history; metadata carries the journal
  version it was computed at, so equal versions mean equal reports.

Failure modes
-------------
* An unknown account id passed to ``account_ledger``  ->
  ``AccountNotFoundError``.
* Missing convention accounts  -> their figures are zero.

Audit relevance
---------------
Structured log events for every report generation.  An unbalanced trial
balance or balance sheet is logged at WARNING and reported on the DTO,
never corrected.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from books_config.schema import PostingConventions, Tolerances
from books_engines.valuation import CostLayer, CostMethod
from books_kernel.logging_config import get_logger
from books_kernel.services.account_registry import AccountRegistry
from books_kernel.services.journal_store import JournalStore
from books_modules.reporting.models import (
    AccountLedger,
    BalanceSheetReport,
    FinalAccounts,
    FiscalAnalysis,
    ProfitAndLossReport,
    ReportMetadata,
    ReportType,
    TradingAccountReport,
    TrialBalanceReport,
)
from books_modules.reporting.statements import (
    StatementRoles,
    build_account_ledger,
    build_final_accounts,
    build_fiscal_analysis,
    build_ledgers,
    build_trial_balance,
)

if TYPE_CHECKING:
    from books_services.valuation_service import InventoryLedger, StockRegisterLine

logger = get_logger("modules.reporting.service")


class ReportingService:
    """
    Report generation service.

    Contract
    --------
    * Every public method returns a typed report DTO.
    * All methods are **read-only**.

    Guarantees
    ----------
    * Report generation delegates to pure transformation functions in
      ``statements.py``; no accounting logic lives in this class.
    * Calling a method twice with no posting in between returns equal
      values.

    Non-goals
    ---------
    * Does NOT post journal entries.
    * Does NOT support as-of-date or period reporting (full history only).
    """

    def __init__(
        self,
        registry: AccountRegistry,
        journal: JournalStore,
        inventory: InventoryLedger,
        conventions: PostingConventions,
        tolerances: Tolerances | None = None,
        entity_name: str = "Books",
    ):
        self._registry = registry
        self._journal = journal
        self._inventory = inventory
        self._conventions = conventions
        self._tolerances = tolerances or Tolerances()
        self._entity_name = entity_name

        logger.info(
            "reporting_service_initialized",
            extra={"entity_name": entity_name},
        )

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _roles(self) -> StatementRoles:
        """Resolve the special accounts by their convention names."""

        def account_id(name: str) -> str | None:
            account = self._registry.get_account_by_name(name)
            return account.id if account is not None else None

        c = self._conventions
        return StatementRoles(
            cash=account_id(c.cash.name),
            bank=account_id(c.bank.name),
            stock=account_id(c.stock.name),
            sales=account_id(c.sales.name),
            sales_return=account_id(c.sales_return.name),
            purchase=account_id(c.purchase.name),
            purchase_return=account_id(c.purchase_return.name),
        )

    def _build_metadata(self, report_type: ReportType) -> ReportMetadata:
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._entity_name,
            journal_version=self._journal.version,
            entry_count=len(self._journal),
        )

    def _closing_stock(self) -> Decimal:
        return self._inventory.closing_stock_value()

    # =========================================================================
    # Public API
    # =========================================================================

    def account_ledger(self, account_id: str) -> AccountLedger:
        """The ledger of one account (may have no postings)."""
        account = self._registry.require_account(account_id)
        return build_account_ledger(
            account, self._journal.chronological(), self._tolerances.display_epsilon,
        )

    def ledgers(self) -> tuple[AccountLedger, ...]:
        """Ledgers of every account with postings."""
        result = build_ledgers(
            self._registry.accounts,
            self._journal.chronological(),
            self._tolerances.display_epsilon,
        )
        logger.info("ledgers_generated", extra={"ledger_count": len(result)})
        return result

    def trial_balance(self) -> TrialBalanceReport:
        report = build_trial_balance(
            self._registry.accounts,
            self._journal.balances(),
            self._build_metadata(ReportType.TRIAL_BALANCE),
            tolerance=self._tolerances.trial_balance,
            anomaly_threshold=self._tolerances.anomaly,
        )
        logger.info(
            "trial_balance_generated",
            extra={
                "line_count": len(report.lines),
                "total_debits": report.total_debits,
                "total_credits": report.total_credits,
                "anomaly_count": len(report.anomalies),
            },
        )
        if not report.is_balanced:
            logger.warning(
                "trial_balance_unbalanced",
                extra={"difference": report.difference},
            )
        return report

    def final_accounts(self) -> FinalAccounts:
        """Trading account, profit & loss and balance sheet in one pass."""
        result = build_final_accounts(
            self._registry.accounts,
            self._journal.balances(),
            self._roles(),
            self._closing_stock(),
            self._build_metadata,
            tolerance=self._tolerances.balance_sheet,
        )
        sheet = result.balance_sheet
        logger.info(
            "final_accounts_generated",
            extra={
                "gross_profit": result.trading.gross_profit,
                "gross_loss": result.trading.gross_loss,
                "net_profit": result.profit_and_loss.net_profit,
                "net_loss": result.profit_and_loss.net_loss,
                "total_assets": sheet.total_assets,
            },
        )
        if not sheet.is_balanced:
            logger.warning(
                "balance_sheet_unbalanced",
                extra={
                    "total_assets": sheet.total_assets,
                    "total_liabilities_and_equity": sheet.total_liabilities_and_equity,
                    "difference": sheet.difference,
                },
            )
        return result

    def trading_account(self) -> TradingAccountReport:
        return self.final_accounts().trading

    def profit_and_loss(self) -> ProfitAndLossReport:
        return self.final_accounts().profit_and_loss

    def balance_sheet(self) -> BalanceSheetReport:
        return self.final_accounts().balance_sheet

    def fiscal_analysis(self) -> FiscalAnalysis:
        analysis = build_fiscal_analysis(
            self._registry.accounts,
            self._journal.balances(),
            self._roles(),
            self._closing_stock(),
            tolerance=self._tolerances.balance_sheet,
        )
        logger.info(
            "fiscal_analysis_generated",
            extra={
                "net_profit": analysis.net_profit,
                "net_loss": analysis.net_loss,
                "is_balanced": analysis.is_balanced,
            },
        )
        return analysis

    # -- stock views ---------------------------------------------------------

    def stock_register(self, item_id: str | None = None) -> list[StockRegisterLine]:
        return self._inventory.stock_register(item_id)

    def live_batches(self, item_id: str, method: CostMethod) -> tuple[CostLayer, ...]:
        return self._inventory.live_batches(item_id, method)
