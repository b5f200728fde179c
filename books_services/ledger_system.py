"""
books_services.ledger_system -- The books: one aggregate owning every store.

Responsibility:
    Creates the account registry, journal store and inventory ledger once,
    wires the posting translators and the reporting service over them, and
    is the single place where anything is written.  Business documents go
    in through ``post_*``; reports and persisted state come out.

Architecture position:
    Services -- stateful orchestration over kernel stores, engines and the
    posting / reporting modules.  No global instance: callers construct a
    LedgerSystem (tests construct one per test).

Invariants enforced:
    - Atomic posting: a posting plan's journal entry is validated (with the
      plan's provisional accounts counted as known) BEFORE any account,
      item, rate update, entry or stock movement is written.  A rejected
      posting leaves every store untouched.
    - Referential integrity: journal lines reference registered accounts;
      an account referenced by a journal line cannot be deleted.
    - Append-only journal and stock log.  ``soft_reset``/``hard_reset`` and
      ``load`` replace state wholesale; nothing edits a posted entry.

Failure modes:
    - Business-rule violations come back as ``PostingResult.failure``.
    - AccountNotFoundError / AccountReferencedError / DuplicateAccountError
      / InvalidClassificationError for direct API misuse.
    - ``load`` / ``import_data`` return ``ImportResult.failure`` and leave
      state untouched on any malformed input.

Audit relevance:
    Every commit logs ``posting_committed`` with the document type, entry
    id and auto-created accounts.  Postings dated outside the current
    fiscal year are accepted and logged at WARNING.

Usage:
    from books_services.ledger_system import LedgerSystem

    books = LedgerSystem()
    books.post_cash_book_entry(CashBookEntry(..., is_opening_balance=True))
    books.trial_balance()
    text = books.export_data()
"""

from __future__ import annotations

import dataclasses
import random
import threading
from datetime import date
from decimal import Decimal
from typing import Any, TypeVar

from books_config import get_default_config
from books_config.schema import EngineConfig, EngineSettings, NegativeFormat
from books_engines.depreciation import AssetPosition, DepreciationMethod, depreciation_for
from books_engines.valuation import CostLayer, CostMethod
from books_kernel.domain.clock import Clock, SystemClock
from books_kernel.domain.fiscal import FinancialYear, fiscal_year_bounds, fiscal_year_label
from books_kernel.domain.identity import AccountCodeGenerator, IdFactory, UuidIdFactory
from books_kernel.domain.results import PostingResult
from books_kernel.domain.values import ZERO
from books_kernel.exceptions import AccountReferencedError, MalformedDataError
from books_kernel.logging_config import LogContext, get_logger
from books_kernel.models.account import (
    Account,
    AccountClassification,
    AccountType,
    FinalAccountCategory,
)
from books_kernel.models.documents import (
    CashBookEntry,
    CashBookEntryType,
    ContraDirection,
    SavedNote,
    SubsidiaryBookType,
    SubsidiaryEntry,
)
from books_kernel.models.inventory import InventoryItem, StockTransaction
from books_kernel.models.journal import JournalEntry
from books_kernel.services.account_registry import AccountRegistry
from books_kernel.services.journal_store import JournalStore
from books_modules.posting import (
    CashBookTranslator,
    DepreciationCharge,
    DepreciationTranslator,
    PostingContext,
    PostingPlan,
    PostingTranslator,
    SubsidiaryBookTranslator,
    eligible_depreciation_assets,
)
from books_modules.posting.cash_book import contra_amount
from books_modules.reporting import (
    AccountLedger,
    BalanceSheetReport,
    FinalAccounts,
    FiscalAnalysis,
    ProfitAndLossReport,
    ReportingService,
    TradingAccountReport,
    TrialBalanceReport,
    format_amount,
)
from books_services.serialization import (
    BooksSnapshot,
    ImportResult,
    decode_snapshot,
    dumps_snapshot,
    encode_snapshot,
    loads_snapshot,
)
from books_services.valuation_service import InventoryLedger, StockRegisterLine

logger = get_logger("services.ledger_system")

D = TypeVar("D")


class LedgerSystem:
    """
    The books of one business.

    Contract:
        All writes go through this class and hold its lock for the whole
        read-validate-write sequence.  Stores are exposed read-only by
        convention (``registry``, ``journal``, ``inventory``).

    Guarantees:
        - A fresh (or hard-reset) system holds exactly the configured
          default chart of accounts.
        - ``export_data()`` is deterministic for a given state.
        - Reports are folds over full history; equal state gives equal
          reports.

    Non-goals:
        - Does NOT edit, void or reverse posted entries.
        - Does NOT write files; persistence is text in, text out.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
        rng: random.Random | None = None,
        entity_name: str = "Books",
    ) -> None:
        self._config = config or get_default_config()
        self._clock = clock or SystemClock()
        self._ids = id_factory or UuidIdFactory()
        self._lock = threading.RLock()

        tolerances = self._config.tolerances
        self.registry = AccountRegistry(self._ids, AccountCodeGenerator(rng))
        self.journal = JournalStore(self.registry, self._ids, tolerances.balance)
        self.inventory = InventoryLedger(self._ids)
        self.reports = ReportingService(
            self.registry,
            self.journal,
            self.inventory,
            self._config.conventions,
            tolerances,
            entity_name=entity_name,
        )

        self._cash_book = CashBookTranslator()
        self._subsidiary = SubsidiaryBookTranslator()
        self._depreciation = DepreciationTranslator()

        self._settings = self._config.settings
        self._subsidiary_entries: list[SubsidiaryEntry] = []
        self._cash_book_entries: list[CashBookEntry] = []
        self._saved_notes: list[SavedNote] = []

        self.registry.replace_all(self._default_accounts())
        logger.info("ledger_system_initialized", extra={
            "config_id": self._config.config_id,
            "config_version": self._config.version,
            "account_count": len(self.registry),
            "inventory_method": self._settings.inventory_method.value,
        })

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _default_accounts(self) -> list[Account]:
        """The configured default chart, with fixed codes where configured."""
        accounts: list[Account] = []
        for spec in self._config.default_accounts:
            if spec.code is not None:
                account = Account(
                    id=self._ids.new_id(),
                    code=spec.code,
                    name=spec.name,
                    account_type=spec.account_type,
                    classification=spec.classification,
                    final_account_category=spec.final_category,
                )
            else:
                account = self.registry.build_account(
                    spec.name,
                    spec.account_type,
                    spec.classification,
                    spec.final_category,
                    reserved_codes={a.code for a in accounts},
                )
            accounts.append(account)
        return accounts

    def _context(self) -> PostingContext:
        return PostingContext(
            registry=self.registry,
            inventory=self.inventory,
            ids=self._ids,
            conventions=self._config.conventions,
            inventory_method=self._settings.inventory_method,
        )

    def _post(self, translator: PostingTranslator[D], document: D) -> PostingResult:
        """Translate ``document`` and commit the plan, all under the lock."""
        with self._lock:
            translation = translator.propose(document, self._context())
            if not translation:
                return PostingResult.failure(*translation.validation.errors)
            return self._commit(translation.plan, translator.document_type)

    def _commit(self, plan: PostingPlan, document_type: str) -> PostingResult:
        """Write a whole plan, or nothing if its entry fails validation."""
        with self._lock:
            validation = self.journal.validate(
                plan.entry, pending_account_ids={a.id for a in plan.new_accounts},
            )
            if not validation:
                logger.warning("posting_commit_rejected", extra={
                    "document_type": document_type,
                    "entry_id": plan.entry.id,
                    "error_codes": [e.code for e in validation.errors],
                })
                return PostingResult.failure(*validation.errors)

            for account in plan.new_accounts:
                self.registry.register(account)
            for item in plan.new_items:
                self.inventory.register_item(item)
            for item_id, rate in plan.rate_updates:
                self.inventory.update_last_purchase_rate(item_id, rate)
            entry = self.journal.append_validated(plan.entry)
            stock = tuple(self.inventory.record(txn) for txn in plan.stock_transactions)

        logger.info("posting_committed", extra={
            "document_type": document_type,
            "entry_id": entry.id,
            "transaction_id": entry.transaction_id,
            "auto_created_accounts": [a.name for a in plan.new_accounts],
            "auto_created_items": [i.name for i in plan.new_items],
            "stock_movements": len(stock),
        })
        self._check_fiscal_year(entry.date)
        return PostingResult.success(entry, stock)

    def _check_fiscal_year(self, posting_date: date) -> None:
        if not self.is_date_in_fiscal_year(posting_date):
            start, end = self.current_fiscal_year()
            logger.warning("posting_outside_fiscal_year", extra={
                "posting_date": posting_date,
                "fiscal_year_start": start,
                "fiscal_year_end": end,
            })

    # =========================================================================
    # Accounts
    # =========================================================================

    @property
    def accounts(self) -> tuple[Account, ...]:
        return self.registry.accounts

    def create_account(
        self,
        name: str,
        account_type: AccountType,
        classification: AccountClassification,
        final_category: FinalAccountCategory | None = None,
        description: str | None = None,
    ) -> Account:
        return self.registry.create_account(
            name, account_type, classification, final_category, description,
        )

    def get_account(self, account_id: str) -> Account | None:
        return self.registry.get_account(account_id)

    def get_account_by_name(self, name: str) -> Account | None:
        return self.registry.get_account_by_name(name)

    def update_account(self, account_id: str, **changes: Any) -> Account:
        """Reclassify or rename; every report reflects the change retroactively."""
        return self.registry.update_account(account_id, **changes)

    def delete_account(self, account_id: str) -> Account:
        """Remove an account no journal line references."""
        with self._lock:
            self.registry.require_account(account_id)
            line_count = self.journal.reference_count(account_id)
            if line_count:
                logger.warning("account_delete_refused", extra={
                    "account_id": account_id,
                    "line_count": line_count,
                })
                raise AccountReferencedError(account_id, line_count)
            return self.registry.delete_account(account_id)

    # =========================================================================
    # Journal
    # =========================================================================

    @property
    def entries(self) -> tuple[JournalEntry, ...]:
        """Most recent first."""
        return self.journal.entries

    def add_entry(self, entry: JournalEntry) -> PostingResult:
        """Post a hand-written journal entry."""
        with self._lock:
            result = self.journal.add_entry(entry)
        if result:
            self._check_fiscal_year(result.entry.date)
        return result

    def get_account_balance(self, account_id: str) -> Decimal:
        return self.journal.get_account_balance(account_id)

    # =========================================================================
    # Cash book
    # =========================================================================

    @property
    def cash_book_entries(self) -> tuple[CashBookEntry, ...]:
        return tuple(self._cash_book_entries)

    def post_cash_book_entry(self, entry: CashBookEntry) -> PostingResult:
        """Post one cash-book line and keep it in the cash-book register."""
        with LogContext.bind(document_id=entry.id):
            with self._lock:
                result = self._post(self._cash_book, entry)
                if result:
                    self._cash_book_entries.append(self._posted_cash_book_entry(entry))
        return result

    def _posted_cash_book_entry(self, entry: CashBookEntry) -> CashBookEntry:
        if entry.is_contra or entry.is_opening_balance:
            return dataclasses.replace(entry, posted=True)
        if entry.account_id:
            account = self.registry.require_account(entry.account_id)
        else:
            account = self.registry.get_account_by_name(entry.account_name)
        return entry.mark_posted(account.id, account.name)

    def balance_cash_book(self, as_of: date | None = None) -> tuple[Decimal, Decimal]:
        """
        Running (cash, bank) totals of the cash-book register.

        Receipts and opening balances add, payments subtract, and contra
        lines move the transfer amount from one column to the other.
        """
        cash = bank = ZERO
        for entry in self._cash_book_entries:
            if as_of is not None and entry.date > as_of:
                continue
            if entry.contra == ContraDirection.CASH_TO_BANK:
                cash -= contra_amount(entry)
                bank += contra_amount(entry)
            elif entry.contra == ContraDirection.BANK_TO_CASH:
                cash += contra_amount(entry)
                bank -= contra_amount(entry)
            elif entry.is_opening_balance or entry.type == CashBookEntryType.RECEIPT:
                cash += entry.cash_amount
                bank += entry.bank_amount
            else:
                cash -= entry.cash_amount
                bank -= entry.bank_amount
        return cash, bank

    def has_opening_balance(self) -> bool:
        return any(entry.is_opening_balance for entry in self._cash_book_entries)

    # =========================================================================
    # Subsidiary books
    # =========================================================================

    @property
    def subsidiary_entries(self) -> tuple[SubsidiaryEntry, ...]:
        return tuple(self._subsidiary_entries)

    def generate_document_id(self, book_type: SubsidiaryBookType) -> str:
        """``P-1A2B`` style: first letter of the book, four hex characters."""
        return f"{book_type.value[0]}-{self._ids.short_token(4)}"

    def add_subsidiary_entry(self, entry: SubsidiaryEntry) -> SubsidiaryEntry:
        """Keep a draft document without posting it."""
        with self._lock:
            self._subsidiary_entries.append(entry)
        logger.info("subsidiary_entry_saved", extra={
            "document_id": entry.id,
            "book_type": entry.book_type.value,
        })
        return entry

    def post_subsidiary_entry(self, entry: SubsidiaryEntry) -> PostingResult:
        """Post an invoice or return note; a saved draft with the same id is replaced."""
        with LogContext.bind(document_id=entry.id):
            with self._lock:
                result = self._post(self._subsidiary, entry)
                if result:
                    posted = entry.mark_posted(result.entry.transaction_id)
                    for index, existing in enumerate(self._subsidiary_entries):
                        if existing.id == entry.id:
                            self._subsidiary_entries[index] = posted
                            break
                    else:
                        self._subsidiary_entries.append(posted)
        return result

    def get_valid_reference_docs(self, book_type: SubsidiaryBookType) -> list[SubsidiaryEntry]:
        """Posted documents a return of ``book_type`` may refer to."""
        source = {
            SubsidiaryBookType.PURCHASE_RETURN: SubsidiaryBookType.PURCHASE,
            SubsidiaryBookType.SALES_RETURN: SubsidiaryBookType.SALES,
        }.get(book_type)
        if source is None:
            return []
        return [e for e in self._subsidiary_entries if e.book_type == source and e.posted]

    # =========================================================================
    # Inventory
    # =========================================================================

    @property
    def inventory_items(self) -> tuple[InventoryItem, ...]:
        return self.inventory.items

    @property
    def stock_transactions(self) -> tuple[StockTransaction, ...]:
        return self.inventory.transactions

    def get_current_stock_balance(self, item_id: str) -> Decimal:
        return self.inventory.get_current_stock_balance(item_id)

    def stock_register(self, item_id: str | None = None) -> list[StockRegisterLine]:
        return self.reports.stock_register(item_id)

    def live_batches(self, item_id: str) -> tuple[CostLayer, ...]:
        """Layers still on hand under the current valuation method."""
        return self.reports.live_batches(item_id, self._settings.inventory_method)

    # =========================================================================
    # Depreciation
    # =========================================================================

    def eligible_depreciation_assets(self) -> list[AssetPosition]:
        return eligible_depreciation_assets(
            self.registry.accounts,
            self.journal.entries,
            self.journal.balances(),
            self._config.tolerances.depreciable_balance,
        )

    def compute_depreciation(
        self, position: AssetPosition, method: DepreciationMethod, rate: Decimal,
    ) -> Decimal:
        return depreciation_for(position, method, rate)

    def post_depreciation(self, charge: DepreciationCharge) -> PostingResult:
        """Dr Depreciation A/c, Cr the asset; AccountNotFoundError for an unknown asset."""
        with LogContext.bind(document_id=charge.asset_account_id):
            return self._post(self._depreciation, charge)

    # =========================================================================
    # Notes
    # =========================================================================

    @property
    def saved_notes(self) -> tuple[SavedNote, ...]:
        """Newest first."""
        return tuple(self._saved_notes)

    def add_saved_note(self, title: str, content: str) -> SavedNote:
        note = SavedNote(id=self._ids.new_id(), title=title, content=content, date=self._clock.now())
        with self._lock:
            self._saved_notes.insert(0, note)
        return note

    def delete_saved_note(self, note_id: str) -> bool:
        with self._lock:
            before = len(self._saved_notes)
            self._saved_notes = [n for n in self._saved_notes if n.id != note_id]
            return len(self._saved_notes) < before

    # =========================================================================
    # Settings and fiscal year
    # =========================================================================

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    def _change_settings(self, **changes: Any) -> EngineSettings:
        with self._lock:
            self._settings = self._settings.with_changes(**changes)
        logger.info("settings_changed", extra={
            name: getattr(value, "value", value) for name, value in changes.items()
        })
        return self._settings

    def set_inventory_method(self, method: CostMethod) -> EngineSettings:
        """Applies to future issues; amounts already posted never change."""
        return self._change_settings(inventory_method=CostMethod(method))

    def set_negative_format(self, negative_format: NegativeFormat) -> EngineSettings:
        return self._change_settings(negative_format=NegativeFormat(negative_format))

    def set_financial_year(self, financial_year: FinancialYear) -> EngineSettings:
        return self._change_settings(financial_year=FinancialYear(financial_year))

    def current_fiscal_year(self) -> tuple[date, date]:
        return fiscal_year_bounds(self._settings.financial_year, self._clock.today())

    def fiscal_year_label(self) -> str:
        return fiscal_year_label(self._settings.financial_year, self._clock.today())

    def is_date_in_fiscal_year(self, value: date) -> bool:
        start, end = self.current_fiscal_year()
        return start <= value <= end

    def format_amount(self, value: Decimal) -> str:
        return format_amount(value, self._settings.negative_format)

    # =========================================================================
    # Reports
    # =========================================================================

    def account_ledger(self, account_id: str) -> AccountLedger:
        return self.reports.account_ledger(account_id)

    def ledgers(self) -> tuple[AccountLedger, ...]:
        return self.reports.ledgers()

    def trial_balance(self) -> TrialBalanceReport:
        return self.reports.trial_balance()

    def final_accounts(self) -> FinalAccounts:
        return self.reports.final_accounts()

    def trading_account(self) -> TradingAccountReport:
        return self.reports.trading_account()

    def profit_and_loss(self) -> ProfitAndLossReport:
        return self.reports.profit_and_loss()

    def balance_sheet(self) -> BalanceSheetReport:
        return self.reports.balance_sheet()

    def fiscal_analysis(self) -> FiscalAnalysis:
        return self.reports.fiscal_analysis()

    # =========================================================================
    # Resets
    # =========================================================================

    def soft_reset(self) -> None:
        """Clear the journal, documents and stock log; keep accounts, items, notes, settings."""
        with self._lock:
            self.journal.clear()
            self.inventory.clear_transactions()
            self._subsidiary_entries = []
            self._cash_book_entries = []
        logger.warning("books_soft_reset", extra={"account_count": len(self.registry)})

    def hard_reset(self) -> None:
        """Back to a fresh set of books: default chart, default settings, nothing else."""
        with self._lock:
            self.journal.clear()
            self.inventory.replace_all([], [])
            self.registry.replace_all(self._default_accounts())
            self._subsidiary_entries = []
            self._cash_book_entries = []
            self._saved_notes = []
            self._settings = self._config.settings
        logger.warning("books_hard_reset", extra={"account_count": len(self.registry)})

    # =========================================================================
    # Persistence
    # =========================================================================

    def snapshot(self, metadata: dict[str, Any] | None = None) -> BooksSnapshot:
        with self._lock:
            return BooksSnapshot(
                accounts=self.registry.accounts,
                entries=self.journal.entries,
                subsidiary_entries=tuple(self._subsidiary_entries),
                cash_book_entries=tuple(self._cash_book_entries),
                saved_notes=tuple(self._saved_notes),
                stock_transactions=self.inventory.transactions,
                inventory_items=self.inventory.items,
                settings=self._settings,
                metadata=metadata,
            )

    def save(self) -> dict[str, Any]:
        """The persisted document as plain JSON types."""
        return encode_snapshot(self.snapshot())

    def export_data(self, metadata: dict[str, Any] | None = None) -> str:
        """The persisted document as JSON text; same state, same string."""
        return dumps_snapshot(self.snapshot(metadata))

    def load(self, document: Any) -> ImportResult:
        """Replace all state from a decoded document, or change nothing."""
        try:
            snapshot = decode_snapshot(
                document,
                current_settings=self._settings,
                tolerance=self._config.tolerances.balance,
            )
        except MalformedDataError as exc:
            return self._import_failed(exc)
        return self._apply(snapshot)

    def import_data(self, text: str) -> ImportResult:
        """Replace all state from JSON text, or change nothing."""
        try:
            snapshot = loads_snapshot(
                text,
                current_settings=self._settings,
                tolerance=self._config.tolerances.balance,
            )
        except MalformedDataError as exc:
            return self._import_failed(exc)
        return self._apply(snapshot)

    def _import_failed(self, exc: MalformedDataError) -> ImportResult:
        logger.warning("import_rejected", extra={
            "path": exc.path,
            "reason": exc.reason,
        })
        return ImportResult.failure(str(exc))

    def _apply(self, snapshot: BooksSnapshot) -> ImportResult:
        with self._lock:
            self.registry.replace_all(snapshot.accounts)
            self.journal.replace_all(snapshot.entries)
            self.inventory.replace_all(snapshot.inventory_items, snapshot.stock_transactions)
            self._subsidiary_entries = list(snapshot.subsidiary_entries)
            self._cash_book_entries = list(snapshot.cash_book_entries)
            self._saved_notes = list(snapshot.saved_notes)
            self._settings = snapshot.settings
        logger.info("books_imported", extra={
            "account_count": len(snapshot.accounts),
            "entry_count": len(snapshot.entries),
            "stock_transaction_count": len(snapshot.stock_transactions),
        })
        return ImportResult.ok(snapshot.metadata)
