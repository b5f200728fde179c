"""
Pure financial statement transformation functions.

These functions fold journal entries and account metadata into ledgers, the
trial balance and the final accounts.  ZERO I/O. ZERO side effects.

All monetary values are Decimal. All inputs/outputs are frozen dataclasses.

Functions in this module follow the books_kernel/domain/ purity convention:
- No store access (callers pass balances and entries in)
- No clock access
- No file I/O
- Deterministic: same inputs always produce same outputs

Statement amounts are *natural* balances: positive when the account sits on
its normal side.  A wrong-side balance therefore shows as a negative line
rather than being hidden; the trial balance flags it as an anomaly.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import date
from decimal import Decimal
from enum import Enum

from books_kernel.domain.values import ZERO, decimal_sum
from books_kernel.models.account import (
    Account,
    AccountClassification,
    AccountType,
    FinalAccountCategory,
    NormalBalance,
)
from books_kernel.models.journal import JournalEntry, LineSide
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

SELF_PARTICULARS = "Self (Opening/Adj)"


# =========================================================================
# Bridge type: the accounts statements treat specially
# =========================================================================


@dataclasses.dataclass(frozen=True)
class StatementRoles:
    """
    Ids of the convention accounts the final accounts single out.

    The service resolves these from the posting conventions by name.  A
    role whose account does not exist is ``None`` and contributes zero.
    """

    cash: str | None = None
    bank: str | None = None
    stock: str | None = None
    sales: str | None = None
    sales_return: str | None = None
    purchase: str | None = None
    purchase_return: str | None = None

    @property
    def trading_ids(self) -> frozenset[str]:
        return frozenset(
            i for i in (self.sales, self.sales_return, self.purchase, self.purchase_return) if i
        )


# =========================================================================
# Helpers
# =========================================================================


def compute_natural_balance(net_debit: Decimal, normal_balance: NormalBalance) -> Decimal:
    """
    Balance adjusted for normal balance side.

    DEBIT-normal (ASSET, EXPENSE): balance = debits - credits
    CREDIT-normal (LIABILITY, EQUITY, REVENUE): balance = credits - debits
    """
    if normal_balance == NormalBalance.DEBIT:
        return net_debit
    return -net_debit


def balance_side(net_debit: Decimal, epsilon: Decimal) -> BalanceSide:
    if net_debit > epsilon:
        return BalanceSide.DEBIT
    if net_debit < -epsilon:
        return BalanceSide.CREDIT
    return BalanceSide.NIL


def _natural(account: Account, balances: Mapping[str, Decimal]) -> Decimal:
    return compute_natural_balance(balances.get(account.id, ZERO), account.normal_balance)


def _role_natural(
    role_id: str | None,
    accounts_by_id: Mapping[str, Account],
    balances: Mapping[str, Decimal],
) -> Decimal:
    if role_id is None or role_id not in accounts_by_id:
        return ZERO
    return _natural(accounts_by_id[role_id], balances)


def _is_direct(account: Account) -> bool:
    return account.final_account_category == FinalAccountCategory.DIRECT


def _make_section(
    label: str,
    accounts: Iterable[Account],
    balances: Mapping[str, Decimal],
) -> StatementSection:
    """Section of the accounts with a nonzero natural balance, by code."""
    lines = tuple(
        StatementLine(label=account.name, amount=_natural(account, balances), account_id=account.id)
        for account in sorted(accounts, key=lambda a: a.code)
        if balances.get(account.id, ZERO) != ZERO
    )
    return StatementSection(label=label, lines=lines, total=decimal_sum(l.amount for l in lines))


def _split(amount: Decimal) -> tuple[Decimal, Decimal]:
    """(profit, loss) from a signed result."""
    if amount >= ZERO:
        return amount, ZERO
    return ZERO, -amount


# =========================================================================
# 1. LEDGER
# =========================================================================


def _particulars(entry: JournalEntry, side: LineSide) -> str:
    prefix = "To " if side == LineSide.DEBIT else "By "
    opposite = [line.account_name for line in entry.lines if line.side != side]
    if not opposite:
        return prefix + SELF_PARTICULARS
    return prefix + " & ".join(opposite)


def build_account_ledger(
    account: Account,
    chronological_entries: Sequence[JournalEntry],
    epsilon: Decimal,
) -> AccountLedger:
    """
    Ledger of one account.

    ``chronological_entries`` must be date ascending; the running balance is
    the account's net debit after each posting.
    """
    postings: list[LedgerPosting] = []
    running = ZERO
    total_debit = ZERO
    total_credit = ZERO
    for entry in chronological_entries:
        for line in entry.lines:
            if line.account_id != account.id:
                continue
            debit = line.amount if line.is_debit else ZERO
            credit = ZERO if line.is_debit else line.amount
            running += debit - credit
            total_debit += debit
            total_credit += credit
            postings.append(LedgerPosting(
                entry_id=entry.id,
                transaction_id=entry.transaction_id,
                date=entry.date,
                particulars=_particulars(entry, line.side),
                narration=entry.narration,
                debit=debit,
                credit=credit,
                running_balance=running,
            ))
    balance = total_debit - total_credit
    return AccountLedger(
        account_id=account.id,
        account_code=account.code,
        account_name=account.name,
        account_type=account.account_type.value,
        postings=tuple(postings),
        total_debit=total_debit,
        total_credit=total_credit,
        balance=balance,
        balance_side=balance_side(balance, epsilon),
    )


def build_ledgers(
    accounts: Sequence[Account],
    chronological_entries: Sequence[JournalEntry],
    epsilon: Decimal,
) -> tuple[AccountLedger, ...]:
    """Ledgers of every account with at least one posting, registry order."""
    ledgers = (build_account_ledger(a, chronological_entries, epsilon) for a in accounts)
    return tuple(ledger for ledger in ledgers if ledger.postings)


# =========================================================================
# 2. TRIAL BALANCE
# =========================================================================


def is_wrong_side(account: Account, net_debit: Decimal, threshold: Decimal) -> bool:
    """
    True when the balance sits against the account's nature.

    Return accounts carry contra balances routinely and are never flagged.
    """
    if "return" in account.name.lower():
        return False
    if account.normal_balance == NormalBalance.DEBIT:
        return net_debit < -threshold
    return net_debit > threshold


def build_trial_balance(
    accounts: Sequence[Account],
    balances: Mapping[str, Decimal],
    metadata: ReportMetadata,
    tolerance: Decimal,
    anomaly_threshold: Decimal,
) -> TrialBalanceReport:
    """Every account with a nonzero balance, Dr or Cr by sign, sorted by code."""
    lines: list[TrialBalanceLine] = []
    for account in accounts:
        net = balances.get(account.id, ZERO)
        if net == ZERO:
            continue
        lines.append(TrialBalanceLine(
            account_id=account.id,
            account_code=account.code,
            account_name=account.name,
            account_type=account.account_type.value,
            classification=account.classification.value,
            debit=net if net > ZERO else ZERO,
            credit=-net if net < ZERO else ZERO,
            is_anomaly=is_wrong_side(account, net, anomaly_threshold),
        ))
    lines.sort(key=lambda line: line.account_code)

    total_debits = decimal_sum(line.debit for line in lines)
    total_credits = decimal_sum(line.credit for line in lines)
    difference = total_debits - total_credits
    return TrialBalanceReport(
        metadata=metadata,
        lines=tuple(lines),
        total_debits=total_debits,
        total_credits=total_credits,
        difference=difference,
        is_balanced=abs(difference) < tolerance,
    )


# =========================================================================
# 3. TRADING ACCOUNT
# =========================================================================


def build_trading_account(
    accounts: Sequence[Account],
    balances: Mapping[str, Decimal],
    roles: StatementRoles,
    closing_stock: Decimal,
    metadata: ReportMetadata,
) -> TradingAccountReport:
    """
    Trading account.

    Sales, Purchase and their return accounts count here only while they
    are categorised DIRECT; reclassified, they fall through to Profit &
    Loss with the other indirect items.
    """
    by_id = {a.id: a for a in accounts}

    def special(role_id: str | None) -> Decimal:
        account = by_id.get(role_id) if role_id else None
        if account is None or not _is_direct(account):
            return ZERO
        return _natural(account, balances)

    opening_stock = _role_natural(roles.stock, by_id, balances)
    purchases = special(roles.purchase)
    purchase_returns = special(roles.purchase_return)
    sales = special(roles.sales)
    sales_returns = special(roles.sales_return)
    net_purchases = purchases - purchase_returns
    net_sales = sales - sales_returns

    excluded = roles.trading_ids
    direct_expenses = _make_section("Direct Expenses", (
        a for a in accounts
        if a.account_type == AccountType.EXPENSE and _is_direct(a) and a.id not in excluded
    ), balances)
    direct_incomes = _make_section("Direct Incomes", (
        a for a in accounts
        if a.account_type == AccountType.REVENUE and _is_direct(a) and a.id not in excluded
    ), balances)

    debit_total = opening_stock + net_purchases + direct_expenses.total
    credit_total = net_sales + direct_incomes.total + closing_stock
    gross_profit, gross_loss = _split(credit_total - debit_total)

    return TradingAccountReport(
        metadata=metadata,
        opening_stock=opening_stock,
        purchases=purchases,
        purchase_returns=purchase_returns,
        net_purchases=net_purchases,
        direct_expenses=direct_expenses,
        sales=sales,
        sales_returns=sales_returns,
        net_sales=net_sales,
        direct_incomes=direct_incomes,
        closing_stock=closing_stock,
        debit_total=debit_total,
        credit_total=credit_total,
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        total=max(debit_total, credit_total),
    )


# =========================================================================
# 4. PROFIT & LOSS ACCOUNT
# =========================================================================


def build_profit_and_loss(
    accounts: Sequence[Account],
    balances: Mapping[str, Decimal],
    trading: TradingAccountReport,
    metadata: ReportMetadata,
) -> ProfitAndLossReport:
    """Indirect items below the gross result.  No category means indirect."""
    indirect_expenses = _make_section("Indirect Expenses", (
        a for a in accounts if a.account_type == AccountType.EXPENSE and not _is_direct(a)
    ), balances)
    indirect_incomes = _make_section("Indirect Incomes", (
        a for a in accounts if a.account_type == AccountType.REVENUE and not _is_direct(a)
    ), balances)

    debit_total = trading.gross_loss + indirect_expenses.total
    credit_total = trading.gross_profit + indirect_incomes.total
    net_profit, net_loss = _split(credit_total - debit_total)

    return ProfitAndLossReport(
        metadata=metadata,
        gross_profit=trading.gross_profit,
        gross_loss=trading.gross_loss,
        indirect_expenses=indirect_expenses,
        indirect_incomes=indirect_incomes,
        debit_total=debit_total,
        credit_total=credit_total,
        net_profit=net_profit,
        net_loss=net_loss,
        total=max(debit_total, credit_total),
    )


# =========================================================================
# 5. BALANCE SHEET
# =========================================================================


def build_balance_sheet(
    accounts: Sequence[Account],
    balances: Mapping[str, Decimal],
    roles: StatementRoles,
    profit_and_loss: ProfitAndLossReport,
    closing_stock: Decimal,
    metadata: ReportMetadata,
    tolerance: Decimal,
) -> BalanceSheetReport:
    """
    Horizontal balance sheet.

    The Stock A/c balance is opening stock and went to the Trading account;
    the sheet carries closing stock instead.  A negative cash or bank
    balance moves to the liabilities side as a shortfall or overdraft.
    """
    by_id = {a.id: a for a in accounts}

    capital = decimal_sum(
        _natural(a, balances) for a in accounts
        if a.classification == AccountClassification.OWNER_CAPITAL
    )
    drawings = decimal_sum(
        balances.get(a.id, ZERO) for a in accounts
        if a.classification == AccountClassification.OWNER_DRAWINGS
    )
    net_capital = capital + profit_and_loss.net_profit - profit_and_loss.net_loss - drawings

    liabilities = [a for a in accounts if a.account_type == AccountType.LIABILITY]
    creditors = _make_section("Sundry Creditors", (
        a for a in liabilities if a.classification == AccountClassification.SUNDRY_CREDITOR
    ), balances)
    other_liabilities = _make_section("Liabilities", (
        a for a in liabilities if a.classification != AccountClassification.SUNDRY_CREDITOR
    ), balances)

    cash_balance = _role_natural(roles.cash, by_id, balances)
    bank_balance = _role_natural(roles.bank, by_id, balances)
    cash = max(cash_balance, ZERO)
    bank = max(bank_balance, ZERO)
    cash_shortfall = max(-cash_balance, ZERO)
    bank_overdraft = max(-bank_balance, ZERO)

    skip = {roles.cash, roles.bank, roles.stock}
    assets = [a for a in accounts if a.account_type == AccountType.ASSET and a.id not in skip]
    fixed_assets = _make_section("Fixed Assets", (
        a for a in assets if a.classification == AccountClassification.TANGIBLE_ASSET
    ), balances)
    debtors = _make_section("Sundry Debtors", (
        a for a in assets if a.classification == AccountClassification.SUNDRY_DEBTOR
    ), balances)
    other_assets = _make_section("Other Assets", (
        a for a in assets
        if a.classification not in (
            AccountClassification.TANGIBLE_ASSET, AccountClassification.SUNDRY_DEBTOR,
        )
    ), balances)

    total_liabilities_and_equity = (
        net_capital + other_liabilities.total + creditors.total + bank_overdraft + cash_shortfall
    )
    total_assets = (
        cash + bank + fixed_assets.total + debtors.total + other_assets.total + closing_stock
    )
    difference = abs(total_assets - total_liabilities_and_equity)

    return BalanceSheetReport(
        metadata=metadata,
        capital=capital,
        net_profit=profit_and_loss.net_profit,
        net_loss=profit_and_loss.net_loss,
        drawings=drawings,
        net_capital=net_capital,
        other_liabilities=other_liabilities,
        creditors=creditors,
        bank_overdraft=bank_overdraft,
        cash_shortfall=cash_shortfall,
        total_liabilities_and_equity=total_liabilities_and_equity,
        cash=cash,
        bank=bank,
        fixed_assets=fixed_assets,
        debtors=debtors,
        other_assets=other_assets,
        closing_stock=closing_stock,
        total_assets=total_assets,
        difference=difference,
        is_balanced=difference < tolerance,
    )


def build_final_accounts(
    accounts: Sequence[Account],
    balances: Mapping[str, Decimal],
    roles: StatementRoles,
    closing_stock: Decimal,
    metadata_for: Callable[[ReportType], ReportMetadata],
    tolerance: Decimal,
) -> FinalAccounts:
    """Trading, then Profit & Loss, then the Balance Sheet, each feeding the next."""
    trading = build_trading_account(
        accounts, balances, roles, closing_stock, metadata_for(ReportType.TRADING_ACCOUNT),
    )
    pnl = build_profit_and_loss(
        accounts, balances, trading, metadata_for(ReportType.PROFIT_AND_LOSS),
    )
    sheet = build_balance_sheet(
        accounts, balances, roles, pnl, closing_stock,
        metadata_for(ReportType.BALANCE_SHEET), tolerance,
    )
    return FinalAccounts(trading=trading, profit_and_loss=pnl, balance_sheet=sheet)


# =========================================================================
# 6. FISCAL ANALYSIS
# =========================================================================


def build_fiscal_analysis(
    accounts: Sequence[Account],
    balances: Mapping[str, Decimal],
    roles: StatementRoles,
    closing_stock: Decimal,
    tolerance: Decimal,
) -> FiscalAnalysis:
    """
    Consolidated figures by account type, computed without the statements.

    Agrees with the balance sheet's check: both rest on the journal's
    debits equalling its credits.
    """
    by_id = {a.id: a for a in accounts}

    def total(account_type: AccountType, *, direct_only: bool = False) -> Decimal:
        return decimal_sum(
            _natural(a, balances) for a in accounts
            if a.account_type == account_type and (not direct_only or _is_direct(a))
        )

    opening_stock = _role_natural(roles.stock, by_id, balances)
    stock_change = closing_stock - opening_stock

    gross = total(AccountType.REVENUE, direct_only=True) - total(
        AccountType.EXPENSE, direct_only=True,
    ) + stock_change
    net = total(AccountType.REVENUE) - total(AccountType.EXPENSE) + stock_change
    gross_profit, gross_loss = _split(gross)
    net_profit, net_loss = _split(net)

    total_assets = decimal_sum(
        _natural(a, balances) for a in accounts
        if a.account_type == AccountType.ASSET and a.id != roles.stock
    ) + closing_stock
    total_liabilities = total(AccountType.LIABILITY)
    total_equity = total(AccountType.EQUITY) + net

    return FiscalAnalysis(
        opening_stock=opening_stock,
        closing_stock=closing_stock,
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        net_profit=net_profit,
        net_loss=net_loss,
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        total_equity=total_equity,
        cash_balance=_role_natural(roles.cash, by_id, balances),
        bank_balance=_role_natural(roles.bank, by_id, balances),
        is_balanced=abs(total_assets - total_liabilities - total_equity) < tolerance,
    )


# =========================================================================
# 7. RENDERER (dict/JSON output)
# =========================================================================


def render_to_dict(obj: object) -> dict | list | str | int | float | bool | None:
    """
    Convert any report dataclass to a plain dict for JSON serialization.

    Handles:
    - Decimal -> str (preserving precision)
    - date -> ISO format string
    - Enum -> .value
    - Nested frozen dataclasses -> nested dicts
    - Tuples -> lists
    - None preserved
    """
    if obj is None:
        return None
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: render_to_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)
