#!/usr/bin/env python3
"""
View the final accounts of an exported set of books.

Loads a JSON export (as written by ``LedgerSystem.export_data``) and prints
the trial balance, trading account, profit & loss account and balance
sheet, followed by a verification summary.

Usage:
    python3 scripts/view_reports.py books.json
    python3 scripts/view_reports.py books.json --brackets --entity "Sharma Traders"
"""

import argparse
import logging
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

W = 72
AMT_W = 16


def _hdr(title: str, subtitle: str) -> str:
    return "\n".join(["=" * W, title.center(W), subtitle.center(W), "=" * W])


def _row(label: str, amount: str, indent: int = 0) -> str:
    pad = "  " * indent
    return f"  {pad}{label:<{W - AMT_W - 2 - len(pad)}}{amount:>{AMT_W}}"


def _sep() -> str:
    return f"  {'':<{W - AMT_W - 2}}{'-' * AMT_W:>{AMT_W}}"


def _status(label: str, ok: bool) -> str:
    return f"  [{'OK' if ok else 'FAIL'}] {label}"


def print_trial_balance(tb, fmt) -> None:
    print(_hdr("TRIAL BALANCE", tb.metadata.entity_name))
    name_w = W - 2 * AMT_W - 2
    print(f"  {'Account':<{name_w}}{'Debit':>{AMT_W}}{'Credit':>{AMT_W}}")
    for line in tb.lines:
        dr = fmt(line.debit) if line.debit else ""
        cr = fmt(line.credit) if line.credit else ""
        flag = " *" if line.is_anomaly else ""
        label = f"{line.account_code}  {line.account_name}{flag}"
        print(f"  {label:<{name_w}}{dr:>{AMT_W}}{cr:>{AMT_W}}")
    print(f"  {'TOTALS':<{name_w}}{fmt(tb.total_debits):>{AMT_W}}{fmt(tb.total_credits):>{AMT_W}}")
    if tb.anomalies:
        print("  * balance on the unexpected side")
    print()


def _print_section(section, fmt) -> None:
    for line in section.lines:
        print(_row(line.label, fmt(line.amount), indent=1))


def print_trading_account(trading, fmt) -> None:
    print(_hdr("TRADING ACCOUNT", trading.metadata.entity_name))
    print("  Dr")
    print(_row("Opening Stock", fmt(trading.opening_stock), indent=1))
    print(_row("Purchases", fmt(trading.purchases), indent=1))
    print(_row("Less: Purchase Returns", fmt(trading.purchase_returns), indent=1))
    _print_section(trading.direct_expenses, fmt)
    if trading.gross_profit:
        print(_row("Gross Profit c/d", fmt(trading.gross_profit), indent=1))
    print(_sep())
    print(_row("Total", fmt(trading.total)))
    print("  Cr")
    print(_row("Sales", fmt(trading.sales), indent=1))
    print(_row("Less: Sales Returns", fmt(trading.sales_returns), indent=1))
    _print_section(trading.direct_incomes, fmt)
    print(_row("Closing Stock", fmt(trading.closing_stock), indent=1))
    if trading.gross_loss:
        print(_row("Gross Loss c/d", fmt(trading.gross_loss), indent=1))
    print(_sep())
    print(_row("Total", fmt(trading.total)))
    print()


def print_profit_and_loss(pl, fmt) -> None:
    print(_hdr("PROFIT & LOSS ACCOUNT", pl.metadata.entity_name))
    print("  Dr")
    if pl.gross_loss:
        print(_row("Gross Loss b/d", fmt(pl.gross_loss), indent=1))
    _print_section(pl.indirect_expenses, fmt)
    if pl.net_profit:
        print(_row("Net Profit", fmt(pl.net_profit), indent=1))
    print(_sep())
    print(_row("Total", fmt(pl.total)))
    print("  Cr")
    if pl.gross_profit:
        print(_row("Gross Profit b/d", fmt(pl.gross_profit), indent=1))
    _print_section(pl.indirect_incomes, fmt)
    if pl.net_loss:
        print(_row("Net Loss", fmt(pl.net_loss), indent=1))
    print(_sep())
    print(_row("Total", fmt(pl.total)))
    print()


def print_balance_sheet(bs, fmt) -> None:
    print(_hdr("BALANCE SHEET", bs.metadata.entity_name))
    print("  LIABILITIES & CAPITAL")
    print(_row("Capital", fmt(bs.capital), indent=1))
    if bs.net_profit:
        print(_row("Add: Net Profit", fmt(bs.net_profit), indent=1))
    if bs.net_loss:
        print(_row("Less: Net Loss", fmt(bs.net_loss), indent=1))
    if bs.drawings:
        print(_row("Less: Drawings", fmt(bs.drawings), indent=1))
    _print_section(bs.creditors, fmt)
    _print_section(bs.other_liabilities, fmt)
    if bs.bank_overdraft:
        print(_row("Bank Overdraft", fmt(bs.bank_overdraft), indent=1))
    if bs.cash_shortfall:
        print(_row("Cash Shortfall", fmt(bs.cash_shortfall), indent=1))
    print(_sep())
    print(_row("Total", fmt(bs.total_liabilities_and_equity)))
    print()
    print("  ASSETS")
    print(_row("Cash in Hand", fmt(bs.cash), indent=1))
    print(_row("Cash at Bank", fmt(bs.bank), indent=1))
    _print_section(bs.fixed_assets, fmt)
    _print_section(bs.debtors, fmt)
    _print_section(bs.other_assets, fmt)
    print(_row("Closing Stock", fmt(bs.closing_stock), indent=1))
    print(_sep())
    print(_row("Total", fmt(bs.total_assets)))
    print()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Print the final accounts of an exported set of books.")
    parser.add_argument("path", type=Path, help="JSON export to read")
    parser.add_argument("--entity", default="Books", help="name printed in report headers")
    parser.add_argument("--brackets", action="store_true", help="show negatives as (1,234.00)")
    args = parser.parse_args(argv)

    logging.disable(logging.CRITICAL)

    from books_config.schema import NegativeFormat
    from books_services import LedgerSystem

    try:
        text = args.path.read_text(encoding="utf-8")
    except OSError as exc:
        print(f"  ERROR: Could not read {args.path}: {exc}", file=sys.stderr)
        return 1

    books = LedgerSystem(entity_name=args.entity)
    result = books.import_data(text)
    if not result:
        for error in result.errors:
            print(f"  ERROR: {error}", file=sys.stderr)
        return 1
    if args.brackets:
        books.set_negative_format(NegativeFormat.BRACKETS)

    fmt = books.format_amount
    tb = books.trial_balance()
    final = books.final_accounts()

    print_trial_balance(tb, fmt)
    print_trading_account(final.trading, fmt)
    print_profit_and_loss(final.profit_and_loss, fmt)
    print_balance_sheet(final.balance_sheet, fmt)

    print("=" * W)
    print("  VERIFICATION SUMMARY".center(W))
    print("=" * W)
    print(_status("Trial Balance balanced", tb.is_balanced))
    print(_status("Balance Sheet balanced", final.balance_sheet.is_balanced))
    print(_status("No wrong-side balances", not tb.anomalies))
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
