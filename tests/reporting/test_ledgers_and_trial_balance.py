"""
Tests for account ledgers and the trial balance.

Tests cover:
- Ledger particulars ("To"/"By", joined counter accounts, self entries)
- Running balance and Dr/Cr/Nil balance side
- Trial balance totals, ordering, anomalies and the strict tolerance
- Reports are pure folds: equal state, equal report
"""

from datetime import date
from decimal import Decimal

from books_kernel.models.account import Account, AccountClassification, AccountType
from books_kernel.models.journal import JournalEntry, JournalLine, LineSide
from books_modules.reporting import (
    BalanceSide,
    ReportMetadata,
    ReportType,
    build_account_ledger,
    build_trial_balance,
    render_to_dict,
)
from books_modules.reporting.statements import SELF_PARTICULARS, is_wrong_side
from tests.conftest import opening_balance, payment, purchase, receipt, sale


def _trade(books):
    """Opening capital, two purchases, a sale, rent paid and the debtor settled."""
    books.post_cash_book_entry(opening_balance(cash="1000", bank="500", on=date(2024, 4, 1)))
    books.post_subsidiary_entry(purchase("Suresh", [("Widget", "10", "5")], on=date(2024, 5, 1)))
    books.post_subsidiary_entry(purchase("Suresh", [("Widget", "10", "7")], on=date(2024, 5, 2)))
    books.post_subsidiary_entry(sale("Ramesh", [("Widget", "15", "10")], on=date(2024, 5, 3)))
    books.post_cash_book_entry(payment("Rent A/c", cash="100", on=date(2024, 5, 10)))
    books.post_cash_book_entry(receipt("Ramesh", bank="150", on=date(2024, 5, 20)))


def _metadata():
    return ReportMetadata(
        report_type=ReportType.TRIAL_BALANCE, entity_name="Test", journal_version=0, entry_count=0,
    )


def _account(name, account_type, classification, code="1500"):
    return Account(id=name.lower(), code=code, name=name, account_type=account_type, classification=classification)


class TestAccountLedger:

    def test_particulars_name_the_other_side(self, books):
        _trade(books)
        capital = books.account_ledger(books.get_account_by_name("Capital A/c").id)
        cash = books.account_ledger(books.get_account_by_name("Cash A/c").id)

        assert [p.particulars for p in capital.postings] == ["By Cash A/c & Bank A/c"]
        assert [p.particulars for p in cash.postings] == ["To Capital A/c", "By Rent A/c"]

    def test_running_balance_and_side(self, books):
        _trade(books)
        cash = books.account_ledger(books.get_account_by_name("Cash A/c").id)
        capital = books.account_ledger(books.get_account_by_name("Capital A/c").id)
        debtor = books.account_ledger(books.get_account_by_name("Ramesh").id)

        assert [p.running_balance for p in cash.postings] == [Decimal("1000.00"), Decimal("900.00")]
        assert cash.balance_side == BalanceSide.DEBIT
        assert capital.balance_side == BalanceSide.CREDIT
        assert debtor.total_debit == debtor.total_credit == Decimal("150.00")
        assert debtor.balance_side == BalanceSide.NIL

    def test_one_sided_entry_reads_as_self(self):
        account = _account("Suspense", AccountType.ASSET, AccountClassification.CURRENT_ASSET)
        entry = JournalEntry(
            id="e1",
            date=date(2024, 5, 1),
            narration="Adjustment",
            lines=(JournalLine("l1", account.id, account.name, account.code, LineSide.DEBIT, Decimal("5")),),
            transaction_id="TXN-00000001",
        )
        ledger = build_account_ledger(account, [entry], Decimal("0.001"))
        assert ledger.postings[0].particulars == "To " + SELF_PARTICULARS

    def test_ledgers_cover_accounts_with_postings(self, books):
        _trade(books)
        names = {ledger.account_name for ledger in books.ledgers()}
        assert names == {
            "Cash A/c", "Bank A/c", "Capital A/c", "Sales A/c", "Purchase A/c",
            "Suresh", "Ramesh", "Rent A/c",
        }


class TestTrialBalance:

    def test_totals_and_lines(self, books):
        _trade(books)
        report = books.trial_balance()

        assert report.total_debits == Decimal("1770.00")
        assert report.total_credits == Decimal("1770.00")
        assert report.is_balanced
        assert [line.account_code for line in report.lines] == sorted(l.account_code for l in report.lines)
        # settled debtor drops out
        assert "Ramesh" not in {line.account_name for line in report.lines}

    def test_empty_books(self, books):
        report = books.trial_balance()
        assert report.lines == ()
        assert report.is_balanced

    def test_debtor_in_credit_is_an_anomaly(self, books):
        books.post_subsidiary_entry(sale("Ramesh", [("", "1", "100")]))
        books.post_cash_book_entry(receipt("Ramesh", cash="150"))

        (anomaly,) = books.trial_balance().anomalies
        assert anomaly.account_name == "Ramesh"
        assert anomaly.credit == Decimal("50.00")

    def test_return_accounts_never_flagged(self):
        sales_return = _account("Sales Return A/c", AccountType.EXPENSE, AccountClassification.DIRECT_EXPENSE)
        rent = _account("Rent A/c", AccountType.EXPENSE, AccountClassification.INDIRECT_EXPENSE)
        assert not is_wrong_side(sales_return, Decimal("-10"), Decimal("0.01"))
        assert is_wrong_side(rent, Decimal("-10"), Decimal("0.01"))

    def test_difference_of_one_paisa_is_unbalanced(self):
        cash = _account("Cash", AccountType.ASSET, AccountClassification.CURRENT_ASSET, "1001")
        capital = _account("Capital", AccountType.EQUITY, AccountClassification.OWNER_CAPITAL, "2001")
        balances = {cash.id: Decimal("100.01"), capital.id: Decimal("-100.00")}

        report = build_trial_balance([cash, capital], balances, _metadata(), Decimal("0.01"), Decimal("0.01"))
        assert report.difference == Decimal("0.01")
        assert not report.is_balanced


class TestPurity:

    def test_same_state_same_report(self, books):
        _trade(books)
        assert books.trial_balance() == books.trial_balance()
        assert books.final_accounts() == books.final_accounts()

    def test_metadata_tracks_journal_version(self, books):
        before = books.trial_balance().metadata
        books.post_cash_book_entry(opening_balance(cash="10"))
        after = books.trial_balance().metadata
        assert after.journal_version > before.journal_version
        assert after.entry_count == before.entry_count + 1

    def test_render_to_dict(self, books):
        _trade(books)
        rendered = render_to_dict(books.trial_balance())
        assert rendered["metadata"]["report_type"] == "trial_balance"
        assert rendered["total_debits"] == "1770.00"
        assert isinstance(rendered["lines"], list)
