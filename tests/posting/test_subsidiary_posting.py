"""
Subsidiary book posting through the ledger system.

Tests cover:
- Journal shape of purchase, sales and both return books
- Trade and cash discounts
- Stock receipts and issues at cost (FIFO / LIFO / weighted average)
- Atomicity: a refused document leaves every store untouched
- Drafts, reference documents and document numbers
"""

from datetime import date
from decimal import Decimal

import pytest

from books_engines.valuation import CostMethod
from books_kernel.domain.results import (
    EMPTY_DOCUMENT,
    INSUFFICIENT_STOCK,
    MISSING_PARTY,
    UNSUPPORTED_BOOK,
)
from books_kernel.models.account import AccountClassification, AccountType
from books_kernel.models.documents import SubsidiaryBookType
from books_kernel.models.inventory import StockMovementType
from tests.conftest import invoice, make_books, purchase, sale


def _balance(books, name):
    return books.get_account_balance(books.get_account_by_name(name).id)


def _stock_in(books):
    books.post_subsidiary_entry(purchase("Suresh", [("Widget", "10", "5")], on=date(2024, 5, 1)))
    books.post_subsidiary_entry(purchase("Suresh", [("Widget", "10", "7")], on=date(2024, 5, 2)))


class TestJournalShape:

    def test_purchase(self, books):
        result = books.post_subsidiary_entry(purchase("Suresh", [("Widget", "10", "5")]))

        assert result
        assert _balance(books, "Purchase A/c") == Decimal("50.00")
        assert _balance(books, "Suresh") == Decimal("-50.00")
        creditor = books.get_account_by_name("Suresh")
        assert creditor.account_type == AccountType.LIABILITY
        assert creditor.classification == AccountClassification.SUNDRY_CREDITOR

    def test_sale(self, books):
        _stock_in(books)
        books.post_subsidiary_entry(sale("Ramesh", [("Widget", "5", "12")], on=date(2024, 5, 3)))

        debtor = books.get_account_by_name("Ramesh")
        assert debtor.classification == AccountClassification.SUNDRY_DEBTOR
        assert books.get_account_balance(debtor.id) == Decimal("60.00")
        assert _balance(books, "Sales A/c") == Decimal("-60.00")

    def test_discounts(self, books):
        doc = purchase(
            "Suresh", [("Widget", "10", "10")], trade_discount="10", cash_discount="5",
        )
        books.post_subsidiary_entry(doc)

        # trade discount reduces the purchase, cash discount is its own line
        assert _balance(books, "Purchase A/c") == Decimal("90.00")
        assert _balance(books, "Suresh") == Decimal("-85.00")
        assert _balance(books, "Discount Received A/c") == Decimal("-5.00")

    def test_sale_with_cash_discount(self, books):
        _stock_in(books)
        books.post_subsidiary_entry(
            sale("Ramesh", [("Widget", "10", "10")], cash_discount="4", on=date(2024, 5, 3)),
        )
        assert _balance(books, "Ramesh") == Decimal("96.00")
        assert _balance(books, "Discount Allowed A/c") == Decimal("4.00")
        assert _balance(books, "Sales A/c") == Decimal("-100.00")

    def test_purchase_return(self, books):
        _stock_in(books)
        doc = invoice(SubsidiaryBookType.PURCHASE_RETURN, "Suresh", [("Widget", "2", "5")], on=date(2024, 5, 3))
        books.post_subsidiary_entry(doc)

        assert _balance(books, "Purchase Return A/c") == Decimal("-10.00")
        assert _balance(books, "Suresh") == Decimal("-110.00")
        widget = books.inventory.find_item_by_name("Widget")
        assert books.get_current_stock_balance(widget.id) == Decimal("18")

    def test_sales_return_receives_at_invoice_rate(self, books):
        _stock_in(books)
        books.post_subsidiary_entry(sale("Ramesh", [("Widget", "5", "12")], on=date(2024, 5, 3)))
        doc = invoice(SubsidiaryBookType.SALES_RETURN, "Ramesh", [("Widget", "1", "12")], on=date(2024, 5, 4))
        result = books.post_subsidiary_entry(doc)

        assert _balance(books, "Sales Return A/c") == Decimal("12.00")
        assert _balance(books, "Ramesh") == Decimal("48.00")
        (movement,) = result.stock_transactions
        assert movement.type == StockMovementType.RECEIPT
        assert movement.rate == Decimal("12")


class TestStockCosting:

    def test_fifo_issue_cost(self, books):
        _stock_in(books)
        first = books.post_subsidiary_entry(sale("Ramesh", [("Widget", "15", "10")], on=date(2024, 5, 3)))
        second = books.post_subsidiary_entry(sale("Ramesh", [("Widget", "5", "10")], on=date(2024, 5, 4)))

        (issue,) = first.stock_transactions
        assert issue.amount == Decimal("85.00")
        assert issue.rate == Decimal("5.666667")
        assert second.stock_transactions[0].amount == Decimal("35.00")

    def test_lifo_issue_cost(self, books):
        books.set_inventory_method(CostMethod.LIFO)
        _stock_in(books)
        result = books.post_subsidiary_entry(sale("Ramesh", [("Widget", "15", "10")], on=date(2024, 5, 3)))
        assert result.stock_transactions[0].amount == Decimal("95.00")

    def test_weighted_average_issue_cost(self, books):
        books.set_inventory_method(CostMethod.WEIGHTED_AVERAGE)
        _stock_in(books)
        result = books.post_subsidiary_entry(sale("Ramesh", [("Widget", "15", "10")], on=date(2024, 5, 3)))
        assert result.stock_transactions[0].amount == Decimal("90.00")

    def test_two_lines_same_item_cost_consecutively(self, books):
        _stock_in(books)
        result = books.post_subsidiary_entry(
            sale("Ramesh", [("Widget", "8", "10"), ("widget", "4", "10")], on=date(2024, 5, 3)),
        )
        assert [t.amount for t in result.stock_transactions] == [Decimal("40.00"), Decimal("24.00")]

    def test_method_change_does_not_touch_posted_amounts(self, books):
        _stock_in(books)
        books.post_subsidiary_entry(sale("Ramesh", [("Widget", "15", "10")], on=date(2024, 5, 3)))
        before = books.stock_transactions
        books.set_inventory_method(CostMethod.LIFO)
        assert books.stock_transactions == before

    def test_last_purchase_rate_tracks_latest_purchase(self, books):
        _stock_in(books)
        widget = books.inventory.find_item_by_name("Widget")
        assert widget.last_purchase_rate == Decimal("7")

    def test_item_auto_created_on_purchase(self, books):
        books.post_subsidiary_entry(purchase("Suresh", [("Gadget", "3", "20")]))
        gadget = books.inventory.find_item_by_name("gadget")
        assert gadget is not None
        assert gadget.last_purchase_rate == Decimal("20")


class TestAtomicity:
    """A refused document changes nothing anywhere."""

    def _state(self, books):
        return (
            books.accounts,
            books.entries,
            books.inventory_items,
            books.stock_transactions,
            books.subsidiary_entries,
        )

    def test_sale_beyond_stock(self, books):
        _stock_in(books)
        before = self._state(books)
        result = books.post_subsidiary_entry(sale("New Customer", [("Widget", "21", "10")]))

        assert INSUFFICIENT_STOCK in result.error_codes
        assert self._state(books) == before
        assert books.get_account_by_name("New Customer") is None

    def test_sale_of_unknown_item(self, books):
        before = self._state(books)
        result = books.post_subsidiary_entry(sale("Ramesh", [("Mystery", "1", "10")]))
        assert INSUFFICIENT_STOCK in result.error_codes
        assert self._state(books) == before

    def test_lines_summed_per_item_before_checking(self, books):
        _stock_in(books)
        before = self._state(books)
        result = books.post_subsidiary_entry(
            sale("Ramesh", [("Widget", "15", "10"), ("Widget", "6", "10")], on=date(2024, 5, 3)),
        )
        assert INSUFFICIENT_STOCK in result.error_codes
        assert self._state(books) == before

    def test_sale_dated_before_its_purchase(self, books):
        books.post_subsidiary_entry(purchase("Suresh", [("Widget", "10", "5")], on=date(2024, 6, 10)))
        before = self._state(books)

        result = books.post_subsidiary_entry(sale("Ramesh", [("Widget", "5", "10")], on=date(2024, 6, 1)))

        assert result.error_codes == (INSUFFICIENT_STOCK,)
        (error,) = result.errors
        assert error.details == {"item": "Widget", "available": "0", "requested": "5"}
        assert self._state(books) == before

    def test_backdated_return_may_not_starve_a_later_sale(self, books):
        _stock_in(books)
        books.post_subsidiary_entry(sale("Ramesh", [("Widget", "15", "10")], on=date(2024, 5, 20)))
        before = self._state(books)

        result = books.post_subsidiary_entry(
            invoice(SubsidiaryBookType.PURCHASE_RETURN, "Suresh", [("Widget", "6", "5")], on=date(2024, 5, 10)),
        )

        assert result.error_codes == (INSUFFICIENT_STOCK,)
        assert result.errors[0].details["available"] == "5"
        assert self._state(books) == before

    def test_backdated_sale_within_stock_round_trips(self, books):
        _stock_in(books)
        books.post_subsidiary_entry(sale("Ramesh", [("Widget", "12", "10")], on=date(2024, 5, 30)))
        books.post_subsidiary_entry(purchase("Suresh", [("Widget", "4", "8")], on=date(2024, 6, 5)))
        earlier = books.post_subsidiary_entry(sale("Mahesh", [("Widget", "8", "10")], on=date(2024, 5, 3)))
        assert earlier

        restored = make_books(seed=5)
        assert restored.import_data(books.export_data())
        assert restored.stock_transactions == books.stock_transactions

    def test_cash_book_type_refused(self, books):
        result = books.post_subsidiary_entry(invoice(SubsidiaryBookType.CASH, "Ramesh", [("x", "1", "1")]))
        assert result.error_codes == (UNSUPPORTED_BOOK,)

    def test_missing_party(self, books):
        result = books.post_subsidiary_entry(purchase(" ", [("Widget", "1", "5")]))
        assert MISSING_PARTY in result.error_codes
        assert books.inventory_items == ()

    def test_empty_invoice(self, books):
        result = books.post_subsidiary_entry(purchase("Suresh", []))
        assert EMPTY_DOCUMENT in result.error_codes


class TestDocuments:

    def test_posted_document_is_kept_with_transaction_id(self, books):
        result = books.post_subsidiary_entry(purchase("Suresh", [("Widget", "1", "5")]))
        (stored,) = books.subsidiary_entries
        assert stored.posted
        assert stored.transaction_id == result.entry.transaction_id

    def test_posting_a_draft_replaces_it(self, books):
        draft = purchase("Suresh", [("Widget", "1", "5")])
        books.add_subsidiary_entry(draft)
        books.post_subsidiary_entry(draft)
        assert len(books.subsidiary_entries) == 1
        assert books.subsidiary_entries[0].posted

    def test_valid_reference_docs(self, books):
        books.add_subsidiary_entry(purchase("Suresh", [("Widget", "1", "5")]))
        posted = purchase("Suresh", [("Widget", "2", "5")])
        books.post_subsidiary_entry(posted)
        books.post_subsidiary_entry(sale("Ramesh", [("Widget", "1", "9")]))

        refs = books.get_valid_reference_docs(SubsidiaryBookType.PURCHASE_RETURN)
        assert [d.id for d in refs] == [posted.id]
        assert [d.book_type for d in books.get_valid_reference_docs(SubsidiaryBookType.SALES_RETURN)] == [
            SubsidiaryBookType.SALES,
        ]
        assert books.get_valid_reference_docs(SubsidiaryBookType.SALES) == []

    @pytest.mark.parametrize("book_type,prefix", [
        (SubsidiaryBookType.PURCHASE, "P-"),
        (SubsidiaryBookType.SALES, "S-"),
        (SubsidiaryBookType.SALES_RETURN, "S-"),
    ])
    def test_generate_document_id(self, books, book_type, prefix):
        doc_id = books.generate_document_id(book_type)
        assert doc_id.startswith(prefix)
        assert len(doc_id) == 6
        int(doc_id[2:], 16)
