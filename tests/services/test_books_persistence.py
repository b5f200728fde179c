"""
Tests for export/import of the complete books as one JSON document.

Tests cover:
- Round trip through a fresh LedgerSystem reproduces state and reports
- Deterministic export
- All-or-nothing import: malformed documents change nothing
- Optional collections and settings keys may be absent
"""

import json
from datetime import date
from decimal import Decimal

import pytest

from books_engines.valuation import CostMethod
from books_kernel.exceptions import MalformedDataError
from books_services import DOCUMENT_KEYS, decode_snapshot
from tests.conftest import make_books, opening_balance, payment, purchase, sale


def _trade(books):
    books.post_cash_book_entry(opening_balance(cash="1000", bank="500", on=date(2024, 4, 1)))
    books.post_subsidiary_entry(purchase("Suresh", [("Widget", "10", "5")], on=date(2024, 5, 1)))
    books.post_subsidiary_entry(purchase("Suresh", [("Widget", "10", "7")], on=date(2024, 5, 2)))
    books.post_subsidiary_entry(sale("Ramesh", [("Widget", "15", "10")], on=date(2024, 5, 3)))
    books.post_cash_book_entry(payment("Rent A/c", cash="100", on=date(2024, 5, 10)))
    books.add_saved_note("Year end", "Count stock on 31 March")


@pytest.fixture
def traded(books):
    _trade(books)
    return books


class TestExport:

    def test_document_keys(self, traded):
        document = json.loads(traded.export_data())
        assert tuple(document) == DOCUMENT_KEYS

    def test_deterministic(self, traded):
        assert traded.export_data() == traded.export_data()

    def test_metadata_travels(self, traded):
        document = json.loads(traded.export_data({"exportedBy": "tests"}))
        assert document["_metadata"] == {"exportedBy": "tests"}

    def test_non_integral_amounts_stay_numbers(self, traded):
        document = traded.save()
        (issue,) = [t for t in document["stockTransactions"] if t["type"] == "ISSUE"]
        assert issue["amount"] == 85
        assert issue["rate"] == pytest.approx(5.666667)


class TestRoundTrip:

    def test_state_and_reports_survive(self, traded):
        text = traded.export_data()
        restored = make_books(seed=99)

        result = restored.import_data(text)

        assert result
        assert restored.accounts == traded.accounts
        assert restored.entries == traded.entries
        assert restored.stock_transactions == traded.stock_transactions
        assert restored.inventory_items == traded.inventory_items
        assert restored.saved_notes == traded.saved_notes
        assert restored.trial_balance().lines == traded.trial_balance().lines
        assert restored.balance_sheet().total_assets == traded.balance_sheet().total_assets
        assert restored.export_data() == text

    def test_load_from_decoded_document(self, traded):
        restored = make_books()
        assert restored.load(traded.save())
        assert restored.subsidiary_entries == traded.subsidiary_entries

    def test_import_returns_metadata(self, traded):
        restored = make_books()
        result = restored.import_data(traded.export_data({"source": "backup"}))
        assert result.metadata == {"source": "backup"}

    def test_settings_travel(self, traded):
        traded.set_inventory_method(CostMethod.LIFO)
        restored = make_books()
        restored.import_data(traded.export_data())
        assert restored.settings.inventory_method == CostMethod.LIFO


class TestTolerantImport:

    def test_missing_optional_collections(self, books):
        document = {"accounts": books.save()["accounts"], "entries": []}
        assert books.load(document)
        assert books.subsidiary_entries == ()
        assert books.saved_notes == ()
        assert books.inventory_items == ()

    def test_missing_settings_keep_current(self, books):
        books.set_inventory_method(CostMethod.WEIGHTED_AVERAGE)
        document = {"accounts": books.save()["accounts"], "entries": []}
        books.load(document)
        assert books.settings.inventory_method == CostMethod.WEIGHTED_AVERAGE

    def test_timestamp_dates_are_cut_to_the_day(self, traded):
        document = traded.save()
        document["entries"][0]["date"] = document["entries"][0]["date"] + "T10:30:00.000Z"
        restored = make_books()
        assert restored.load(document)
        assert restored.entries[0].date == traded.entries[0].date


class TestRejectedImport:
    """A rejected document leaves every store as it was."""

    def _assert_rejected(self, books, document):
        before = books.export_data()
        result = books.load(document)
        assert not result
        assert result.errors
        assert books.export_data() == before

    def test_not_json(self, traded):
        before = traded.export_data()
        result = traded.import_data("{not json")
        assert not result
        assert traded.export_data() == before

    def test_not_an_object(self, traded):
        self._assert_rejected(traded, ["accounts"])

    def test_missing_entries(self, traded):
        self._assert_rejected(traded, {"accounts": []})

    def test_unbalanced_entry(self, traded):
        document = traded.save()
        document["entries"][0]["lines"][0]["amount"] = 999
        self._assert_rejected(traded, document)

    def test_unknown_account(self, traded):
        document = traded.save()
        document["entries"][0]["lines"][0]["accountId"] = "ghost"
        self._assert_rejected(traded, document)

    def test_invalid_classification(self, traded):
        document = traded.save()
        document["accounts"][0]["classification"] = "SUNDRY_CREDITOR"
        self._assert_rejected(traded, document)

    def test_duplicate_account_name(self, traded):
        document = traded.save()
        document["accounts"][1]["name"] = document["accounts"][0]["name"].upper()
        self._assert_rejected(traded, document)

    def test_stock_driven_below_zero(self, traded):
        document = traded.save()
        for txn in document["stockTransactions"]:
            if txn["type"] == "ISSUE":
                txn["quantity"] = 50
        self._assert_rejected(traded, document)

    def test_rejection_logged_with_path(self, traded, captured_logs):
        document = traded.save()
        document["entries"][0]["lines"][0]["accountId"] = "ghost"
        traded.load(document)
        (record,) = [r for r in captured_logs() if r["message"] == "import_rejected"]
        assert record["path"] == "entries[0].lines[0]"


class TestDecoder:

    def test_error_names_the_record(self):
        document = {"accounts": [{"id": "a1", "code": "1001", "type": "ASSET"}], "entries": []}
        with pytest.raises(MalformedDataError) as exc_info:
            decode_snapshot(document)
        assert exc_info.value.path == "accounts[0].name"

    def test_amounts_parsed_as_decimal(self, traded):
        snapshot = decode_snapshot(json.loads(traded.export_data(), parse_float=Decimal))
        assert all(isinstance(line.amount, Decimal) for e in snapshot.entries for line in e.lines)
