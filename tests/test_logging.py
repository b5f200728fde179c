"""
Tests for the structured log output of the books.

Tests cover:
- The JSON envelope: UTC timestamp, level, logger, message
- Payload encoding of Decimals, dates and enums
- Events emitted by postings, refusals, costing fallbacks and imports
- LogContext binding and configure_logging idempotence
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from io import StringIO

import pytest

from books_engines.valuation import CostMethod, get_costing_strategy
from books_kernel.exceptions import AccountReferencedError
from books_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from tests.conftest import opening_balance, payment, sale


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def stream() -> StringIO:
    """Books logs at DEBUG, one JSON object per line."""
    out = StringIO()
    configure_logging(handler=logging.StreamHandler(out), level=logging.DEBUG)
    return out


def _records(stream: StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


def _events(stream: StringIO, message: str) -> list[dict]:
    return [r for r in _records(stream) if r["message"] == message]


# ---------------------------------------------------------------------------
# StructuredFormatter
# ---------------------------------------------------------------------------


class TestEnvelope:

    def test_mandatory_fields(self, stream):
        get_logger("services.ledger_system").info("ledger_ready")

        (record,) = _records(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "ledger_ready"
        assert record["logger"] == "books_kernel.services.ledger_system"

    def test_timestamp_is_utc(self, stream):
        get_logger("test").info("tick")
        (record,) = _records(stream)
        assert datetime.fromisoformat(record["ts"]).utcoffset().total_seconds() == 0

    def test_decimal_date_and_enum_payloads(self, stream):
        get_logger("test").info("costed", extra={
            "amount": Decimal("85.00"),
            "posting_date": date(2024, 4, 1),
            "cost_method": CostMethod.LIFO,
        })
        (record,) = _records(stream)
        assert record["amount"] == "85.00"
        assert record["posting_date"] == "2024-04-01"
        assert record["cost_method"] == "LIFO"

    def test_books_exception_fields(self, stream):
        try:
            raise AccountReferencedError("acct-1", 4)
        except AccountReferencedError:
            get_logger("test").error("delete_failed", exc_info=True)

        (record,) = _records(stream)
        assert record["exc_code"] == "ACCOUNT_REFERENCED"
        assert record["exc_account_id"] == "acct-1"
        assert record["exc_line_count"] == 4
        assert "traceback" in record

    def test_formatter_on_plain_handler(self):
        out = StringIO()
        handler = logging.StreamHandler(out)
        handler.setFormatter(StructuredFormatter())
        record = logging.LogRecord("books_kernel.x", logging.WARNING, "", 0, "plain", (), None)
        handler.emit(record)
        assert json.loads(out.getvalue())["level"] == "WARNING"


# ---------------------------------------------------------------------------
# Events from the books
# ---------------------------------------------------------------------------


class TestBooksEvents:

    def test_posting_committed_carries_document_id(self, books, stream):
        doc = opening_balance(cash="1000")
        books.post_cash_book_entry(doc)

        (record,) = _events(stream, "posting_committed")
        assert record["document_type"] == "cash_book"
        assert record["document_id"] == doc.id
        assert record["auto_created_accounts"] == []

    def test_auto_created_account_named(self, books, stream):
        books.post_cash_book_entry(payment("Electricity A/c", cash="40"))
        (record,) = _events(stream, "posting_committed")
        assert record["auto_created_accounts"] == ["Electricity A/c"]

    def test_refused_sale_logs_error_codes(self, books, stream):
        books.post_subsidiary_entry(sale("Ramesh", [("Widget", "1", "10")]))

        (record,) = _events(stream, "posting_rejected")
        assert record["level"] == "WARNING"
        assert record["error_codes"] == ["INSUFFICIENT_STOCK"]
        assert _events(stream, "posting_committed") == []

    def test_issue_cost_fallback_used(self, stream):
        costing = get_costing_strategy(CostMethod.FIFO).cost_issue(
            item_id="item-1", transactions=[], quantity=Decimal("3"), last_purchase_rate=Decimal("5"),
        )

        assert costing.cost == Decimal("15.00")
        (record,) = _events(stream, "issue_cost_fallback_used")
        assert record["level"] == "WARNING"
        assert record["shortfall_quantity"] == "3"
        assert record["fallback_rate"] == "5"

    def test_import_rejected(self, books, stream):
        books.import_data("{not json")
        (record,) = _events(stream, "import_rejected")
        assert record["level"] == "WARNING"

    def test_context_cleared_after_posting(self, books, stream):
        books.post_cash_book_entry(opening_balance(cash="10"))
        assert "document_id" not in LogContext.get_all()


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_bind_nests_and_restores(self):
        LogContext.set(document_id="outer")
        with LogContext.bind(document_id="inner", item_id="widget"):
            assert LogContext.get_all() == {"document_id": "inner", "item_id": "widget"}
        assert LogContext.get_all() == {"document_id": "outer"}

    def test_bound_fields_reach_the_record(self, stream):
        with LogContext.bind(entry_id="e-1", actor_id="clerk"):
            get_logger("test").info("inside")
        get_logger("test").info("outside")

        inside, outside = _records(stream)
        assert inside["entry_id"] == "e-1"
        assert inside["actor_id"] == "clerk"
        assert "entry_id" not in outside

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_idempotent(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        configure_logging(handler=logging.StreamHandler(StringIO()))
        assert len(logging.getLogger("books_kernel").handlers) == 1

    def test_default_level_drops_debug(self):
        out = StringIO()
        configure_logging(handler=logging.StreamHandler(out))
        get_logger("test").debug("hidden")
        get_logger("test").info("shown")
        assert [r["message"] for r in _records(out)] == ["shown"]
