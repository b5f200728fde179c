"""
Pytest fixtures for the books test suite.

Provides:
- Structured logging configured once per session, LogContext cleared per test
- Deterministic clock, ids and account-code randomness
- A fresh LedgerSystem per test plus document builders
"""

import json
import logging
import random
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from books_kernel.domain.clock import DeterministicClock
from books_kernel.domain.identity import SequentialIdFactory
from books_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from books_kernel.models.documents import (
    CashBookEntry,
    CashBookEntryType,
    ContraDirection,
    InvoiceItem,
    SubsidiaryBookType,
    SubsidiaryEntry,
)
from books_services.ledger_system import LedgerSystem

# Inside the Indian fiscal year 2024-25 the deterministic clock sits in.
FY_DATE = date(2024, 6, 15)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture books_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, books):
            books.post_cash_book_entry(...)
            logs = captured_logs()
            assert any(r["message"] == "posting_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("books_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Determinism
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def ids() -> SequentialIdFactory:
    return SequentialIdFactory()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def books(clock, ids, rng) -> LedgerSystem:
    """A fresh set of books holding only the default chart of accounts."""
    return LedgerSystem(clock=clock, id_factory=ids, rng=rng)


def make_books(seed: int = 1234) -> LedgerSystem:
    """Build an independent deterministic LedgerSystem (for property tests)."""
    return LedgerSystem(
        clock=DeterministicClock(datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)),
        id_factory=SequentialIdFactory(),
        rng=random.Random(seed),
    )


# =============================================================================
# Document builders
# =============================================================================


_doc_counter = iter(range(1, 1_000_000))


def opening_balance(cash="0", bank="0", on: date = FY_DATE) -> CashBookEntry:
    return CashBookEntry(
        id=f"cb-{next(_doc_counter)}",
        date=on,
        type=CashBookEntryType.RECEIPT,
        particulars="Opening balance",
        cash_amount=Decimal(cash),
        bank_amount=Decimal(bank),
        is_opening_balance=True,
    )


def receipt(account_name: str, cash="0", bank="0", discount="0", on: date = FY_DATE) -> CashBookEntry:
    return CashBookEntry(
        id=f"cb-{next(_doc_counter)}",
        date=on,
        type=CashBookEntryType.RECEIPT,
        particulars=f"Received from {account_name}",
        cash_amount=Decimal(cash),
        bank_amount=Decimal(bank),
        discount_amount=Decimal(discount),
        account_name=account_name,
    )


def payment(account_name: str, cash="0", bank="0", discount="0", on: date = FY_DATE) -> CashBookEntry:
    return CashBookEntry(
        id=f"cb-{next(_doc_counter)}",
        date=on,
        type=CashBookEntryType.PAYMENT,
        particulars=f"Paid to {account_name}",
        cash_amount=Decimal(cash),
        bank_amount=Decimal(bank),
        discount_amount=Decimal(discount),
        account_name=account_name,
    )


def contra(direction: ContraDirection, amount, on: date = FY_DATE) -> CashBookEntry:
    if direction == ContraDirection.CASH_TO_BANK:
        cash, bank = Decimal("0"), Decimal(amount)
    else:
        cash, bank = Decimal(amount), Decimal("0")
    return CashBookEntry(
        id=f"cb-{next(_doc_counter)}",
        date=on,
        type=CashBookEntryType.PAYMENT,
        particulars="",
        cash_amount=cash,
        bank_amount=bank,
        contra=direction,
    )


def invoice(
    book_type: SubsidiaryBookType,
    party: str,
    lines: list[tuple[str, str, str]],
    *,
    on: date = FY_DATE,
    trade_discount="0",
    cash_discount="0",
    reference_id: str | None = None,
) -> SubsidiaryEntry:
    """``lines`` are (description, quantity, rate) triples."""
    n = next(_doc_counter)
    return SubsidiaryEntry.compose(
        id=f"doc-{n}",
        invoice_number=f"INV-{n:04d}",
        date=on,
        book_type=book_type,
        party_name=party,
        items=[
            InvoiceItem(id=f"line-{n}-{i}", description=d, quantity=Decimal(q), rate=Decimal(r))
            for i, (d, q, r) in enumerate(lines)
        ],
        trade_discount_percent=Decimal(trade_discount),
        cash_discount_amount=Decimal(cash_discount),
        reference_id=reference_id,
    )


def purchase(party: str, lines, **kwargs) -> SubsidiaryEntry:
    return invoice(SubsidiaryBookType.PURCHASE, party, lines, **kwargs)


def sale(party: str, lines, **kwargs) -> SubsidiaryEntry:
    return invoice(SubsidiaryBookType.SALES, party, lines, **kwargs)
