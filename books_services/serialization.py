"""
books_services.serialization -- JSON persistence codec for the books.

Responsibility:
    Convert the complete state of a ``LedgerSystem`` (accounts, journal,
    documents, notes, stock log, inventory items, settings) to and from
    one JSON document with stable camelCase keys.

Architecture position:
    Services -- pure codec.  No file I/O here; callers read and write the
    text.  ``LedgerSystem.save/load/export_data/import_data`` are the
    entry points.

Invariants enforced:
    - Output is deterministic: the same state always produces the same
      string (insertion-ordered keys, no timestamps, no derived fields).
    - Import is all-or-nothing.  ``decode_snapshot`` validates every
      record and every cross-record rule before the caller touches a
      store:
        * account type / classification compatible, names and codes unique
        * every entry balanced, non-empty, non-negative, and referencing
          known accounts
        * stock movements reference known items and never drive an item's
          quantity below zero

Failure modes:
    - MalformedDataError (path + reason) from ``decode_snapshot``;
      ``LedgerSystem.import_data`` turns it into ``ImportResult.failure``.

Audit relevance:
    Amounts travel as JSON numbers.  Every amount is quantized to two
    places and every rate to six on the way in, so a round trip reproduces
    the stored Decimals exactly.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Mapping, Sequence, TypeVar

from books_config.schema import EngineSettings, NegativeFormat
from books_engines.valuation import CostMethod
from books_kernel.domain.fiscal import FinancialYear
from books_kernel.domain.values import ZERO, to_decimal
from books_kernel.exceptions import (
    BooksKernelError,
    MalformedDataError,
    UnbalancedEntryError,
)
from books_kernel.logging_config import get_logger
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
    InvoiceItem,
    SavedNote,
    SubsidiaryBookType,
    SubsidiaryEntry,
)
from books_kernel.models.inventory import InventoryItem, StockMovementType, StockTransaction
from books_kernel.models.journal import JournalEntry, JournalLine, LineSide

logger = get_logger("services.serialization")

T = TypeVar("T")

DOCUMENT_KEYS: tuple[str, ...] = (
    "accounts",
    "entries",
    "subsidiaryEntries",
    "cashBookEntries",
    "savedNotes",
    "stockTransactions",
    "inventoryItems",
    "inventoryMethod",
    "negativeFormat",
    "financialYear",
)


# =============================================================================
# Snapshot and result
# =============================================================================


@dataclass(frozen=True)
class BooksSnapshot:
    """Complete books state, in persisted order (journal most-recent-first)."""

    accounts: tuple[Account, ...]
    entries: tuple[JournalEntry, ...]
    subsidiary_entries: tuple[SubsidiaryEntry, ...] = ()
    cash_book_entries: tuple[CashBookEntry, ...] = ()
    saved_notes: tuple[SavedNote, ...] = ()
    stock_transactions: tuple[StockTransaction, ...] = ()
    inventory_items: tuple[InventoryItem, ...] = ()
    settings: EngineSettings = field(default_factory=EngineSettings)
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class ImportResult:
    """
    Outcome of an import.

    Guarantees:
        - ``success`` False means no store was touched.
        - ``bool(result) == result.success``
    """

    success: bool
    errors: tuple[str, ...] = ()
    metadata: dict[str, Any] | None = None

    @classmethod
    def ok(cls, metadata: dict[str, Any] | None = None) -> ImportResult:
        return cls(success=True, metadata=metadata)

    @classmethod
    def failure(cls, *errors: str) -> ImportResult:
        return cls(success=False, errors=tuple(errors))

    def __bool__(self) -> bool:
        return self.success


# =============================================================================
# Encoding
# =============================================================================


def _number(value: Decimal) -> int | float:
    """A Decimal as a JSON number: integral values as int."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _encode_account(account: Account) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": account.id,
        "code": account.code,
        "name": account.name,
        "type": account.account_type.value,
        "classification": account.classification.value,
    }
    if account.final_account_category is not None:
        record["finalAccountCategory"] = account.final_account_category.value
    if account.description is not None:
        record["description"] = account.description
    return record


def _encode_entry(entry: JournalEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "transactionId": entry.transaction_id,
        "date": entry.date.isoformat(),
        "narration": entry.narration,
        "lines": [
            {
                "id": line.id,
                "type": line.side.value,
                "accountId": line.account_id,
                "accountName": line.account_name,
                "code": line.code,
                "amount": _number(line.amount),
            }
            for line in entry.lines
        ],
        "isDepreciationEntry": entry.is_depreciation_entry,
    }


def _encode_subsidiary(entry: SubsidiaryEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "invoiceNumber": entry.invoice_number,
        "referenceId": entry.reference_id,
        "transactionId": entry.transaction_id,
        "date": entry.date.isoformat(),
        "bookType": entry.book_type.value,
        "partyName": entry.party_name,
        "items": [
            {
                "id": item.id,
                "description": item.description,
                "quantity": _number(item.quantity),
                "unit": item.unit,
                "rate": _number(item.rate),
                "amount": _number(item.amount),
            }
            for item in entry.items
        ],
        "tradeDiscountPercent": _number(entry.trade_discount_percent),
        "cashDiscountAmount": _number(entry.cash_discount_amount),
        "subTotal": _number(entry.sub_total),
        "discountAmount": _number(entry.discount_amount),
        "totalAmount": _number(entry.total_amount),
        "posted": entry.posted,
    }


def _encode_cash_book(entry: CashBookEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "date": entry.date.isoformat(),
        "type": entry.type.value,
        "accountId": entry.account_id,
        "accountName": entry.account_name,
        "particulars": entry.particulars,
        "cashAmount": _number(entry.cash_amount),
        "bankAmount": _number(entry.bank_amount),
        "discountAmount": _number(entry.discount_amount),
        "isContra": entry.is_contra,
        "contraDirection": entry.contra.value if entry.contra else None,
        "isOpeningBalance": entry.is_opening_balance,
        "posted": entry.posted,
    }


def _encode_note(note: SavedNote) -> dict[str, Any]:
    return {
        "id": note.id,
        "title": note.title,
        "content": note.content,
        "date": note.date.isoformat(),
    }


def _encode_stock(txn: StockTransaction) -> dict[str, Any]:
    return {
        "id": txn.id,
        "date": txn.date.isoformat(),
        "type": txn.type.value,
        "itemId": txn.item_id,
        "itemName": txn.item_name,
        "quantity": _number(txn.quantity),
        "rate": _number(txn.rate),
        "amount": _number(txn.amount),
        "refDocId": txn.ref_doc_id,
    }


def _encode_item(item: InventoryItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "unit": item.unit,
        "lastPurchaseRate": _number(item.last_purchase_rate),
    }


def encode_snapshot(snapshot: BooksSnapshot) -> dict[str, Any]:
    """The persisted document: plain JSON types, keys in fixed order."""
    document: dict[str, Any] = {
        "accounts": [_encode_account(a) for a in snapshot.accounts],
        "entries": [_encode_entry(e) for e in snapshot.entries],
        "subsidiaryEntries": [_encode_subsidiary(e) for e in snapshot.subsidiary_entries],
        "cashBookEntries": [_encode_cash_book(e) for e in snapshot.cash_book_entries],
        "savedNotes": [_encode_note(n) for n in snapshot.saved_notes],
        "stockTransactions": [_encode_stock(t) for t in snapshot.stock_transactions],
        "inventoryItems": [_encode_item(i) for i in snapshot.inventory_items],
        "inventoryMethod": snapshot.settings.inventory_method.value,
        "negativeFormat": snapshot.settings.negative_format.value,
        "financialYear": snapshot.settings.financial_year.value,
    }
    if snapshot.metadata is not None:
        document["_metadata"] = snapshot.metadata
    return document


def dumps_snapshot(snapshot: BooksSnapshot, *, indent: int | None = 2) -> str:
    return json.dumps(encode_snapshot(snapshot), indent=indent, ensure_ascii=False)


# =============================================================================
# Decoding
# =============================================================================


def _field(record: Mapping[str, Any], key: str, path: str) -> Any:
    if key not in record:
        raise MalformedDataError(f"{path}.{key}", "missing field")
    return record[key]


def _str(record: Mapping[str, Any], key: str, path: str, default: str | None = None) -> str:
    if default is None:
        value = _field(record, key, path)
    else:
        value = record.get(key)
        if value is None:
            return default
    if not isinstance(value, str):
        raise MalformedDataError(f"{path}.{key}", f"expected a string, got {type(value).__name__}")
    return value


def _decimal(record: Mapping[str, Any], key: str, path: str, default: Decimal | None = None) -> Decimal:
    if default is not None and record.get(key) is None:
        return default
    try:
        return to_decimal(_field(record, key, path))
    except ValueError as exc:
        raise MalformedDataError(f"{path}.{key}", str(exc)) from exc


def _date(record: Mapping[str, Any], key: str, path: str) -> date:
    """ISO date; a full ISO timestamp is cut to its date part."""
    text = _str(record, key, path)
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise MalformedDataError(f"{path}.{key}", f"not an ISO date: {text!r}") from exc


def _datetime(record: Mapping[str, Any], key: str, path: str) -> datetime:
    text = _str(record, key, path)
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise MalformedDataError(f"{path}.{key}", f"not an ISO timestamp: {text!r}") from exc


def _list(document: Mapping[str, Any], key: str, *, required: bool) -> list[Any]:
    if key not in document or document[key] is None:
        if required:
            raise MalformedDataError(key, "missing array")
        return []
    value = document[key]
    if not isinstance(value, list):
        raise MalformedDataError(key, f"expected an array, got {type(value).__name__}")
    return value


def _records(
    document: Mapping[str, Any],
    key: str,
    decode: Callable[[Mapping[str, Any], str], T],
    *,
    required: bool = False,
) -> tuple[T, ...]:
    """Decode every record of one array, wrapping record errors with their path."""
    decoded: list[T] = []
    for index, record in enumerate(_list(document, key, required=required)):
        path = f"{key}[{index}]"
        if not isinstance(record, Mapping):
            raise MalformedDataError(path, "expected an object")
        try:
            decoded.append(decode(record, path))
        except MalformedDataError:
            raise
        except (BooksKernelError, ValueError, TypeError) as exc:
            raise MalformedDataError(path, str(exc)) from exc
    return tuple(decoded)


def _decode_account(record: Mapping[str, Any], path: str) -> Account:
    category = record.get("finalAccountCategory")
    return Account(
        id=_str(record, "id", path),
        code=_str(record, "code", path),
        name=_str(record, "name", path).strip(),
        account_type=AccountType(_field(record, "type", path)),
        classification=AccountClassification(_field(record, "classification", path)),
        final_account_category=FinalAccountCategory(category) if category else None,
        description=record.get("description"),
    )


def _decode_line(record: Mapping[str, Any], path: str) -> JournalLine:
    return JournalLine(
        id=_str(record, "id", path),
        account_id=_str(record, "accountId", path),
        account_name=_str(record, "accountName", path, default=""),
        code=_str(record, "code", path, default=""),
        side=LineSide(_field(record, "type", path)),
        amount=_decimal(record, "amount", path),
    )


def _decode_entry(record: Mapping[str, Any], path: str) -> JournalEntry:
    lines = _field(record, "lines", path)
    if not isinstance(lines, list):
        raise MalformedDataError(f"{path}.lines", "expected an array")
    return JournalEntry(
        id=_str(record, "id", path),
        date=_date(record, "date", path),
        narration=_str(record, "narration", path, default=""),
        lines=tuple(_decode_line(line, f"{path}.lines[{i}]") for i, line in enumerate(lines)),
        transaction_id=_str(record, "transactionId", path, default=""),
        is_depreciation_entry=bool(record.get("isDepreciationEntry", False)),
    )


def _decode_invoice_item(record: Mapping[str, Any], path: str) -> InvoiceItem:
    return InvoiceItem(
        id=_str(record, "id", path),
        description=_str(record, "description", path, default=""),
        quantity=_decimal(record, "quantity", path),
        rate=_decimal(record, "rate", path),
        unit=_str(record, "unit", path, default="Pcs"),
        amount=_decimal(record, "amount", path) if record.get("amount") is not None else None,
    )


def _decode_subsidiary(record: Mapping[str, Any], path: str) -> SubsidiaryEntry:
    items = _field(record, "items", path)
    if not isinstance(items, list):
        raise MalformedDataError(f"{path}.items", "expected an array")
    return SubsidiaryEntry(
        id=_str(record, "id", path),
        invoice_number=_str(record, "invoiceNumber", path, default=""),
        date=_date(record, "date", path),
        book_type=SubsidiaryBookType(_field(record, "bookType", path)),
        party_name=_str(record, "partyName", path, default=""),
        items=tuple(_decode_invoice_item(item, f"{path}.items[{i}]") for i, item in enumerate(items)),
        trade_discount_percent=_decimal(record, "tradeDiscountPercent", path, default=ZERO),
        cash_discount_amount=_decimal(record, "cashDiscountAmount", path, default=ZERO),
        sub_total=_decimal(record, "subTotal", path, default=ZERO),
        discount_amount=_decimal(record, "discountAmount", path, default=ZERO),
        total_amount=_decimal(record, "totalAmount", path, default=ZERO),
        reference_id=record.get("referenceId"),
        transaction_id=_str(record, "transactionId", path, default=""),
        posted=bool(record.get("posted", False)),
    )


def _decode_cash_book(record: Mapping[str, Any], path: str) -> CashBookEntry:
    direction = record.get("contraDirection")
    if direction is None and record.get("isContra"):
        raise MalformedDataError(f"{path}.contraDirection", "contra entry without a direction")
    return CashBookEntry(
        id=_str(record, "id", path),
        date=_date(record, "date", path),
        type=CashBookEntryType(_field(record, "type", path)),
        particulars=_str(record, "particulars", path, default=""),
        cash_amount=_decimal(record, "cashAmount", path, default=ZERO),
        bank_amount=_decimal(record, "bankAmount", path, default=ZERO),
        discount_amount=_decimal(record, "discountAmount", path, default=ZERO),
        account_id=_str(record, "accountId", path, default=""),
        account_name=_str(record, "accountName", path, default=""),
        contra=ContraDirection(direction) if direction else None,
        is_opening_balance=bool(record.get("isOpeningBalance", False)),
        posted=bool(record.get("posted", False)),
    )


def _decode_note(record: Mapping[str, Any], path: str) -> SavedNote:
    return SavedNote(
        id=_str(record, "id", path),
        title=_str(record, "title", path, default=""),
        content=_str(record, "content", path, default=""),
        date=_datetime(record, "date", path),
    )


def _decode_stock(record: Mapping[str, Any], path: str) -> StockTransaction:
    return StockTransaction(
        id=_str(record, "id", path),
        date=_date(record, "date", path),
        type=StockMovementType(_field(record, "type", path)),
        item_id=_str(record, "itemId", path),
        item_name=_str(record, "itemName", path, default=""),
        quantity=_decimal(record, "quantity", path),
        rate=_decimal(record, "rate", path),
        amount=_decimal(record, "amount", path),
        ref_doc_id=record.get("refDocId"),
    )


def _decode_item(record: Mapping[str, Any], path: str) -> InventoryItem:
    return InventoryItem(
        id=_str(record, "id", path),
        name=_str(record, "name", path).strip(),
        unit=_str(record, "unit", path, default="Pcs"),
        last_purchase_rate=_decimal(record, "lastPurchaseRate", path, default=ZERO),
    )


def _decode_settings(document: Mapping[str, Any], current: EngineSettings) -> EngineSettings:
    """Settings keys absent from the document keep their current value."""
    changes: dict[str, Any] = {}
    for key, attr, enum in (
        ("inventoryMethod", "inventory_method", CostMethod),
        ("negativeFormat", "negative_format", NegativeFormat),
        ("financialYear", "financial_year", FinancialYear),
    ):
        if document.get(key) is None:
            continue
        try:
            changes[attr] = enum(document[key])
        except ValueError as exc:
            raise MalformedDataError(key, str(exc)) from exc
    return current.with_changes(**changes)


# =============================================================================
# Cross-record validation
# =============================================================================


def _check_accounts(accounts: Sequence[Account]) -> None:
    ids: set[str] = set()
    names: set[str] = set()
    codes: set[str] = set()
    for index, account in enumerate(accounts):
        path = f"accounts[{index}]"
        if account.id in ids:
            raise MalformedDataError(path, f"duplicate account id {account.id!r}")
        if account.name_key in names:
            raise MalformedDataError(path, f"duplicate account name {account.name!r}")
        if account.code in codes:
            raise MalformedDataError(path, f"duplicate account code {account.code!r}")
        ids.add(account.id)
        names.add(account.name_key)
        codes.add(account.code)


def _check_entries(entries: Sequence[JournalEntry], account_ids: set[str], tolerance: Decimal) -> None:
    for index, entry in enumerate(entries):
        path = f"entries[{index}]"
        if not entry.lines:
            raise MalformedDataError(path, "entry has no lines")
        for line_index, line in enumerate(entry.lines):
            if line.amount < ZERO:
                raise MalformedDataError(f"{path}.lines[{line_index}]", "negative amount")
            if line.account_id not in account_ids:
                raise MalformedDataError(
                    f"{path}.lines[{line_index}]", f"unknown account {line.account_id!r}",
                )
        if not entry.is_balanced(tolerance):
            error = UnbalancedEntryError(str(entry.total_debits), str(entry.total_credits))
            raise MalformedDataError(path, str(error)) from error


def _check_stock(
    items: Sequence[InventoryItem], transactions: Sequence[StockTransaction],
) -> None:
    """Replay movements date ascending, ties in recorded order, as posting checks them."""
    item_ids: set[str] = set()
    names: set[str] = set()
    for index, item in enumerate(items):
        if item.id in item_ids or item.name_key in names:
            raise MalformedDataError(f"inventoryItems[{index}]", f"duplicate item {item.name!r}")
        item_ids.add(item.id)
        names.add(item.name_key)

    on_hand: dict[str, Decimal] = {}
    ordered = sorted(enumerate(transactions), key=lambda pair: pair[1].date)
    for index, txn in ordered:
        path = f"stockTransactions[{index}]"
        if txn.item_id not in item_ids:
            raise MalformedDataError(path, f"unknown item {txn.item_id!r}")
        balance = on_hand.get(txn.item_id, ZERO) + txn.signed_quantity
        if balance < ZERO:
            raise MalformedDataError(path, f"issue drives {txn.item_name!r} below zero")
        on_hand[txn.item_id] = balance


def decode_snapshot(
    document: Any,
    *,
    current_settings: EngineSettings | None = None,
    tolerance: Decimal = Decimal("0.01"),
) -> BooksSnapshot:
    """
    Decode and validate a persisted document.

    ``accounts`` and ``entries`` are required arrays; the other collections
    default to empty.  Raises MalformedDataError on the first problem found.
    """
    if not isinstance(document, Mapping):
        raise MalformedDataError("$", "expected a JSON object")

    accounts = _records(document, "accounts", _decode_account, required=True)
    entries = _records(document, "entries", _decode_entry, required=True)
    items = _records(document, "inventoryItems", _decode_item)
    transactions = _records(document, "stockTransactions", _decode_stock)

    _check_accounts(accounts)
    _check_entries(entries, {a.id for a in accounts}, tolerance)
    _check_stock(items, transactions)

    metadata = document.get("_metadata")
    if metadata is not None and not isinstance(metadata, dict):
        raise MalformedDataError("_metadata", "expected an object")

    logger.debug("snapshot_decoded", extra={
        "account_count": len(accounts),
        "entry_count": len(entries),
        "item_count": len(items),
        "stock_transaction_count": len(transactions),
    })
    return BooksSnapshot(
        accounts=accounts,
        entries=entries,
        subsidiary_entries=_records(document, "subsidiaryEntries", _decode_subsidiary),
        cash_book_entries=_records(document, "cashBookEntries", _decode_cash_book),
        saved_notes=_records(document, "savedNotes", _decode_note),
        stock_transactions=transactions,
        inventory_items=items,
        settings=_decode_settings(document, current_settings or EngineSettings()),
        metadata=metadata,
    )


def loads_snapshot(text: str, **kwargs: Any) -> BooksSnapshot:
    """Parse JSON text (numbers as Decimal) and decode it."""
    try:
        document = json.loads(text, parse_float=Decimal)
    except json.JSONDecodeError as exc:
        raise MalformedDataError("$", f"invalid JSON: {exc.msg} (line {exc.lineno})") from exc
    return decode_snapshot(document, **kwargs)
