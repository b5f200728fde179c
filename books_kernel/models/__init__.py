"""Immutable records: accounts, journal entries, stock movements, source documents."""

from books_kernel.models.account import (
    CODE_PREFIXES,
    VALID_CLASSIFICATIONS,
    Account,
    AccountClassification,
    AccountType,
    FinalAccountCategory,
    NormalBalance,
    is_compatible,
    normal_balance_for,
    normalize_name,
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

__all__ = [
    "Account",
    "AccountClassification",
    "AccountType",
    "CODE_PREFIXES",
    "CashBookEntry",
    "CashBookEntryType",
    "ContraDirection",
    "FinalAccountCategory",
    "InventoryItem",
    "InvoiceItem",
    "JournalEntry",
    "JournalLine",
    "LineSide",
    "NormalBalance",
    "SavedNote",
    "StockMovementType",
    "StockTransaction",
    "SubsidiaryBookType",
    "SubsidiaryEntry",
    "VALID_CLASSIFICATIONS",
    "is_compatible",
    "normal_balance_for",
    "normalize_name",
]
