"""Kernel stores: the chart of accounts and the journal."""

from books_kernel.services.account_registry import AccountRegistry
from books_kernel.services.journal_store import JournalStore

__all__ = ["AccountRegistry", "JournalStore"]
