"""
Books Kernel - double-entry bookkeeping core

An append-only, in-memory bookkeeping kernel with:
- A chart of accounts with type/classification compatibility
- Balanced journal entries (debits == credits within one paisa)
- Balances derived by replaying the journal, never cached as state
"""

__version__ = "0.1.0"
