"""
books_services -- Package init and public API.

Responsibility:
    Stateful orchestration over the kernel stores and the pure engines:
    the inventory ledger, the persisted-document codec and the
    ``LedgerSystem`` aggregate that owns everything.  This is the only
    layer that reads the wall clock.

Architecture position:
    Services -- stateful orchestration over engines + kernel + modules.

    Dependency direction (enforced by tests/architecture/test_layer_boundary.py):
        books_services/ -> books_modules/, books_engines/, books_kernel/  (allowed)
        books_kernel/   -> books_services/                                (FORBIDDEN)
        books_engines/  -> books_services/                                (FORBIDDEN)

Invariants enforced:
    - Single writer: every mutation of the books goes through LedgerSystem.

Failure modes:
    - ImportError at startup if a service's dependency graph is broken.
"""

from books_kernel.logging_config import get_logger

logger = get_logger("services")

from books_services.ledger_system import LedgerSystem
from books_services.serialization import (
    DOCUMENT_KEYS,
    BooksSnapshot,
    ImportResult,
    decode_snapshot,
    dumps_snapshot,
    encode_snapshot,
    loads_snapshot,
)
from books_services.valuation_service import InventoryLedger, StockRegisterLine

__all__ = [
    "DOCUMENT_KEYS",
    "BooksSnapshot",
    "ImportResult",
    "InventoryLedger",
    "LedgerSystem",
    "StockRegisterLine",
    "decode_snapshot",
    "dumps_snapshot",
    "encode_snapshot",
    "loads_snapshot",
]
