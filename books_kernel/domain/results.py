"""
Results -- Validation and posting outcomes returned instead of raised.

Responsibility:
    Expected business-rule violations (unbalanced entry, insufficient stock,
    empty document) travel back to the caller as values.  ``PostingResult``
    carries either the stored journal entry or the reasons nothing was
    stored.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from books_kernel.models.inventory import StockTransaction
    from books_kernel.models.journal import JournalEntry


# Machine-readable codes for validation failures.
UNBALANCED_ENTRY = "UNBALANCED_ENTRY"
EMPTY_ENTRY = "EMPTY_ENTRY"
NEGATIVE_AMOUNT = "NEGATIVE_AMOUNT"
UNKNOWN_ACCOUNT = "UNKNOWN_ACCOUNT"
EMPTY_DOCUMENT = "EMPTY_DOCUMENT"
MISSING_PARTY = "MISSING_PARTY"
UNSUPPORTED_BOOK = "UNSUPPORTED_BOOK"
INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
INVALID_AMOUNT = "INVALID_AMOUNT"


@dataclass(frozen=True)
class ValidationError:
    """
    A single validation error.

    Contract:
        Carries a machine-readable code, human-readable message, optional
        field path, and optional details dict.

    Non-goals:
        - Does NOT raise exceptions -- it IS the error representation.
    """

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None


@dataclass(frozen=True)
class ValidationResult:
    """
    Result of validation.

    Guarantees:
        - errors is always a tuple (never None)
        - bool(result) == result.is_valid
    """

    is_valid: bool
    errors: tuple[ValidationError, ...] = field(default_factory=tuple)

    @classmethod
    def success(cls) -> ValidationResult:
        """Create a successful validation result."""
        return cls(is_valid=True, errors=())

    @classmethod
    def failure(cls, *errors: ValidationError) -> ValidationResult:
        """Create a failed validation result."""
        return cls(is_valid=False, errors=tuple(errors))

    def __bool__(self) -> bool:
        return self.is_valid


@dataclass(frozen=True)
class PostingResult:
    """
    Result of adding an entry or posting a business document.

    Contract:
        Either carries the stored entry (and the stock transactions appended
        with it) OR validation errors, never both.

    Guarantees:
        - Failure result always carries at least one ValidationError and
          means nothing was stored.
        - ``bool(result)`` is the success boolean.
    """

    entry: JournalEntry | None
    validation: ValidationResult
    stock_transactions: tuple[StockTransaction, ...] = ()

    @classmethod
    def success(
        cls,
        entry: JournalEntry,
        stock_transactions: tuple[StockTransaction, ...] = (),
    ) -> PostingResult:
        return cls(
            entry=entry,
            validation=ValidationResult.success(),
            stock_transactions=tuple(stock_transactions),
        )

    @classmethod
    def failure(cls, *errors: ValidationError) -> PostingResult:
        assert errors, "failure result needs at least one error"
        return cls(entry=None, validation=ValidationResult.failure(*errors))

    @property
    def is_valid(self) -> bool:
        return self.validation.is_valid and self.entry is not None

    @property
    def errors(self) -> tuple[ValidationError, ...]:
        return self.validation.errors

    @property
    def error_codes(self) -> tuple[str, ...]:
        return tuple(e.code for e in self.validation.errors)

    def __bool__(self) -> bool:
        return self.is_valid
