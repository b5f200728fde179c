"""
Pure domain layer.

Value helpers, results, clocks and identifier factories with NO
dependencies on storage, clocks or I/O of their own.
"""

from books_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from books_kernel.domain.fiscal import FinancialYear, fiscal_year_bounds, fiscal_year_label
from books_kernel.domain.identity import (
    AccountCodeGenerator,
    IdFactory,
    SequentialIdFactory,
    UuidIdFactory,
)
from books_kernel.domain.results import PostingResult, ValidationError, ValidationResult
from books_kernel.domain.values import (
    BALANCE_TOLERANCE,
    DISPLAY_EPSILON,
    ZERO,
    decimal_sum,
    is_balanced,
    quantize_amount,
    quantize_rate,
    to_decimal,
)

__all__ = [
    "AccountCodeGenerator",
    "BALANCE_TOLERANCE",
    "Clock",
    "DISPLAY_EPSILON",
    "DeterministicClock",
    "FinancialYear",
    "IdFactory",
    "PostingResult",
    "SequentialIdFactory",
    "SystemClock",
    "UuidIdFactory",
    "ValidationError",
    "ValidationResult",
    "ZERO",
    "decimal_sum",
    "fiscal_year_bounds",
    "fiscal_year_label",
    "is_balanced",
    "quantize_amount",
    "quantize_rate",
    "to_decimal",
]
