"""
books_engines.depreciation -- Straight-line and written-down-value charges.

Responsibility:
    Compute a period's depreciation charge for a tangible fixed asset, and
    the asset snapshot (cost, accumulated depreciation, book value) the
    charge is computed from.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The ledger system folds
    the journal into ``AssetPosition`` snapshots and hands them here.

Invariants enforced:
    - cost = current book value + accumulated depreciation.
    - SLM charges ``rate``% of cost; WDV charges ``rate``% of book value.
    - The charge never exceeds the current book value.

Failure modes:
    - ValueError for a negative rate.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from books_engines.tracer import traced_engine
from books_kernel.domain.values import ZERO, percent_of, quantize_amount, to_decimal


class DepreciationMethod(str, Enum):
    """Depreciation conventions."""

    SLM = "SLM"  # Straight line: fixed % of original cost
    WDV = "WDV"  # Written down value: fixed % of book value


@dataclass(frozen=True)
class AssetPosition:
    """A tangible asset's book value and the depreciation already charged."""

    account_id: str
    account_name: str
    current_balance: Decimal
    accumulated_depreciation: Decimal

    @property
    def cost(self) -> Decimal:
        return self.current_balance + self.accumulated_depreciation


@traced_engine("depreciation", "1.0", fingerprint_fields=("cost", "current_balance", "method", "rate"))
def compute_depreciation(
    *,
    cost: Decimal,
    current_balance: Decimal,
    method: DepreciationMethod,
    rate: Decimal,
) -> Decimal:
    """Charge for one period, capped at the current book value."""
    rate = to_decimal(rate)
    if rate < 0:
        raise ValueError(f"Depreciation rate cannot be negative, got {rate}")
    base = cost if DepreciationMethod(method) == DepreciationMethod.SLM else current_balance
    charge = quantize_amount(percent_of(base, rate))
    return max(ZERO, min(charge, quantize_amount(current_balance)))


def depreciation_for(position: AssetPosition, method: DepreciationMethod, rate: Decimal) -> Decimal:
    return compute_depreciation(
        cost=position.cost,
        current_balance=position.current_balance,
        method=method,
        rate=rate,
    )
