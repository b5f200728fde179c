"""
Module: books_engines
Responsibility:
    Pure calculation engines: inventory issue costing and depreciation.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import books_kernel domain values and models.
    MUST NOT import books_services or books_modules.

Invariants enforced:
    - Engines never read the clock; dates arrive as parameters.
    - Decimal-only arithmetic.
    - Identical inputs always produce identical outputs.

Usage:
    from books_engines.valuation import CostMethod, get_costing_strategy
    from books_engines.depreciation import DepreciationMethod, compute_depreciation
"""

from books_engines.depreciation import AssetPosition, DepreciationMethod, compute_depreciation
from books_engines.valuation import CostMethod, IssueCosting, get_costing_strategy

__all__ = [
    "AssetPosition",
    "CostMethod",
    "DepreciationMethod",
    "IssueCosting",
    "compute_depreciation",
    "get_costing_strategy",
]
