"""
Posting translators: business documents to balanced posting plans.

Each translator validates a document and maps it to exactly one journal
entry plus its stock movements.  The ledger system commits the plan.
"""

from books_modules.posting.base import (
    PlanBuilder,
    PostingContext,
    PostingPlan,
    PostingTranslator,
    TranslationResult,
)
from books_modules.posting.cash_book import CashBookTranslator
from books_modules.posting.depreciation import (
    DepreciationCharge,
    DepreciationTranslator,
    accumulated_depreciation,
    eligible_depreciation_assets,
)
from books_modules.posting.subsidiary_books import SubsidiaryBookTranslator

__all__ = [
    "CashBookTranslator",
    "DepreciationCharge",
    "DepreciationTranslator",
    "PlanBuilder",
    "PostingContext",
    "PostingPlan",
    "PostingTranslator",
    "SubsidiaryBookTranslator",
    "TranslationResult",
    "accumulated_depreciation",
    "eligible_depreciation_assets",
]
