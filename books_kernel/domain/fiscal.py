"""Fiscal-year conventions: Indian (April-March) and calendar (January-December)."""

from __future__ import annotations

from datetime import date
from enum import Enum


class FinancialYear(str, Enum):
    """Which twelve months make up a financial year."""

    INDIAN = "INDIAN"
    CALENDAR = "CALENDAR"


def fiscal_year_bounds(financial_year: FinancialYear, reference: date) -> tuple[date, date]:
    """Return the inclusive (start, end) of the fiscal year containing ``reference``."""
    if financial_year == FinancialYear.CALENDAR:
        return date(reference.year, 1, 1), date(reference.year, 12, 31)
    start_year = reference.year if reference.month >= 4 else reference.year - 1
    return date(start_year, 4, 1), date(start_year + 1, 3, 31)


def fiscal_year_label(financial_year: FinancialYear, reference: date) -> str:
    """``2024-25`` for Indian years, ``2024`` for calendar years."""
    start, end = fiscal_year_bounds(financial_year, reference)
    if financial_year == FinancialYear.CALENDAR:
        return str(start.year)
    return f"{start.year}-{str(end.year)[-2:]}"
