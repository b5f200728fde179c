"""Tests for the depreciation engine: straight line and written down value."""

from decimal import Decimal

import pytest

from books_engines.depreciation import (
    AssetPosition,
    DepreciationMethod,
    compute_depreciation,
    depreciation_for,
)


class TestComputeDepreciation:

    def test_straight_line_on_cost(self):
        charge = compute_depreciation(
            cost=Decimal("10000"),
            current_balance=Decimal("8000"),
            method=DepreciationMethod.SLM,
            rate=Decimal("10"),
        )
        assert charge == Decimal("1000.00")

    def test_written_down_value_on_book_value(self):
        charge = compute_depreciation(
            cost=Decimal("10000"),
            current_balance=Decimal("8000"),
            method=DepreciationMethod.WDV,
            rate=Decimal("10"),
        )
        assert charge == Decimal("800.00")

    def test_capped_at_book_value(self):
        charge = compute_depreciation(
            cost=Decimal("10000"),
            current_balance=Decimal("300"),
            method=DepreciationMethod.SLM,
            rate=Decimal("20"),
        )
        assert charge == Decimal("300.00")

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError):
            compute_depreciation(
                cost=Decimal("100"),
                current_balance=Decimal("100"),
                method=DepreciationMethod.SLM,
                rate=Decimal("-1"),
            )


class TestAssetPosition:

    def test_cost_adds_back_accumulated_depreciation(self):
        position = AssetPosition(
            account_id="a1",
            account_name="Machinery",
            current_balance=Decimal("9000"),
            accumulated_depreciation=Decimal("1000"),
        )
        assert position.cost == Decimal("10000")
        assert depreciation_for(position, DepreciationMethod.SLM, Decimal("10")) == Decimal("1000.00")
        assert depreciation_for(position, DepreciationMethod.WDV, Decimal("10")) == Decimal("900.00")
