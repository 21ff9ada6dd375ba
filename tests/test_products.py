"""Tests for product and category profitability analyses."""

from decimal import Decimal

import pytest

from sales_insights.analyses.products import (
    MarginBand,
    category_profitability,
    classify_margin,
    product_affinity,
    product_margin_bands,
    top_products_by_profit,
)
from sales_insights.foundation.sales_fact import SalesFactBuilder


def _line(order_id, product_id, name, category, revenue, cost):
    return {
        "order_id": order_id,
        "order_date": "2024-02-01",
        "customer_id": "C1",
        "product_id": product_id,
        "product_name": name,
        "category_name": category,
        "net_revenue": revenue,
        "total_cost": cost,
    }


@pytest.fixture
def facts():
    return SalesFactBuilder().build(
        [
            _line("O1", "P1", "Desk", "Furniture", "1000", "600"),
            _line("O1", "P2", "Lamp", "Furniture", "200", "190"),
            _line("O2", "P1", "Desk", "Furniture", "1000", "600"),
            _line("O2", "P3", "Pen", "Office Supplies", "100", "40"),
            _line("O3", "P4", "Sample", "Office Supplies", "0", "5"),
        ]
    )


class TestTopProducts:
    """Test top products by profit."""

    def test_ranked_by_profit(self, facts):
        rows = top_products_by_profit(facts)
        assert [r.product_id for r in rows] == ["P1", "P3", "P2", "P4"]
        desk = rows[0]
        assert desk.revenue == Decimal("2000.00")
        assert desk.profit == Decimal("800.00")
        assert desk.margin_pct == Decimal("40.00")

    def test_limit(self, facts):
        assert len(top_products_by_profit(facts, limit=2)) == 2
        assert len(top_products_by_profit(facts, limit=None)) == 4

    def test_margin_none_without_revenue(self, facts):
        sample = top_products_by_profit(facts)[-1]
        assert sample.product_id == "P4"
        assert sample.margin_pct is None


def test_category_profitability(facts):
    rows = category_profitability(facts)
    assert [r.category_name for r in rows] == ["Furniture", "Office Supplies"]
    furniture = rows[0]
    assert furniture.revenue == Decimal("2200.00")
    assert furniture.cost == Decimal("1390.00")
    assert furniture.profit == Decimal("810.00")
    assert rows[1].profit == Decimal("55.00")


class TestMarginBands:
    """Test margin band classification."""

    @pytest.mark.parametrize(
        "revenue,profit,expected",
        [
            ("0", "0", MarginBand.NO_SALES),
            ("0", "-10", MarginBand.NO_SALES),
            ("1000", "50", MarginBand.LOW),
            ("1000", "-50", MarginBand.LOW),
            ("1000", "100", MarginBand.MID),
            ("1000", "200", MarginBand.MID),
            ("1000", "300", MarginBand.HIGH),
            ("1000", "400", MarginBand.HIGH),
        ],
    )
    def test_classify_margin(self, revenue, profit, expected):
        assert classify_margin(Decimal(revenue), Decimal(profit)) is expected

    def test_product_margin_bands(self, facts):
        bands = {r.product_id: r.margin_band for r in product_margin_bands(facts)}
        assert bands == {
            "P1": "High Margin",
            "P2": "Low Margin",
            "P3": "High Margin",
            "P4": "No Sales",
        }

    def test_custom_thresholds(self, facts):
        bands = {
            r.product_id: r.margin_band
            for r in product_margin_bands(facts, low_threshold=0.05, high_threshold=0.5)
        }
        assert bands["P1"] == "Mid Margin"
        assert bands["P2"] == "Mid Margin"
        assert bands["P3"] == "High Margin"

    def test_inverted_thresholds_raise(self, facts):
        with pytest.raises(ValueError, match="cannot exceed"):
            product_margin_bands(facts, low_threshold=Decimal("0.4"), high_threshold=Decimal("0.2"))


class TestProductAffinity:
    """Test product pairs bought together."""

    def test_pair_counts(self):
        facts = SalesFactBuilder().build(
            [
                {"order_id": o, "customer_id": "C1", "product_id": p, "product_name": n}
                for o, p, n in [
                    ("O1", "P1", "Apple"),
                    ("O1", "P2", "Banana"),
                    ("O1", "P3", "Cherry"),
                    ("O2", "P2", "Banana"),
                    ("O2", "P1", "Apple"),
                    ("O2", "P1", "Apple"),
                    ("O3", "P3", "Cherry"),
                ]
            ]
        )
        pairs = product_affinity(facts)
        assert [(p.product_a, p.product_b, p.together_orders) for p in pairs] == [
            ("Apple", "Banana", 2),
            ("Apple", "Cherry", 1),
            ("Banana", "Cherry", 1),
        ]
        assert len(product_affinity(facts, limit=1)) == 1

    def test_single_product_orders_have_no_pairs(self):
        facts = SalesFactBuilder().build(
            [{"order_id": "O1", "customer_id": "C1", "product_id": "P1"}]
        )
        assert product_affinity(facts) == []
