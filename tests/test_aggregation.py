"""Tests for fact aggregation and order collapsing."""

import logging
from datetime import date
from decimal import Decimal

from sales_insights.foundation.aggregation import (
    GroupingKey,
    aggregate_facts,
    aggregate_orders,
    safe_percentage,
)
from sales_insights.foundation.sales_fact import SalesFactBuilder


def _facts():
    return SalesFactBuilder().build(
        [
            {
                "order_id": "O1",
                "order_date": "2024-01-05",
                "customer_id": "C1",
                "product_id": "P1",
                "product_name": "Desk",
                "category_name": "Furniture",
                "quantity": 1,
                "unit_price": 200,
                "unit_cost": 120,
            },
            {
                "order_id": "O1",
                "order_date": "2024-01-05",
                "customer_id": "C1",
                "product_id": "P2",
                "product_name": "Lamp",
                "category_name": "Furniture",
                "quantity": 2,
                "unit_price": 25,
                "discount_rate": "0.20",
                "unit_cost": 10,
            },
            {
                "order_id": "O2",
                "order_date": "2024-02-11",
                "customer_id": "C2",
                "product_id": "P3",
                "product_name": "Pen",
                "category_name": "Office Supplies",
                "quantity": 10,
                "unit_price": 2,
                "unit_cost": 1,
            },
            {
                "order_id": "O3",
                "order_date": None,
                "customer_id": "C2",
                "product_id": "P3",
                "product_name": "Pen",
                "category_name": "Office Supplies",
                "quantity": 5,
                "unit_price": 2,
                "unit_cost": 1,
            },
        ]
    )


class TestSafePercentage:
    """Test percentage helper."""

    def test_rounds_half_up(self):
        assert safe_percentage(Decimal("1"), Decimal("8")) == Decimal("12.50")
        assert safe_percentage(Decimal("1"), Decimal("3"), places=1) == Decimal("33.3")

    def test_zero_denominator_gives_none(self):
        assert safe_percentage(Decimal("5"), Decimal("0")) is None


class TestAggregateFacts:
    """Test grouping facts into totals."""

    def test_monthly_revenue_identity(self):
        """Group revenues add up to the revenue of the dated facts."""
        facts = _facts()
        groups = aggregate_facts(facts, GroupingKey.MONTH)
        dated_revenue = sum(f.net_revenue for f in facts if f.order_date is not None)
        assert sum(g.revenue for g in groups) == dated_revenue
        assert [g.key for g in groups] == [(date(2024, 1, 1),), (date(2024, 2, 1),)]

    def test_undated_facts_are_skipped_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="sales_insights.foundation.aggregation"):
            groups = aggregate_facts(_facts(), GroupingKey.MONTH)
        assert sum(g.line_count for g in groups) == 3
        assert "Skipped 1 sales facts" in caplog.text

    def test_product_totals(self):
        groups = {g.key[0]: g for g in aggregate_facts(_facts(), GroupingKey.PRODUCT)}
        pen = groups["P3"]
        assert pen.key == ("P3", "Pen", "Office Supplies")
        assert pen.quantity == 15
        assert pen.revenue == Decimal("30.00")
        assert pen.profit == Decimal("15.00")
        assert pen.order_count == 2
        assert pen.margin_pct == Decimal("50.00")

    def test_discount_amount(self):
        groups = aggregate_facts(_facts(), GroupingKey.ORDER)
        order_one = groups[0]
        assert order_one.key == ("O1",)
        assert order_one.gross_amount == Decimal("250")
        assert order_one.discount_amount == Decimal("10.00")

    def test_margin_is_none_without_revenue(self):
        facts = SalesFactBuilder().build(
            [{"order_id": "O1", "customer_id": "C1", "product_id": "P1", "unit_price": 0}]
        )
        (group,) = aggregate_facts(facts, GroupingKey.PRODUCT)
        assert group.revenue == Decimal("0")
        assert group.margin_pct is None

    def test_callable_key(self):
        groups = aggregate_facts(_facts(), lambda f: (f.customer_id,))
        assert [g.key for g in groups] == [("C1",), ("C2",)]
        assert groups[1].order_count == 2

    def test_empty_input(self):
        assert aggregate_facts([], GroupingKey.CATEGORY) == []


class TestAggregateOrders:
    """Test collapsing lines into orders."""

    def test_one_record_per_order(self):
        orders = {o.order_id: o for o in aggregate_orders(_facts())}
        assert set(orders) == {"O1", "O2", "O3"}
        assert orders["O1"].items == 3
        assert orders["O1"].distinct_products == 2
        assert orders["O1"].revenue == Decimal("240.00")
        assert orders["O3"].order_date is None

    def test_sorted_by_customer_then_date(self):
        orders = aggregate_orders(_facts())
        assert [o.order_id for o in orders] == ["O1", "O2", "O3"]
