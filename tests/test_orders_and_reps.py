"""Tests for order basket and sales rep analyses."""

from decimal import Decimal

from sales_insights.analyses.orders import order_value_summary
from sales_insights.analyses.reps import sales_rep_leaderboard
from sales_insights.foundation.sales_fact import SalesFactBuilder


class TestOrderValueSummary:
    """Test average order value and items per order."""

    def test_averages_over_orders(self):
        facts = SalesFactBuilder().build(
            [
                {"order_id": "O1", "customer_id": "C1", "product_id": "P1",
                 "quantity": 2, "net_revenue": "60"},
                {"order_id": "O1", "customer_id": "C1", "product_id": "P2",
                 "quantity": 1, "net_revenue": "40"},
                {"order_id": "O2", "customer_id": "C2", "product_id": "P1",
                 "quantity": 1, "net_revenue": "50"},
                {"order_id": "O3", "customer_id": "C2", "product_id": "P1",
                 "quantity": 1, "net_revenue": "0.01"},
            ]
        )
        summary = order_value_summary(facts)
        assert summary.orders_count == 3
        assert summary.avg_order_value == Decimal("50.00")
        assert summary.avg_items_per_order == Decimal("1.67")

    def test_no_orders(self):
        summary = order_value_summary([])
        assert summary.orders_count == 0
        assert summary.avg_order_value is None
        assert summary.avg_items_per_order is None


class TestSalesRepLeaderboard:
    """Test rep revenue and profit ranks."""

    def test_ties_share_rank(self):
        facts = SalesFactBuilder().build(
            [
                {"order_id": "O1", "customer_id": "C1", "product_id": "P1",
                 "employee_id": "E2", "sales_rep": "Bo",
                 "net_revenue": "100", "total_cost": "90"},
                {"order_id": "O2", "customer_id": "C1", "product_id": "P1",
                 "employee_id": "E1", "sales_rep": "Al",
                 "net_revenue": "100", "total_cost": "20"},
                {"order_id": "O3", "customer_id": "C1", "product_id": "P1",
                 "employee_id": "E3", "sales_rep": "Cy",
                 "net_revenue": "50", "total_cost": "10"},
            ]
        )
        rows = sales_rep_leaderboard(facts)
        assert [(r.employee_id, r.rev_rank, r.profit_rank) for r in rows] == [
            ("E1", 1, 1),
            ("E2", 1, 3),
            ("E3", 3, 2),
        ]
        assert rows[0].sales_rep == "Al"
        assert rows[0].total_revenue == Decimal("100.00")
        assert rows[0].total_profit == Decimal("80.00")

    def test_empty(self):
        assert sales_rep_leaderboard([]) == []
