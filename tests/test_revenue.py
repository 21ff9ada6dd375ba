"""Tests for revenue trend analyses."""

from datetime import date
from decimal import Decimal

from sales_insights.analyses.revenue import (
    discount_leakage,
    monthly_revenue,
    revenue_growth_by_segment_region,
)
from sales_insights.foundation.sales_fact import SalesFactBuilder


def _line(order_id, order_date, net_revenue, segment="Consumer", region="North", **extra):
    row = {
        "order_id": order_id,
        "order_date": order_date,
        "customer_id": "C1",
        "product_id": "P1",
        "net_revenue": net_revenue,
        "segment": segment,
        "region": region,
    }
    row.update(extra)
    return row


class TestMonthlyRevenue:
    """Test monthly revenue with running total."""

    def test_running_total(self):
        facts = SalesFactBuilder().build(
            [
                _line("O3", "2024-03-02", "50.00"),
                _line("O1", "2024-01-10", "100.00"),
                _line("O2", "2024-01-20", "25.50"),
                _line("O4", "2024-04-01", "0"),
            ]
        )
        rows = monthly_revenue(facts)
        assert [r.month_start for r in rows] == [
            date(2024, 1, 1),
            date(2024, 3, 1),
            date(2024, 4, 1),
        ]
        assert [r.revenue for r in rows] == [
            Decimal("125.50"),
            Decimal("50.00"),
            Decimal("0.00"),
        ]
        assert [r.running_revenue for r in rows] == [
            Decimal("125.50"),
            Decimal("175.50"),
            Decimal("175.50"),
        ]

    def test_running_total_is_monotone_and_ends_at_total(self):
        facts = SalesFactBuilder().build(
            [_line(f"O{m}", f"2023-{m:02d}-15", str(m * 10)) for m in range(1, 13)]
        )
        rows = monthly_revenue(facts)
        running = [r.running_revenue for r in rows]
        assert running == sorted(running)
        assert running[-1] == sum(f.net_revenue for f in facts)

    def test_empty(self):
        assert monthly_revenue([]) == []


class TestSegmentRegionGrowth:
    """Test revenue growth by segment and region."""

    def test_growth_within_partition(self):
        facts = SalesFactBuilder().build(
            [
                _line("O1", "2022-03-01", "1000"),
                _line("O2", "2023-03-01", "1500"),
                _line("O3", "2024-03-01", "750"),
                _line("O4", "2023-05-01", "400", region="South"),
            ]
        )
        rows = revenue_growth_by_segment_region(facts)
        assert [(r.region, r.year, r.yoy_growth_pct) for r in rows] == [
            ("North", 2022, None),
            ("North", 2023, Decimal("50.00")),
            ("North", 2024, Decimal("-50.00")),
            ("South", 2023, None),
        ]
        assert rows[1].revenue == Decimal("1500.00")

    def test_growth_from_zero_is_none(self):
        facts = SalesFactBuilder().build(
            [
                _line("O1", "2022-03-01", "0"),
                _line("O2", "2023-03-01", "200"),
            ]
        )
        rows = revenue_growth_by_segment_region(facts)
        assert rows[1].yoy_growth_pct is None

    def test_undated_rows_ignored(self):
        facts = SalesFactBuilder().build(
            [_line("O1", "2023-01-01", "10"), _line("O2", None, "99")]
        )
        (row,) = revenue_growth_by_segment_region(facts)
        assert row.revenue == Decimal("10.00")


class TestDiscountLeakage:
    """Test dollars lost to discounts."""

    def test_ten_percent_discount(self):
        facts = SalesFactBuilder().build(
            [
                _line(
                    "O1",
                    "2024-03-04",
                    None,
                    unit_price=10000,
                    quantity=1,
                    discount_rate="0.10",
                )
            ]
        )
        (row,) = discount_leakage(facts)
        assert row.month_start == date(2024, 3, 1)
        assert row.discount_dollars == Decimal("1000.00")
        assert row.realized_revenue == Decimal("9000.00")
        assert row.discount_rate_pct_of_gross == Decimal("10.00")

    def test_month_without_gross_sales(self):
        facts = SalesFactBuilder().build(
            [_line("O1", "2024-03-04", "0", unit_price=0, quantity=1)]
        )
        (row,) = discount_leakage(facts)
        assert row.discount_dollars == Decimal("0.00")
        assert row.discount_rate_pct_of_gross is None
