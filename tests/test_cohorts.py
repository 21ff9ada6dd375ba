"""Tests for cohort assignment and retention."""

import logging
from decimal import Decimal

import pytest

from sales_insights.foundation.cohorts import (
    CohortRetention,
    assign_cohorts,
    calculate_cohort_retention,
    first_order_dates,
)
from sales_insights.foundation.sales_fact import PeriodGranularity, SalesFactBuilder


def _orders(*pairs):
    return SalesFactBuilder().build(
        [
            {
                "order_id": f"O{i}",
                "customer_id": customer_id,
                "product_id": "P1",
                "order_date": order_date,
            }
            for i, (customer_id, order_date) in enumerate(pairs, start=1)
        ]
    )


class TestCohortRetentionRecord:
    """Test CohortRetention validation."""

    def test_empty_cohort_raises(self):
        with pytest.raises(ValueError, match="cohort_size must be >= 1"):
            CohortRetention("2023-Q1", "2023-Q1", 0, 0, Decimal("0"))

    def test_active_above_size_raises(self):
        with pytest.raises(ValueError, match="active_customers must be between"):
            CohortRetention("2023-Q1", "2023-Q2", 3, 2, Decimal("150"))


class TestAssignCohorts:
    """Test first-purchase cohort assignment."""

    def test_cohort_is_first_order_period(self):
        facts = _orders(
            ("C2", "2023-04-10"),
            ("C1", "2023-03-31"),
            ("C1", "2023-01-02"),
        )
        assert first_order_dates(facts)["C1"].isoformat() == "2023-01-02"
        assert assign_cohorts(facts) == {"C1": "2023-Q1", "C2": "2023-Q2"}
        assert assign_cohorts(facts, PeriodGranularity.MONTH) == {
            "C1": "2023-01",
            "C2": "2023-04",
        }

    def test_undated_customers_have_no_cohort(self):
        facts = _orders(("C1", "2023-01-02"), ("C2", None))
        assert assign_cohorts(facts) == {"C1": "2023-Q1"}


class TestCalculateCohortRetention:
    """Test cohort retention grid."""

    def test_own_period_retention_is_full(self):
        facts = _orders(
            ("C1", "2023-01-15"),
            ("C2", "2023-02-20"),
            ("C3", "2023-05-01"),
            ("C1", "2023-05-02"),
            ("C3", "2023-09-09"),
        )
        rows = calculate_cohort_retention(facts)
        own = [r for r in rows if r.cohort == r.active_period]
        assert len(own) == 2
        assert all(r.retention_pct == Decimal("100.0") for r in own)

    def test_retention_values(self):
        facts = _orders(
            ("C1", "2023-01-15"),
            ("C2", "2023-02-20"),
            ("C3", "2023-03-01"),
            ("C1", "2023-05-02"),
        )
        rows = calculate_cohort_retention(facts)
        assert [(r.cohort, r.active_period, r.active_customers, r.cohort_size) for r in rows] == [
            ("2023-Q1", "2023-Q1", 3, 3),
            ("2023-Q1", "2023-Q2", 1, 3),
        ]
        assert rows[1].retention_pct == Decimal("33.3")

    def test_repeat_orders_count_customer_once(self):
        facts = _orders(("C1", "2023-01-15"), ("C1", "2023-01-20"), ("C1", "2023-02-01"))
        (row,) = calculate_cohort_retention(facts)
        assert row.active_customers == 1

    def test_gaps_absent_without_zero_fill(self):
        facts = _orders(("C1", "2023-01-15"), ("C1", "2023-08-15"))
        rows = calculate_cohort_retention(facts)
        assert [r.active_period for r in rows] == ["2023-Q1", "2023-Q3"]

    def test_zero_fill_produces_dense_grid(self):
        facts = _orders(
            ("C1", "2023-01-15"),
            ("C1", "2023-08-15"),
            ("C2", "2023-04-01"),
        )
        rows = calculate_cohort_retention(facts, zero_fill=True)
        assert [(r.cohort, r.active_period, r.active_customers) for r in rows] == [
            ("2023-Q1", "2023-Q1", 1),
            ("2023-Q1", "2023-Q2", 0),
            ("2023-Q1", "2023-Q3", 1),
            ("2023-Q2", "2023-Q2", 1),
            ("2023-Q2", "2023-Q3", 0),
        ]
        assert rows[1].retention_pct == Decimal("0")

    def test_monthly_granularity(self):
        facts = _orders(("C1", "2023-01-31"), ("C1", "2023-02-01"))
        rows = calculate_cohort_retention(facts, PeriodGranularity.MONTH)
        assert [(r.cohort, r.active_period) for r in rows] == [
            ("2023-01", "2023-01"),
            ("2023-01", "2023-02"),
        ]

    def test_undated_rows_skipped_with_warning(self, caplog):
        facts = _orders(("C1", "2023-01-15"), ("C1", None))
        with caplog.at_level(logging.WARNING, logger="sales_insights.foundation.cohorts"):
            rows = calculate_cohort_retention(facts)
        assert len(rows) == 1
        assert "without an order date" in caplog.text

    def test_empty_input(self):
        assert calculate_cohort_retention([]) == []
