"""Cohort assignment and retention utilities.

Customers are grouped into cohorts by the calendar period of their first
order. For every (cohort, active period) pair the retention percentage is
the share of the cohort that ordered again in that period.

Quick Start
-----------
>>> from sales_insights.foundation.sales_fact import SalesFactBuilder
>>> facts = SalesFactBuilder().build([
...     {"order_id": "O1", "customer_id": "C1", "product_id": "P1", "order_date": "2023-01-15"},
...     {"order_id": "O2", "customer_id": "C2", "product_id": "P1", "order_date": "2023-02-20"},
...     {"order_id": "O3", "customer_id": "C1", "product_id": "P1", "order_date": "2023-05-02"},
... ])
>>> assign_cohorts(facts)
{'C1': '2023-Q1', 'C2': '2023-Q1'}
>>> [(r.active_period, r.retention_pct) for r in calculate_cohort_retention(facts)]
[('2023-Q1', Decimal('100.0')), ('2023-Q2', Decimal('50.0'))]
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Sequence

from sales_insights.foundation.aggregation import safe_percentage
from sales_insights.foundation.sales_fact import (
    PeriodGranularity,
    SalesFact,
    next_period_start,
    period_label,
    period_start,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CohortRetention:
    """Retention of one cohort in one active period.

    Attributes
    ----------
    cohort:
        Label of the period of the cohort's first orders (e.g. "2023-Q1").
    active_period:
        Label of the period in which activity was counted.
    active_customers:
        Distinct cohort customers who ordered in ``active_period``.
    cohort_size:
        Number of customers in the cohort (always >= 1).
    retention_pct:
        ``100 * active_customers / cohort_size`` rounded to one decimal.
    """

    cohort: str
    active_period: str
    active_customers: int
    cohort_size: int
    retention_pct: Decimal

    def __post_init__(self) -> None:
        """Validate cohort retention constraints."""
        if self.cohort_size < 1:
            raise ValueError(f"cohort_size must be >= 1, got {self.cohort_size}")
        if not 0 <= self.active_customers <= self.cohort_size:
            raise ValueError(
                f"active_customers must be between 0 and cohort_size "
                f"({self.cohort_size}), got {self.active_customers}"
            )


def first_order_dates(facts: Sequence[SalesFact]) -> dict[str, date]:
    """Return each customer's earliest order date.

    Rows without an order date are ignored; customers with no dated rows
    are absent from the result.
    """
    first_dates: dict[str, date] = {}
    for fact in facts:
        if fact.order_date is None:
            continue
        current = first_dates.get(fact.customer_id)
        if current is None or fact.order_date < current:
            first_dates[fact.customer_id] = fact.order_date
    return first_dates


def assign_cohorts(
    facts: Sequence[SalesFact],
    granularity: PeriodGranularity = PeriodGranularity.QUARTER,
) -> dict[str, str]:
    """Map each customer to the label of their first-order period.

    Returns
    -------
    dict[str, str]
        Mapping of customer_id to cohort label, ordered by customer_id.
    """
    first_dates = first_order_dates(facts)
    return {
        customer_id: period_label(first_dates[customer_id], granularity)
        for customer_id in sorted(first_dates)
    }


def calculate_cohort_retention(
    facts: Sequence[SalesFact],
    granularity: PeriodGranularity = PeriodGranularity.QUARTER,
    zero_fill: bool = False,
) -> list[CohortRetention]:
    """Calculate per-period retention for every first-purchase cohort.

    Parameters
    ----------
    facts:
        Sales fact rows. Rows without an order date are skipped.
    granularity:
        Period used both for cohorts and for activity (default: quarter).
    zero_fill:
        If False (default), only (cohort, period) pairs with activity are
        returned. If True, every period from the cohort's own period to the
        last active period in the data is returned, with zero counts where
        no cohort customer ordered. Useful for heatmaps that need a dense
        grid.

    Returns
    -------
    list[CohortRetention]
        Rows sorted by cohort then active period. The row for a cohort's
        own period always has ``retention_pct == 100.0``.
    """
    undated = sum(1 for fact in facts if fact.order_date is None)
    if undated:
        logger.warning(f"Cohort retention ignores {undated} sales facts without an order date")

    first_dates = first_order_dates(facts)
    if not first_dates:
        return []

    cohort_starts = {
        customer_id: period_start(first_date, granularity)
        for customer_id, first_date in first_dates.items()
    }
    cohort_sizes: dict[date, int] = defaultdict(int)
    for cohort_start in cohort_starts.values():
        cohort_sizes[cohort_start] += 1

    active: dict[tuple[date, date], set[str]] = defaultdict(set)
    for fact in facts:
        if fact.order_date is None:
            continue
        cohort_start = cohort_starts[fact.customer_id]
        active_start = period_start(fact.order_date, granularity)
        active[(cohort_start, active_start)].add(fact.customer_id)

    if zero_fill:
        last_period = max(active_start for _, active_start in active)
        for cohort_start in cohort_sizes:
            current = cohort_start
            while current <= last_period:
                active.setdefault((cohort_start, current), set())
                current = next_period_start(current, granularity)

    rows = []
    for (cohort_start, active_start) in sorted(active):
        active_customers = len(active[(cohort_start, active_start)])
        cohort_size = cohort_sizes[cohort_start]
        rows.append(
            CohortRetention(
                cohort=period_label(cohort_start, granularity),
                active_period=period_label(active_start, granularity),
                active_customers=active_customers,
                cohort_size=cohort_size,
                retention_pct=safe_percentage(
                    Decimal(active_customers), Decimal(cohort_size), places=1
                ),
            )
        )
    return rows
