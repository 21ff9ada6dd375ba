"""Revenue trend analyses.

- Monthly revenue with a running total: seasonality and growth at a glance.
- Revenue by customer segment and region with year-over-year growth:
  which markets are accelerating or declining.
- Discount leakage by month: dollars given away to discounts relative to
  the gross amount, to protect margins.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from itertools import groupby
from typing import Sequence

from sales_insights.foundation.aggregation import (
    GroupingKey,
    aggregate_facts,
    safe_percentage,
)
from sales_insights.foundation.sales_fact import SalesFact, quantize_money


@dataclass(frozen=True)
class MonthlyRevenue:
    """Net revenue for one month and the cumulative revenue up to it."""

    month_start: date
    revenue: Decimal
    running_revenue: Decimal


def monthly_revenue(facts: Sequence[SalesFact]) -> list[MonthlyRevenue]:
    """Aggregate net revenue by month with a running total.

    Months are in ascending order; months without sales are absent. The
    running total never decreases as long as net revenue is non-negative.
    """
    rows = []
    running = Decimal("0")
    for group in aggregate_facts(facts, GroupingKey.MONTH):
        running += group.revenue
        rows.append(
            MonthlyRevenue(
                month_start=group.key[0],
                revenue=quantize_money(group.revenue),
                running_revenue=quantize_money(running),
            )
        )
    return rows


@dataclass(frozen=True)
class SegmentRegionGrowth:
    """Yearly revenue of one segment/region with growth over the prior row."""

    year: int
    segment: str
    region: str
    revenue: Decimal
    yoy_growth_pct: Decimal | None


def revenue_growth_by_segment_region(
    facts: Sequence[SalesFact],
) -> list[SegmentRegionGrowth]:
    """Aggregate revenue by year, segment and region with year-over-year growth.

    Growth compares each year against the previous year present for the same
    segment and region. It is ``None`` for the first year of a partition and
    when the previous revenue was zero.

    Returns rows ordered by segment, region and year.
    """

    def key(fact: SalesFact) -> tuple[str, str, int] | None:
        if fact.order_date is None:
            return None
        return (fact.segment, fact.region, fact.order_date.year)

    rows = []
    groups = aggregate_facts(facts, key)
    for _, partition in groupby(groups, key=lambda group: group.key[:2]):
        previous: Decimal | None = None
        for group in partition:
            segment, region, year = group.key
            growth = None
            if previous is not None:
                growth = safe_percentage(group.revenue - previous, previous)
            rows.append(
                SegmentRegionGrowth(
                    year=year,
                    segment=segment,
                    region=region,
                    revenue=quantize_money(group.revenue),
                    yoy_growth_pct=growth,
                )
            )
            previous = group.revenue
    return rows


@dataclass(frozen=True)
class DiscountLeakage:
    """Discount dollars and realised revenue for one month.

    Attributes
    ----------
    month_start:
        First day of the month.
    discount_dollars:
        Gross amount minus net amount.
    realized_revenue:
        Net amount after discounts.
    discount_rate_pct_of_gross:
        Discount dollars as a percentage of the gross amount; ``None`` when
        the month had no gross sales.
    """

    month_start: date
    discount_dollars: Decimal
    realized_revenue: Decimal
    discount_rate_pct_of_gross: Decimal | None


def discount_leakage(facts: Sequence[SalesFact]) -> list[DiscountLeakage]:
    """Quantify dollars lost to discounts per month.

    Amounts are recomputed from unit price, quantity and discount rate rather
    than taken from ``net_revenue``, so the figures reflect list-price leakage.

    >>> from sales_insights.foundation.sales_fact import SalesFactBuilder
    >>> facts = SalesFactBuilder().build([
    ...     {"order_id": "O1", "customer_id": "C1", "product_id": "P1",
    ...      "order_date": "2024-03-04", "unit_price": 10000, "quantity": 1,
    ...      "discount_rate": "0.10"},
    ... ])
    >>> row = discount_leakage(facts)[0]
    >>> row.discount_dollars, row.discount_rate_pct_of_gross
    (Decimal('1000.00'), Decimal('10.00'))
    """
    rows = []
    for group in aggregate_facts(facts, GroupingKey.MONTH):
        realized = group.gross_amount - group.discount_amount
        rows.append(
            DiscountLeakage(
                month_start=group.key[0],
                discount_dollars=quantize_money(group.discount_amount),
                realized_revenue=quantize_money(realized),
                discount_rate_pct_of_gross=safe_percentage(
                    group.discount_amount, group.gross_amount
                ),
            )
        )
    return rows
