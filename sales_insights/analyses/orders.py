"""Order basket analysis: average order value and items per order."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence

from sales_insights.foundation.aggregation import aggregate_orders
from sales_insights.foundation.sales_fact import SalesFact

AVERAGE_PRECISION = Decimal("0.01")


@dataclass(frozen=True)
class OrderValueSummary:
    """Average order value (AOV) and basket size across all orders.

    Attributes
    ----------
    avg_order_value:
        Mean net revenue per order, ``None`` when there are no orders.
    avg_items_per_order:
        Mean units per order, ``None`` when there are no orders.
    orders_count:
        Number of distinct orders.
    """

    avg_order_value: Decimal | None
    avg_items_per_order: Decimal | None
    orders_count: int


def order_value_summary(facts: Sequence[SalesFact]) -> OrderValueSummary:
    """Compute AOV and items per order.

    AOV and basket size are levers for revenue growth (bundling and upsell).
    """
    orders = aggregate_orders(facts)
    if not orders:
        return OrderValueSummary(
            avg_order_value=None, avg_items_per_order=None, orders_count=0
        )

    count = Decimal(len(orders))
    total_revenue = sum((order.revenue for order in orders), Decimal("0"))
    total_items = sum(order.items for order in orders)
    return OrderValueSummary(
        avg_order_value=(total_revenue / count).quantize(
            AVERAGE_PRECISION, rounding=ROUND_HALF_UP
        ),
        avg_items_per_order=(Decimal(total_items) / count).quantize(
            AVERAGE_PRECISION, rounding=ROUND_HALF_UP
        ),
        orders_count=len(orders),
    )
