"""Group sales facts into per-entity totals.

Everything else in the package builds on these reductions: monthly revenue,
product and category profitability, order baskets, customer spend and rep
performance are all a grouping key plus :class:`GroupTotals`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Callable, Hashable, Iterable, Sequence

from sales_insights.foundation.sales_fact import (
    PeriodGranularity,
    SalesFact,
    period_start,
    quantize_money,
)

logger = logging.getLogger(__name__)

KeyFunction = Callable[[SalesFact], "tuple[Hashable, ...] | None"]


def safe_percentage(
    numerator: Decimal, denominator: Decimal, places: int = 2
) -> Decimal | None:
    """Return ``100 * numerator / denominator`` rounded half-up.

    Returns ``None`` when the denominator is zero, so ratio columns stay
    empty instead of raising or producing infinities.

    >>> safe_percentage(Decimal("50"), Decimal("1000"))
    Decimal('5.00')
    >>> safe_percentage(Decimal("0"), Decimal("0")) is None
    True
    """

    if denominator == 0:
        return None
    exponent = Decimal(1).scaleb(-places)
    return (Decimal(100) * numerator / denominator).quantize(
        exponent, rounding=ROUND_HALF_UP
    )


@dataclass(frozen=True)
class GroupTotals:
    """Reduced totals for one group of sales facts.

    Attributes
    ----------
    key:
        Grouping key values, in the order produced by the key function.
    revenue:
        Sum of net revenue.
    cost:
        Sum of total cost.
    profit:
        Sum of profit.
    quantity:
        Units sold.
    gross_amount:
        Sum of ``unit_price * quantity`` before discount.
    discount_amount:
        ``gross_amount`` minus the discounted amount.
    line_count:
        Number of fact rows in the group.
    order_count:
        Number of distinct orders in the group.
    """

    key: tuple
    revenue: Decimal
    cost: Decimal
    profit: Decimal
    quantity: int
    gross_amount: Decimal
    discount_amount: Decimal
    line_count: int
    order_count: int

    @property
    def margin_pct(self) -> Decimal | None:
        """Profit as a percentage of revenue; ``None`` without revenue."""
        return safe_percentage(self.profit, self.revenue)


def _date_key(granularity: PeriodGranularity) -> KeyFunction:
    def key(fact: SalesFact) -> tuple[date] | None:
        if fact.order_date is None:
            return None
        return (period_start(fact.order_date, granularity),)

    return key


class GroupingKey(Enum):
    """Named grouping keys for :func:`aggregate_facts`."""

    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    PRODUCT = "product"
    CATEGORY = "category"
    ORDER = "order"
    CUSTOMER = "customer"
    SEGMENT_REGION = "segment_region"
    REP = "rep"

    @property
    def key_function(self) -> KeyFunction:
        return _KEY_FUNCTIONS[self]


_KEY_FUNCTIONS: dict[GroupingKey, KeyFunction] = {
    GroupingKey.MONTH: _date_key(PeriodGranularity.MONTH),
    GroupingKey.QUARTER: _date_key(PeriodGranularity.QUARTER),
    GroupingKey.YEAR: _date_key(PeriodGranularity.YEAR),
    GroupingKey.PRODUCT: lambda f: (f.product_id, f.product_name, f.category_name),
    GroupingKey.CATEGORY: lambda f: (f.category_name,),
    GroupingKey.ORDER: lambda f: (f.order_id,),
    GroupingKey.CUSTOMER: lambda f: (f.customer_id, f.customer_name),
    GroupingKey.SEGMENT_REGION: lambda f: (f.segment, f.region),
    GroupingKey.REP: lambda f: (f.employee_id, f.sales_rep),
}


def _sort_key(key: tuple) -> tuple:
    # None sorts after every concrete value within its position.
    return tuple((value is None, value) for value in key)


def aggregate_facts(
    facts: Iterable[SalesFact], key: GroupingKey | KeyFunction
) -> list[GroupTotals]:
    """Group facts by ``key`` and reduce each group to :class:`GroupTotals`.

    Parameters
    ----------
    facts:
        Sales fact rows.
    key:
        A :class:`GroupingKey` or a callable returning a tuple of hashable
        values per fact. A key function may return ``None`` to skip a row
        (date keys do this for rows without an order date).

    Returns
    -------
    list[GroupTotals]
        One entry per group, sorted by key. Empty input gives an empty list.
    """

    key_function = key.key_function if isinstance(key, GroupingKey) else key

    buckets: dict[tuple, dict[str, object]] = {}
    skipped = 0
    for fact in facts:
        group_key = key_function(fact)
        if group_key is None:
            skipped += 1
            continue
        bucket = buckets.setdefault(
            group_key,
            {
                "revenue": Decimal("0"),
                "cost": Decimal("0"),
                "profit": Decimal("0"),
                "quantity": 0,
                "gross_amount": Decimal("0"),
                "net_amount": Decimal("0"),
                "line_count": 0,
                "orders": set(),
            },
        )
        bucket["revenue"] += fact.net_revenue
        bucket["cost"] += fact.total_cost
        bucket["profit"] += fact.profit
        bucket["quantity"] += fact.quantity
        bucket["gross_amount"] += fact.gross_amount
        bucket["net_amount"] += fact.net_amount
        bucket["line_count"] += 1
        bucket["orders"].add(fact.order_id)

    if skipped:
        logger.warning(f"Skipped {skipped} sales facts without a grouping key value")

    totals = [
        GroupTotals(
            key=group_key,
            revenue=payload["revenue"],
            cost=payload["cost"],
            profit=payload["profit"],
            quantity=payload["quantity"],
            gross_amount=payload["gross_amount"],
            discount_amount=payload["gross_amount"] - payload["net_amount"],
            line_count=payload["line_count"],
            order_count=len(payload["orders"]),
        )
        for group_key, payload in buckets.items()
    ]
    totals.sort(key=lambda group: _sort_key(group.key))
    return totals


@dataclass(frozen=True)
class OrderAggregation:
    """Summary of an order after aggregating its sales lines."""

    order_id: str
    customer_id: str
    order_date: date | None
    revenue: Decimal
    items: int
    distinct_products: int


def aggregate_orders(facts: Sequence[SalesFact]) -> list[OrderAggregation]:
    """Collapse sales lines into one record per order.

    The order date is the earliest line date; customer is taken from the
    first line seen.
    """

    grouped: dict[str, dict[str, object]] = {}
    for fact in facts:
        bucket = grouped.setdefault(
            fact.order_id,
            {
                "customer_id": fact.customer_id,
                "order_date": fact.order_date,
                "revenue": Decimal("0"),
                "items": 0,
                "products": set(),
            },
        )
        if fact.order_date is not None and (
            bucket["order_date"] is None or fact.order_date < bucket["order_date"]
        ):
            bucket["order_date"] = fact.order_date
        bucket["revenue"] += fact.net_revenue
        bucket["items"] += fact.quantity
        bucket["products"].add(fact.product_id)

    orders = [
        OrderAggregation(
            order_id=order_id,
            customer_id=str(payload["customer_id"]),
            order_date=payload["order_date"],
            revenue=quantize_money(payload["revenue"]),
            items=payload["items"],
            distinct_products=len(payload["products"]),
        )
        for order_id, payload in grouped.items()
    ]
    orders.sort(
        key=lambda order: (
            order.customer_id,
            order.order_date is None,
            order.order_date or date.min,
            order.order_id,
        )
    )
    return orders
