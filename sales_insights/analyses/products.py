"""Product and category profitability analyses."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from itertools import combinations
from typing import Sequence

from sales_insights.foundation.aggregation import GroupingKey, aggregate_facts
from sales_insights.foundation.sales_fact import SalesFact, quantize_money

logger = logging.getLogger(__name__)

DEFAULT_TOP_PRODUCTS = 10
DEFAULT_AFFINITY_PAIRS = 20
DEFAULT_LOW_MARGIN = Decimal("0.10")
DEFAULT_HIGH_MARGIN = Decimal("0.30")


@dataclass(frozen=True)
class ProductProfit:
    """Revenue, profit and margin for one product."""

    product_id: str
    product_name: str
    category_name: str
    revenue: Decimal
    profit: Decimal
    margin_pct: Decimal | None


def top_products_by_profit(
    facts: Sequence[SalesFact], limit: int | None = DEFAULT_TOP_PRODUCTS
) -> list[ProductProfit]:
    """Rank products by total profit, highest first.

    Parameters
    ----------
    facts:
        Sales fact rows.
    limit:
        Maximum rows to return (default: 10). ``None`` returns all products.
    """
    groups = aggregate_facts(facts, GroupingKey.PRODUCT)
    groups.sort(key=lambda group: (-group.profit, group.key[0]))
    if limit is not None:
        groups = groups[:limit]
    return [
        ProductProfit(
            product_id=group.key[0],
            product_name=group.key[1],
            category_name=group.key[2],
            revenue=quantize_money(group.revenue),
            profit=quantize_money(group.profit),
            margin_pct=group.margin_pct,
        )
        for group in groups
    ]


@dataclass(frozen=True)
class CategoryProfitability:
    """Revenue, cost and profit summed over one category."""

    category_name: str
    revenue: Decimal
    cost: Decimal
    profit: Decimal


def category_profitability(facts: Sequence[SalesFact]) -> list[CategoryProfitability]:
    """Sum revenue, cost and profit by category, most profitable first."""
    groups = aggregate_facts(facts, GroupingKey.CATEGORY)
    groups.sort(key=lambda group: (-group.profit, group.key[0]))
    return [
        CategoryProfitability(
            category_name=group.key[0],
            revenue=quantize_money(group.revenue),
            cost=quantize_money(group.cost),
            profit=quantize_money(group.profit),
        )
        for group in groups
    ]


class MarginBand(str, Enum):
    """Categorical buckets of profit margin."""

    NO_SALES = "No Sales"
    LOW = "Low Margin"
    MID = "Mid Margin"
    HIGH = "High Margin"


def classify_margin(
    revenue: Decimal,
    profit: Decimal,
    low_threshold: Decimal = DEFAULT_LOW_MARGIN,
    high_threshold: Decimal = DEFAULT_HIGH_MARGIN,
) -> MarginBand:
    """Assign a margin band from revenue and profit.

    >>> classify_margin(Decimal("0"), Decimal("0")).value
    'No Sales'
    >>> classify_margin(Decimal("1000"), Decimal("50")).value
    'Low Margin'
    >>> classify_margin(Decimal("1000"), Decimal("200")).value
    'Mid Margin'
    >>> classify_margin(Decimal("1000"), Decimal("400")).value
    'High Margin'
    """
    if revenue == 0:
        return MarginBand.NO_SALES
    margin = profit / revenue
    if margin < low_threshold:
        return MarginBand.LOW
    if margin < high_threshold:
        return MarginBand.MID
    return MarginBand.HIGH


@dataclass(frozen=True)
class ProductMarginBand:
    """Product profit with its margin band."""

    product_id: str
    product_name: str
    revenue: Decimal
    profit: Decimal
    margin_band: str


def product_margin_bands(
    facts: Sequence[SalesFact],
    low_threshold: Decimal = DEFAULT_LOW_MARGIN,
    high_threshold: Decimal = DEFAULT_HIGH_MARGIN,
) -> list[ProductMarginBand]:
    """Aggregate product profit and bucket each product by margin.

    Thresholds are margin ratios (0.10 = 10%). Rows are ordered by profit,
    highest first.
    """
    low = Decimal(str(low_threshold))
    high = Decimal(str(high_threshold))
    if low > high:
        raise ValueError(
            f"low_threshold ({low}) cannot exceed high_threshold ({high})"
        )

    groups = aggregate_facts(facts, lambda f: (f.product_id, f.product_name))
    groups.sort(key=lambda group: (-group.profit, group.key[0]))
    return [
        ProductMarginBand(
            product_id=group.key[0],
            product_name=group.key[1],
            revenue=quantize_money(group.revenue),
            profit=quantize_money(group.profit),
            margin_band=classify_margin(group.revenue, group.profit, low, high).value,
        )
        for group in groups
    ]


@dataclass(frozen=True)
class ProductPair:
    """Two products bought in the same order and how often that happened."""

    product_a: str
    product_b: str
    together_orders: int


def product_affinity(
    facts: Sequence[SalesFact], limit: int | None = DEFAULT_AFFINITY_PAIRS
) -> list[ProductPair]:
    """Find product pairs that appear together in orders.

    Each order contributes one count per pair of distinct products on it.
    Pairs are reported by product name with ``product_a`` sorting before
    ``product_b``; products without a name fall back to their identifier.

    Returns the most frequent pairs first (ties by name), at most ``limit``.
    """
    order_products: dict[str, dict[str, str]] = {}
    for fact in facts:
        order_products.setdefault(fact.order_id, {})[fact.product_id] = (
            fact.product_name or fact.product_id
        )

    pair_counts: Counter[tuple[str, str]] = Counter()
    for products in order_products.values():
        for first_id, second_id in combinations(sorted(products), 2):
            names = sorted((products[first_id], products[second_id]))
            pair_counts[(names[0], names[1])] += 1

    ranked = sorted(pair_counts.items(), key=lambda item: (-item[1], item[0]))
    if limit is not None:
        ranked = ranked[:limit]
    logger.debug(f"Found {len(pair_counts)} product pairs across {len(order_products)} orders")
    return [
        ProductPair(product_a=names[0], product_b=names[1], together_orders=count)
        for names, count in ranked
    ]
