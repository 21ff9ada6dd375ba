from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
import math
import random
from typing import List, Optional

from sales_insights.foundation.sales_fact import (
    PeriodGranularity,
    SalesFact,
    next_period_start,
    period_start,
    quantize_money,
)

DISCOUNT_RATES = (Decimal("0"), Decimal("0.05"), Decimal("0.10"), Decimal("0.20"))
DISCOUNT_WEIGHTS = (0.6, 0.2, 0.15, 0.05)

FIRST_NAMES = ("Ava", "Noah", "Mia", "Liam", "Zoe", "Ethan", "Ivy", "Lucas", "Nia", "Omar")
LAST_NAMES = ("Moyo", "Smith", "Garcia", "Chen", "Patel", "Dube", "Kim", "Nkosi", "Silva", "Brown")
SEGMENTS = ("Consumer", "Corporate", "Home Office")
REGIONS = ("North", "South", "East", "West")


@dataclass(frozen=True)
class Product:
    product_id: str
    product_name: str
    category_name: str
    list_price: Decimal
    unit_cost: Decimal


@dataclass(frozen=True)
class Customer:
    customer_id: str
    customer_name: str
    acquisition_date: date
    segment: str
    region: str


@dataclass(frozen=True)
class SalesRep:
    employee_id: str
    sales_rep: str


@dataclass(frozen=True)
class GeneratorConfig:
    """Configuration for the synthetic sales generator.

    Attributes
    ----------
    churn_hazard: Monthly probability that an active customer stops buying.
    base_orders_per_month: Average orders per active customer per month.
    max_lines_per_order: Upper bound of distinct products on one order.
    quantity_mean: Average quantity per order line.
    n_products: Catalogue size.
    n_reps: Number of sales reps orders are assigned to.
    seed: Optional RNG seed for reproducibility.
    """

    churn_hazard: float = 0.06
    base_orders_per_month: float = 0.8
    max_lines_per_order: int = 3
    quantity_mean: float = 1.5
    n_products: int = 12
    n_reps: int = 4
    seed: Optional[int] = None


CATEGORIES = {
    "Electronics": (120.0, 0.75),
    "Furniture": (250.0, 0.65),
    "Office Supplies": (15.0, 0.55),
    "Accessories": (35.0, 0.45),
}


def generate_catalog(n_products: int, rng: random.Random) -> List[Product]:
    """Generate a product catalogue spread over the fixed categories.

    Cost ratios vary per product so margin bands cover low, mid and high.
    """
    category_names = sorted(CATEGORIES)
    products: List[Product] = []
    for i in range(n_products):
        category = category_names[i % len(category_names)]
        mean_price, cost_ratio = CATEGORIES[category]
        price = _sample_price(rng, mean_price, 0.3)
        ratio = min(0.98, max(0.3, rng.normalvariate(cost_ratio, 0.1)))
        products.append(
            Product(
                product_id=f"P-{i + 1}",
                product_name=f"{category} Item {i + 1}",
                category_name=category,
                list_price=Decimal(str(price)),
                unit_cost=quantize_money(Decimal(str(price)) * Decimal(str(round(ratio, 2)))),
            )
        )
    return products


def generate_customers(
    n: int,
    start: date,
    end: date,
    *,
    rng: random.Random,
) -> List[Customer]:
    """Generate ``n`` customers with acquisition dates uniformly between start/end."""

    if n <= 0:
        return []
    if start > end:
        raise ValueError("start date must be <= end date")

    total_days = (end - start).days + 1
    customers: List[Customer] = []
    for i in range(n):
        offset = rng.randrange(total_days)
        customers.append(
            Customer(
                customer_id=f"C-{i + 1}",
                customer_name=f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}",
                acquisition_date=start + timedelta(days=offset),
                segment=rng.choice(SEGMENTS),
                region=rng.choice(REGIONS),
            )
        )
    return customers


def _month_starts(start: date, end: date) -> List[date]:
    month = period_start(start, PeriodGranularity.MONTH)
    months: List[date] = []
    while month <= end:
        months.append(month)
        month = next_period_start(month, PeriodGranularity.MONTH)
    return months


def _orders_for_customer_month(rng: random.Random, lam: float) -> int:
    # Poisson draw via Knuth's algorithm, fine for small lambdas
    if lam <= 0:
        return 0
    limit = math.exp(-lam)
    k = 0
    p = 1.0
    while p > limit:
        k += 1
        p *= rng.random()
    return max(0, k - 1)


def _sample_price(rng: random.Random, mean: float, variability: float) -> float:
    sigma = min(max(variability, 0.01), 1.0)
    mu = math.log(max(mean, 0.01)) - 0.5 * sigma * sigma
    return round(max(math.exp(rng.normalvariate(mu, sigma)), 0.01), 2)


def _sample_quantity(rng: random.Random, mean_q: float) -> int:
    q = max(1.0, rng.lognormvariate(mu=math.log(max(mean_q, 0.1)), sigma=0.5))
    return max(1, int(round(q)))


def generate_sales_facts(
    n_customers: int,
    start: date,
    end: date,
    *,
    config: Optional[GeneratorConfig] = None,
    seed: Optional[int] = None,
) -> List[SalesFact]:
    """Generate sales facts for ``n_customers`` ordering between ``start`` and ``end``.

    Customers are acquired uniformly over the window, order a Poisson number
    of times per month until they churn, and buy 1 to ``max_lines_per_order``
    distinct products per order. ``seed`` overrides ``config.seed``.
    """

    if start > end:
        raise ValueError("start date must be <= end date")
    config = config or GeneratorConfig()
    rng = random.Random(seed if seed is not None else config.seed)

    catalog = generate_catalog(config.n_products, rng)
    reps = [
        SalesRep(employee_id=f"E-{i + 1}", sales_rep=f"Rep {chr(ord('A') + i)}")
        for i in range(config.n_reps)
    ]
    customers = generate_customers(n_customers, start, end, rng=rng)
    active = {c.customer_id: c for c in customers}

    facts: List[SalesFact] = []
    order_seq = 1
    for month_start in _month_starts(start, end):
        next_month = next_period_start(month_start, PeriodGranularity.MONTH)
        month_last = min(end, next_month - timedelta(days=1))

        # Churn only applies to customers acquired before this month
        for cid in [cid for cid, c in active.items() if c.acquisition_date < month_start]:
            if rng.random() < config.churn_hazard:
                active.pop(cid)

        for cust in list(active.values()):
            if cust.acquisition_date > month_last:
                continue
            first_day = max(cust.acquisition_date, month_start)
            window_days = (month_last - first_day).days + 1

            order_dates: List[date] = []
            if cust.acquisition_date >= month_start:
                # The acquisition date is the customer's first order
                order_dates.append(cust.acquisition_date)
            for _ in range(_orders_for_customer_month(rng, config.base_orders_per_month)):
                order_dates.append(first_day + timedelta(days=rng.randrange(window_days)))

            for order_date in order_dates:
                order_id = f"O-{order_seq}"
                order_seq += 1
                rep = rng.choice(reps)

                n_lines = 1 + rng.randrange(max(1, config.max_lines_per_order))
                for product in rng.sample(catalog, min(n_lines, len(catalog))):
                    quantity = _sample_quantity(rng, config.quantity_mean)
                    discount_rate = rng.choices(DISCOUNT_RATES, weights=DISCOUNT_WEIGHTS)[0]
                    net_revenue = quantize_money(
                        product.list_price * quantity * (1 - discount_rate)
                    )
                    total_cost = quantize_money(product.unit_cost * quantity)
                    facts.append(
                        SalesFact(
                            order_id=order_id,
                            order_date=order_date,
                            customer_id=cust.customer_id,
                            product_id=product.product_id,
                            quantity=quantity,
                            unit_price=product.list_price,
                            discount_rate=discount_rate,
                            net_revenue=net_revenue,
                            total_cost=total_cost,
                            profit=net_revenue - total_cost,
                            customer_name=cust.customer_name,
                            product_name=product.product_name,
                            category_name=product.category_name,
                            segment=cust.segment,
                            region=cust.region,
                            employee_id=rep.employee_id,
                            sales_rep=rep.sales_rep,
                        )
                    )

    facts.sort(key=lambda f: (f.customer_id, f.order_date, f.order_id, f.product_id))
    return facts
