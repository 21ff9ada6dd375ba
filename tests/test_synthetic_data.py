"""Tests for the synthetic sales fact generator."""

import random
from collections import defaultdict
from datetime import date

import pytest

from sales_insights.synthetic import (
    GeneratorConfig,
    generate_catalog,
    generate_customers,
    generate_sales_facts,
)

START = date(2023, 1, 1)
END = date(2023, 12, 31)


def test_generation_is_reproducible():
    first = generate_sales_facts(25, START, END, seed=11)
    second = generate_sales_facts(25, START, END, seed=11)
    assert first == second


def test_seed_argument_overrides_config_seed():
    config = GeneratorConfig(seed=1)
    assert generate_sales_facts(10, START, END, config=config, seed=2) == generate_sales_facts(
        10, START, END, seed=2
    )


def test_every_customer_orders_within_window():
    facts = generate_sales_facts(30, START, END, seed=3)
    assert {f.customer_id for f in facts} == {f"C-{i}" for i in range(1, 31)}
    assert all(START <= f.order_date <= END for f in facts)


def test_amounts_are_consistent():
    for fact in generate_sales_facts(20, START, END, seed=5):
        assert fact.profit == fact.net_revenue - fact.total_cost
        assert fact.quantity >= 1
        assert fact.net_revenue >= 0
        assert fact.segment and fact.region and fact.employee_id


def test_products_are_distinct_within_an_order():
    facts = generate_sales_facts(20, START, END, seed=9)
    products = defaultdict(list)
    for fact in facts:
        products[fact.order_id].append(fact.product_id)
    assert all(len(p) == len(set(p)) for p in products.values())
    assert len({f.order_id: f.customer_id for f in facts}) == len(products)


def test_lines_per_order_bounded():
    config = GeneratorConfig(max_lines_per_order=1)
    facts = generate_sales_facts(15, START, END, config=config, seed=4)
    assert len({f.order_id for f in facts}) == len(facts)


def test_catalog_spans_categories():
    catalog = generate_catalog(8, random.Random(0))
    assert len({p.product_id for p in catalog}) == 8
    assert len({p.category_name for p in catalog}) == 4
    assert all(p.unit_cost < p.list_price for p in catalog)


def test_customers_acquired_in_window():
    customers = generate_customers(50, START, END, rng=random.Random(1))
    assert len(customers) == 50
    assert all(START <= c.acquisition_date <= END for c in customers)


def test_no_customers():
    assert generate_sales_facts(0, START, END, seed=1) == []


def test_inverted_window_raises():
    with pytest.raises(ValueError, match="start date must be <= end date"):
        generate_sales_facts(5, END, START, seed=1)
