"""Synthetic data generation utilities.

This package produces realistic-but-fake sales facts to exercise the
analyses and the CLI without accessing production data.
"""

from .generator import (
    Customer,
    GeneratorConfig,
    Product,
    SalesRep,
    generate_catalog,
    generate_customers,
    generate_sales_facts,
)

__all__ = [
    "Customer",
    "GeneratorConfig",
    "Product",
    "SalesRep",
    "generate_catalog",
    "generate_customers",
    "generate_sales_facts",
]
