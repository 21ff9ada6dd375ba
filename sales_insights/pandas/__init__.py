"""Pandas DataFrame adapters for sales analytics components."""

from .facts import (
    dataframe_to_sales_facts,
    facts_to_dataframe,
    rows_to_dataframe,
)

__all__ = [
    "dataframe_to_sales_facts",
    "facts_to_dataframe",
    "rows_to_dataframe",
]
