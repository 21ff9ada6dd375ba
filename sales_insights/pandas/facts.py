"""Pandas DataFrame adapters for sales facts and analysis results."""

from dataclasses import asdict, fields, is_dataclass
from typing import Any, List, Mapping, Sequence

import numpy as np
import pandas as pd  # type: ignore

from sales_insights.foundation.sales_fact import SalesFact, SalesFactBuilder
from ._utils import decimal_to_float, to_frame_value

FACT_COLUMNS = [field.name for field in fields(SalesFact)]

REQUIRED_COLUMNS = [
    "order_id",
    "order_date",
    "customer_id",
    "product_id",
    "quantity",
    "unit_price",
]

#: Identifier and label columns; read as text so numeric codes keep their form.
TEXT_COLUMNS = [
    "order_id",
    "customer_id",
    "customer_name",
    "product_id",
    "product_name",
    "category_name",
    "segment",
    "region",
    "employee_id",
    "sales_rep",
]

#: Columns that may hold nulls; every other present column must be complete.
NULLABLE_COLUMNS = {
    "order_date",
    "discount_rate",
    "net_revenue",
    "total_cost",
    "profit",
    "unit_cost",
    "customer_name",
    "product_name",
    "category_name",
    "segment",
    "region",
    "employee_id",
    "sales_rep",
}


def facts_to_dataframe(facts: Sequence[SalesFact]) -> pd.DataFrame:
    """Convert sales facts to a pandas DataFrame.

    Args:
        facts: Sequence of SalesFact objects

    Returns:
        DataFrame with one column per SalesFact field; money columns are
        floats and ``order_date`` is datetime64.

    Example:
        >>> df = facts_to_dataframe(facts)
        >>> df.groupby("category_name")["net_revenue"].sum()
    """
    if not facts:
        return pd.DataFrame(columns=FACT_COLUMNS)

    rows = [
        {
            "order_id": f.order_id,
            "order_date": f.order_date,
            "customer_id": f.customer_id,
            "product_id": f.product_id,
            "quantity": f.quantity,
            "unit_price": decimal_to_float(f.unit_price),
            "discount_rate": decimal_to_float(f.discount_rate),
            "net_revenue": decimal_to_float(f.net_revenue),
            "total_cost": decimal_to_float(f.total_cost),
            "profit": decimal_to_float(f.profit),
            "customer_name": f.customer_name,
            "product_name": f.product_name,
            "category_name": f.category_name,
            "segment": f.segment,
            "region": f.region,
            "employee_id": f.employee_id,
            "sales_rep": f.sales_rep,
        }
        for f in facts
    ]
    df = pd.DataFrame(rows, columns=FACT_COLUMNS)
    df["order_date"] = pd.to_datetime(df["order_date"])
    return df


def dataframe_to_sales_facts(
    df: pd.DataFrame, column_mapping: Mapping[str, str] | None = None
) -> List[SalesFact]:
    """Convert a pandas DataFrame of sales lines to validated sales facts.

    Args:
        df: DataFrame with sales fact columns (e.g. read from a CSV export)
        column_mapping: Optional mapping of source column -> fact column
            for exports that use different names

    Returns:
        List of SalesFact objects in DataFrame row order

    Raises:
        ValueError: If required columns are missing or non-nullable
            columns contain nulls

    Example:
        >>> df = pd.read_csv("v_sales_fact.csv")
        >>> facts = dataframe_to_sales_facts(df, {"net_amount": "net_revenue"})
    """
    if column_mapping:
        df = df.rename(columns=dict(column_mapping))

    missing_cols = set(REQUIRED_COLUMNS) - set(df.columns)
    if missing_cols:
        raise ValueError(f"DataFrame missing required columns: {sorted(missing_cols)}")

    if df.empty:
        return []

    strict_cols = [col for col in df.columns if col not in NULLABLE_COLUMNS]
    null_cols = df[strict_cols].isnull().any()
    if null_cols.any():
        null_col_names = null_cols[null_cols].index.tolist()
        raise ValueError(
            f"Null/NaN values found in columns: {null_col_names}. "
            "Sales facts require complete identifiers, quantities and prices."
        )

    records = df.replace({np.nan: None}).to_dict("records")
    return SalesFactBuilder().build(records)


def rows_to_dataframe(
    rows: Sequence[Any], columns: Sequence[str] | None = None
) -> pd.DataFrame:
    """Convert analysis result rows to a DataFrame.

    Args:
        rows: Dataclass instances or dictionaries as returned by analyses
            and the runner
        columns: Column order; inferred from the first row when omitted

    Returns:
        DataFrame with Decimal values converted to float and None kept as
        missing values
    """
    records = [asdict(row) if is_dataclass(row) else dict(row) for row in rows]
    if columns is None:
        columns = list(records[0]) if records else []
    if not records:
        return pd.DataFrame(columns=list(columns))
    return pd.DataFrame(
        [{key: to_frame_value(record.get(key)) for key in columns} for record in records],
        columns=list(columns),
    )
