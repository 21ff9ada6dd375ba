"""Sales rep leaderboard."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

import pandas as pd

from sales_insights.foundation.aggregation import GroupingKey, aggregate_facts
from sales_insights.foundation.sales_fact import SalesFact, quantize_money


@dataclass(frozen=True)
class RepPerformance:
    """Revenue and profit of one sales rep with their ranks.

    Ranks follow SQL ``RANK()``: equal totals share a rank and the next
    distinct total skips ahead (1, 1, 3).
    """

    employee_id: str
    sales_rep: str
    total_revenue: Decimal
    total_profit: Decimal
    rev_rank: int
    profit_rank: int


def sales_rep_leaderboard(facts: Sequence[SalesFact]) -> list[RepPerformance]:
    """Aggregate revenue and profit per rep and rank them.

    Reps with high revenue but a much lower profit rank are candidates for
    discounting too aggressively. Rows are ordered by revenue rank, then
    employee id.
    """
    groups = aggregate_facts(facts, GroupingKey.REP)
    if not groups:
        return []

    df = pd.DataFrame(
        {
            "employee_id": [group.key[0] for group in groups],
            "sales_rep": [group.key[1] for group in groups],
            "total_revenue": [quantize_money(group.revenue) for group in groups],
            "total_profit": [quantize_money(group.profit) for group in groups],
        }
    )
    df["rev_rank"] = (
        df["total_revenue"].astype(float).rank(method="min", ascending=False).astype(int)
    )
    df["profit_rank"] = (
        df["total_profit"].astype(float).rank(method="min", ascending=False).astype(int)
    )
    df = df.sort_values(["rev_rank", "employee_id"], kind="mergesort")

    return [
        RepPerformance(
            employee_id=record["employee_id"],
            sales_rep=record["sales_rep"],
            total_revenue=record["total_revenue"],
            total_profit=record["total_profit"],
            rev_rank=int(record["rev_rank"]),
            profit_rank=int(record["profit_rank"]),
        )
        for record in df.to_dict("records")
    ]
