"""Foundational building blocks for sales analytics.

This package exposes the sales fact record and its builder, the fact
aggregator every analysis builds on, RFM (Recency-Frequency-Monetary)
scoring and segmentation, and first-purchase cohort retention.
"""

from .aggregation import (
    GroupingKey,
    GroupTotals,
    OrderAggregation,
    aggregate_facts,
    aggregate_orders,
    safe_percentage,
)
from .cohorts import CohortRetention, assign_cohorts, calculate_cohort_retention
from .rfm import (
    CustomerSegment,
    RFMMetrics,
    RFMScore,
    RFMSegment,
    assign_segment,
    calculate_rfm,
    calculate_rfm_scores,
    segment_customers,
)
from .sales_fact import PeriodGranularity, SalesFact, SalesFactBuilder

__all__ = [
    "SalesFact",
    "SalesFactBuilder",
    "PeriodGranularity",
    "GroupingKey",
    "GroupTotals",
    "OrderAggregation",
    "aggregate_facts",
    "aggregate_orders",
    "safe_percentage",
    "RFMMetrics",
    "RFMScore",
    "RFMSegment",
    "CustomerSegment",
    "assign_segment",
    "calculate_rfm",
    "calculate_rfm_scores",
    "segment_customers",
    "CohortRetention",
    "assign_cohorts",
    "calculate_cohort_retention",
]
