"""Customer value analyses: RFM segmentation and high-value customers at risk."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Sequence

from sales_insights.foundation.rfm import (
    DEFAULT_BUCKETS,
    CustomerSegment,
    calculate_rfm,
    segment_customers,
)
from sales_insights.foundation.sales_fact import SalesFact

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 90
DEFAULT_MIN_LIFETIME_VALUE = Decimal("1000")


def rfm_segmentation(
    facts: Sequence[SalesFact],
    reference_date: date | None = None,
    buckets: int = DEFAULT_BUCKETS,
) -> list[CustomerSegment]:
    """Segment customers into Champions, Loyal, At Risk and Potential.

    Parameters
    ----------
    facts:
        Sales fact rows.
    reference_date:
        Date recency is measured against. Defaults to today.
    buckets:
        Number of quantile buckets per RFM dimension.

    Returns
    -------
    list[CustomerSegment]
        One row per customer ordered by monetary value and frequency, both
        descending.
    """
    rfm_metrics = calculate_rfm(facts, reference_date)
    segments = segment_customers(rfm_metrics, buckets)
    logger.info(f"Segmented {len(segments)} customers into RFM segments")
    return segments


@dataclass(frozen=True)
class CustomerAtRisk:
    """A high-value customer with no recent orders."""

    customer_id: str
    customer_name: str
    lifetime_value: Decimal
    last_order: date


def high_value_at_risk(
    facts: Sequence[SalesFact],
    reference_date: date | None = None,
    min_lifetime_value: Decimal = DEFAULT_MIN_LIFETIME_VALUE,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> list[CustomerAtRisk]:
    """Find customers with high lifetime spend whose last order is old.

    A customer qualifies when lifetime net revenue is at least
    ``min_lifetime_value`` and the last order date is strictly before
    ``reference_date - lookback_days``. Customers with no dated order are
    not reported, since their inactivity cannot be established.

    Returns rows ordered by lifetime value, highest first. These customers
    are the target of win-back campaigns.
    """
    if lookback_days < 0:
        raise ValueError(f"lookback_days cannot be negative: {lookback_days}")
    if reference_date is None:
        reference_date = date.today()
    cutoff = reference_date - timedelta(days=lookback_days)
    threshold = Decimal(str(min_lifetime_value))

    at_risk = [
        CustomerAtRisk(
            customer_id=metrics.customer_id,
            customer_name=metrics.customer_name,
            lifetime_value=metrics.monetary,
            last_order=metrics.last_order_date,
        )
        for metrics in calculate_rfm(facts, reference_date)
        if metrics.monetary >= threshold
        and metrics.last_order_date is not None
        and metrics.last_order_date < cutoff
    ]
    at_risk.sort(key=lambda row: (-row.lifetime_value, row.customer_id))
    return at_risk
