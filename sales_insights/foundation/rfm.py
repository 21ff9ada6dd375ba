"""RFM (Recency-Frequency-Monetary) calculation and segmentation.

RFM analysis segments customers based on three dimensions:
- Recency: How many days since the customer's last order?
- Frequency: How many distinct orders have they placed?
- Monetary: How much net revenue have they generated?

Each dimension is scored into equal-population buckets (NTILE) and the
score triple is mapped to a named segment used for targeted marketing.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Sequence

import numpy as np
import pandas as pd

from sales_insights.foundation.sales_fact import SalesFact, quantize_money

DEFAULT_BUCKETS = 5


@dataclass(frozen=True)
class RFMMetrics:
    """RFM metrics for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    customer_name:
        Display name of the customer
    last_order_date:
        Date of the most recent order, ``None`` if no order carried a date
    recency_days:
        Days from ``last_order_date`` to the reference date
    frequency:
        Number of distinct orders
    monetary:
        Total net revenue across all orders
    reference_date:
        Date recency is measured against
    """

    customer_id: str
    customer_name: str
    last_order_date: date | None
    recency_days: int | None
    frequency: int
    monetary: Decimal
    reference_date: date

    def __post_init__(self) -> None:
        """Validate RFM metrics."""
        if self.recency_days is not None and self.recency_days < 0:
            raise ValueError(
                f"Recency cannot be negative: {self.recency_days} (customer_id={self.customer_id})"
            )
        if self.frequency <= 0:
            raise ValueError(
                f"Frequency must be positive: {self.frequency} (customer_id={self.customer_id})"
            )
        if (self.last_order_date is None) != (self.recency_days is None):
            raise ValueError(
                f"recency_days and last_order_date must both be set or both be None "
                f"(customer_id={self.customer_id})"
            )


def calculate_rfm(
    facts: Sequence[SalesFact], reference_date: date | None = None
) -> list[RFMMetrics]:
    """Calculate RFM metrics per customer from sales facts.

    Only customers with at least one sales line appear in the output.
    Lines without an order date still count towards frequency and monetary
    value; a customer whose lines are all undated gets ``recency_days=None``.

    Parameters
    ----------
    facts:
        Sales fact rows covering each customer's full order history.
    reference_date:
        Date recency is measured against. Defaults to today.

    Returns
    -------
    list[RFMMetrics]
        One RFMMetrics per customer, sorted by customer_id

    Raises
    ------
    ValueError
        If any order is dated after ``reference_date``.

    Examples
    --------
    >>> from sales_insights.foundation.sales_fact import SalesFactBuilder
    >>> facts = SalesFactBuilder().build([
    ...     {"order_id": "O1", "customer_id": "X", "product_id": "P1",
    ...      "order_date": "2024-01-05", "net_revenue": 100},
    ...     {"order_id": "O2", "customer_id": "X", "product_id": "P1",
    ...      "order_date": "2024-02-01", "net_revenue": 200},
    ... ])
    >>> rfm = calculate_rfm(facts, date(2024, 2, 11))
    >>> rfm[0].frequency, rfm[0].monetary, rfm[0].recency_days
    (2, Decimal('300.00'), 10)
    """
    if reference_date is None:
        reference_date = date.today()

    customer_data: dict[str, dict] = {}
    for fact in facts:
        data = customer_data.setdefault(
            fact.customer_id,
            {
                "customer_name": fact.customer_name,
                "last_order_date": None,
                "orders": set(),
                "monetary": Decimal("0"),
            },
        )
        if fact.order_date is not None:
            if fact.order_date > reference_date:
                raise ValueError(
                    f"Order date ({fact.order_date}) cannot be after "
                    f"reference_date ({reference_date}) for customer {fact.customer_id}"
                )
            if data["last_order_date"] is None or fact.order_date > data["last_order_date"]:
                data["last_order_date"] = fact.order_date
        if not data["customer_name"] and fact.customer_name:
            data["customer_name"] = fact.customer_name
        data["orders"].add(fact.order_id)
        data["monetary"] += fact.net_revenue

    rfm_metrics: list[RFMMetrics] = []
    for customer_id, data in customer_data.items():
        last_order_date = data["last_order_date"]
        recency_days = (
            (reference_date - last_order_date).days
            if last_order_date is not None
            else None
        )
        rfm_metrics.append(
            RFMMetrics(
                customer_id=customer_id,
                customer_name=data["customer_name"],
                last_order_date=last_order_date,
                recency_days=recency_days,
                frequency=len(data["orders"]),
                monetary=quantize_money(data["monetary"]),
                reference_date=reference_date,
            )
        )

    rfm_metrics.sort(key=lambda m: m.customer_id)
    return rfm_metrics


def ntile(size: int, buckets: int) -> np.ndarray:
    """Return NTILE bucket numbers for ``size`` ordered rows.

    Mirrors SQL ``NTILE(buckets)``: rows keep their order and are split
    into ``buckets`` groups whose sizes differ by at most one, with the
    larger groups first. When there are fewer rows than buckets each row
    gets its own bucket, starting at 1.

    >>> ntile(7, 3).tolist()
    [1, 1, 1, 2, 2, 3, 3]
    """
    if buckets < 1:
        raise ValueError(f"buckets must be positive: {buckets}")
    positions = np.arange(size)
    base, remainder = divmod(size, buckets)
    large_rows = remainder * (base + 1)
    small = remainder + (positions - large_rows) // max(base, 1) + 1
    large = positions // (base + 1) + 1
    return np.where(positions < large_rows, large, small).astype(int)


@dataclass(frozen=True)
class RFMScore:
    """RFM bucket scores for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    r_score:
        Recency score (1-buckets, where the top bucket = most recent)
    f_score:
        Frequency score (1-buckets, where the top bucket = most orders)
    m_score:
        Monetary score (1-buckets, where the top bucket = highest spend)
    rfm_score:
        Combined RFM score string (e.g., "555" for best customers)
    """

    customer_id: str
    r_score: int
    f_score: int
    m_score: int
    rfm_score: str

    def __post_init__(self) -> None:
        """Validate RFM scores."""
        for score_name, score_value in [
            ("r_score", self.r_score),
            ("f_score", self.f_score),
            ("m_score", self.m_score),
        ]:
            if score_value < 1:
                raise ValueError(
                    f"{score_name} must be at least 1: {score_value} (customer_id={self.customer_id})"
                )
        expected_rfm = f"{self.r_score}{self.f_score}{self.m_score}"
        if self.rfm_score != expected_rfm:
            raise ValueError(
                f"rfm_score ({self.rfm_score}) does not match r/f/m scores ({expected_rfm}) (customer_id={self.customer_id})"
            )


def _score_column(
    df: pd.DataFrame, column: str, buckets: int, ascending: bool
) -> pd.Series:
    """Score one dimension with NTILE after a stable sort.

    Ties fall back to customer_id ascending so repeated runs on the same
    snapshot produce the same buckets.
    """
    ordered = df.sort_values(
        [column, "customer_id"],
        ascending=[ascending, True],
        na_position="first",
        kind="mergesort",
    )
    return pd.Series(ntile(len(ordered), buckets), index=ordered.index)


def calculate_rfm_scores(
    rfm_metrics: Sequence[RFMMetrics], buckets: int = DEFAULT_BUCKETS
) -> list[RFMScore]:
    """Score RFM metrics into equal-population buckets.

    Recency is ranked by ``recency_days`` descending, so the least recently
    active customers land in bucket 1 and the most recent in the top bucket.
    Customers without a dated order are ranked first (least recent).
    Frequency and monetary are ranked ascending, so larger values score
    higher.

    Parameters
    ----------
    rfm_metrics:
        RFM metrics to score.
    buckets:
        Number of buckets per dimension (default: 5 for quintiles).

    Returns
    -------
    list[RFMScore]
        RFM scores for each customer, sorted by customer_id. Every bucket
        holds ``floor(N / buckets)`` or ``ceil(N / buckets)`` customers.

    Examples
    --------
    >>> metrics = [
    ...     RFMMetrics("C1", "", date(2024, 1, 30), 2, 5, Decimal("250"), date(2024, 2, 1)),
    ...     RFMMetrics("C2", "", date(2023, 12, 1), 62, 2, Decimal("150"), date(2024, 2, 1)),
    ... ]
    >>> scores = calculate_rfm_scores(metrics)
    >>> scores[0].r_score > scores[1].r_score  # C1 ordered more recently
    True
    """
    if not rfm_metrics:
        return []

    df = pd.DataFrame(
        {
            "customer_id": [m.customer_id for m in rfm_metrics],
            "recency_days": pd.array(
                [m.recency_days for m in rfm_metrics], dtype="Int64"
            ),
            "frequency": [m.frequency for m in rfm_metrics],
            "monetary": [float(m.monetary) for m in rfm_metrics],
        }
    )

    df["r_score"] = _score_column(df, "recency_days", buckets, ascending=False)
    df["f_score"] = _score_column(df, "frequency", buckets, ascending=True)
    df["m_score"] = _score_column(df, "monetary", buckets, ascending=True)

    rfm_scores = [
        RFMScore(
            customer_id=record["customer_id"],
            r_score=int(record["r_score"]),
            f_score=int(record["f_score"]),
            m_score=int(record["m_score"]),
            rfm_score=f"{int(record['r_score'])}{int(record['f_score'])}{int(record['m_score'])}",
        )
        for record in df.to_dict("records")
    ]
    rfm_scores.sort(key=lambda s: s.customer_id)
    return rfm_scores


class RFMSegment(str, Enum):
    """Named customer segments derived from RFM scores."""

    CHAMPIONS = "Champions"
    LOYAL = "Loyal"
    AT_RISK = "At Risk"
    POTENTIAL = "Potential"


def assign_segment(r_score: int, f_score: int, m_score: int) -> RFMSegment:
    """Map a score triple to a segment; the first matching rule wins.

    >>> assign_segment(5, 5, 5).value
    'Champions'
    >>> assign_segment(4, 3, 1).value
    'Loyal'
    >>> assign_segment(1, 2, 2).value
    'At Risk'
    >>> assign_segment(3, 3, 3).value
    'Potential'
    """
    if r_score >= 4 and f_score >= 4 and m_score >= 4:
        return RFMSegment.CHAMPIONS
    if r_score >= 4 and f_score >= 3:
        return RFMSegment.LOYAL
    if r_score <= 2 and f_score <= 2 and m_score <= 2:
        return RFMSegment.AT_RISK
    return RFMSegment.POTENTIAL


@dataclass(frozen=True)
class CustomerSegment:
    """RFM metrics, scores and segment label for one customer."""

    customer_id: str
    customer_name: str
    recency_days: int | None
    frequency: int
    monetary: Decimal
    r_score: int
    f_score: int
    m_score: int
    rfm_segment: str


def segment_customers(
    rfm_metrics: Sequence[RFMMetrics], buckets: int = DEFAULT_BUCKETS
) -> list[CustomerSegment]:
    """Score and label every customer.

    Returns rows ordered by monetary value and frequency, both descending,
    with customer_id as the final tie-break.
    """
    scores = {score.customer_id: score for score in calculate_rfm_scores(rfm_metrics, buckets)}

    segments = []
    for metrics in rfm_metrics:
        score = scores[metrics.customer_id]
        segments.append(
            CustomerSegment(
                customer_id=metrics.customer_id,
                customer_name=metrics.customer_name,
                recency_days=metrics.recency_days,
                frequency=metrics.frequency,
                monetary=metrics.monetary,
                r_score=score.r_score,
                f_score=score.f_score,
                m_score=score.m_score,
                rfm_segment=assign_segment(
                    score.r_score, score.f_score, score.m_score
                ).value,
            )
        )

    segments.sort(key=lambda s: (-s.monetary, -s.frequency, s.customer_id))
    return segments
