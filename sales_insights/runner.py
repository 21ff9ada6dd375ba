"""Run named analyses against a snapshot of sales facts.

The runner is the single entry point the CLI and any service wrapper use:
a request names one analysis plus optional parameter overrides, the runner
resolves it from the registry, executes it over an immutable fact snapshot
and returns a tabular result set.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

import structlog
from pydantic import BaseModel, Field

from sales_insights.analyses import (
    category_profitability,
    discount_leakage,
    high_value_at_risk,
    monthly_revenue,
    order_value_summary,
    product_affinity,
    product_margin_bands,
    revenue_growth_by_segment_region,
    rfm_segmentation,
    sales_rep_leaderboard,
    top_products_by_profit,
)
from sales_insights.analyses.customers import CustomerAtRisk
from sales_insights.analyses.orders import OrderValueSummary
from sales_insights.analyses.products import (
    CategoryProfitability,
    ProductMarginBand,
    ProductPair,
    ProductProfit,
)
from sales_insights.analyses.reps import RepPerformance
from sales_insights.analyses.revenue import (
    DiscountLeakage,
    MonthlyRevenue,
    SegmentRegionGrowth,
)
from sales_insights.config import AnalysisConfig
from sales_insights.foundation.cohorts import CohortRetention, calculate_cohort_retention
from sales_insights.foundation.rfm import CustomerSegment
from sales_insights.foundation.sales_fact import SalesFact

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AnalysisSpec:
    """Registry entry: how to run one analysis and the row type it returns."""

    name: str
    description: str
    row_type: type
    run: Callable[[Sequence[SalesFact], AnalysisConfig], Any]

    @property
    def columns(self) -> list[str]:
        return [field.name for field in fields(self.row_type)]


ANALYSES: dict[str, AnalysisSpec] = {
    spec.name: spec
    for spec in (
        AnalysisSpec(
            "monthly_revenue",
            "Monthly net revenue with running total",
            MonthlyRevenue,
            lambda facts, config: monthly_revenue(facts),
        ),
        AnalysisSpec(
            "top_products",
            "Top products by profit with margin",
            ProductProfit,
            lambda facts, config: top_products_by_profit(
                facts, limit=config.top_products_limit
            ),
        ),
        AnalysisSpec(
            "category_profitability",
            "Revenue, cost and profit by category",
            CategoryProfitability,
            lambda facts, config: category_profitability(facts),
        ),
        AnalysisSpec(
            "order_value",
            "Average order value and items per order",
            OrderValueSummary,
            lambda facts, config: [order_value_summary(facts)],
        ),
        AnalysisSpec(
            "rfm_segments",
            "RFM scores and customer segments",
            CustomerSegment,
            lambda facts, config: rfm_segmentation(
                facts, config.effective_reference_date, buckets=config.rfm_buckets
            ),
        ),
        AnalysisSpec(
            "cohort_retention",
            "Retention by first-purchase cohort",
            CohortRetention,
            lambda facts, config: calculate_cohort_retention(
                facts,
                granularity=config.cohort_granularity,
                zero_fill=config.zero_fill_cohorts,
            ),
        ),
        AnalysisSpec(
            "segment_region_growth",
            "Revenue by segment and region with year-over-year growth",
            SegmentRegionGrowth,
            lambda facts, config: revenue_growth_by_segment_region(facts),
        ),
        AnalysisSpec(
            "product_affinity",
            "Product pairs bought in the same order",
            ProductPair,
            lambda facts, config: product_affinity(facts, limit=config.affinity_limit),
        ),
        AnalysisSpec(
            "customers_at_risk",
            "High-value customers without recent orders",
            CustomerAtRisk,
            lambda facts, config: high_value_at_risk(
                facts,
                config.effective_reference_date,
                min_lifetime_value=config.min_lifetime_value,
                lookback_days=config.lookback_days,
            ),
        ),
        AnalysisSpec(
            "margin_bands",
            "Product profit with margin bands",
            ProductMarginBand,
            lambda facts, config: product_margin_bands(
                facts,
                low_threshold=config.low_margin_threshold,
                high_threshold=config.high_margin_threshold,
            ),
        ),
        AnalysisSpec(
            "discount_leakage",
            "Dollars lost to discounts by month",
            DiscountLeakage,
            lambda facts, config: discount_leakage(facts),
        ),
        AnalysisSpec(
            "rep_leaderboard",
            "Sales rep revenue and profit ranks",
            RepPerformance,
            lambda facts, config: sales_rep_leaderboard(facts),
        ),
    )
}


class AnalysisRequest(BaseModel):
    """Request to run one analysis."""

    analysis: str = Field(description="Registered analysis name, e.g. 'rfm_segments'")
    parameters: dict[str, Any] = Field(
        default_factory=dict,
        description="Overrides for AnalysisConfig fields (e.g. reference_date, lookback_days)",
    )


class AnalysisResult(BaseModel):
    """Tabular result set of one analysis."""

    analysis: str
    columns: list[str]
    rows: list[dict[str, Any]]
    row_count: int
    generated_at: datetime


def get_analysis(name: str) -> AnalysisSpec:
    """Return the registry entry for ``name``."""
    try:
        return ANALYSES[name]
    except KeyError:
        raise ValueError(
            f"Unknown analysis '{name}'. Available: {', '.join(sorted(ANALYSES))}"
        ) from None


def run_analysis(
    request: AnalysisRequest,
    facts: Sequence[SalesFact],
    config: AnalysisConfig | None = None,
) -> AnalysisResult:
    """Run the requested analysis over ``facts``.

    Parameters
    ----------
    request:
        Analysis name and parameter overrides.
    facts:
        Immutable snapshot of sales facts.
    config:
        Base configuration; request parameters are applied on top of it.
    """
    spec = get_analysis(request.analysis)
    config = (config or AnalysisConfig()).with_overrides(request.parameters)

    log = logger.bind(analysis=spec.name, facts=len(facts))
    log.info("analysis_started")
    rows = [asdict(row) for row in spec.run(facts, config)]
    log.info("analysis_completed", rows=len(rows))

    return AnalysisResult(
        analysis=spec.name,
        columns=spec.columns,
        rows=rows,
        row_count=len(rows),
        generated_at=datetime.now(timezone.utc),
    )


def run_all(
    facts: Sequence[SalesFact],
    config: AnalysisConfig | None = None,
    names: Sequence[str] | None = None,
) -> dict[str, AnalysisResult]:
    """Run several analyses (all registered ones by default) over the same snapshot."""
    selected = list(names) if names else list(ANALYSES)
    for name in selected:
        get_analysis(name)
    logger.info("run_all_started", analyses=selected)
    return {
        name: run_analysis(AnalysisRequest(analysis=name), facts, config)
        for name in selected
    }
