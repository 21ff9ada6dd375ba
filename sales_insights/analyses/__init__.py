"""Sales analyses built on the foundation components.

Each analysis is a pure function over a snapshot of sales facts and returns
a list of frozen rows ready for a reporting tool:

1. Revenue trends - monthly running revenue, segment/region growth, discount leakage
2. Products - top products by profit, category profitability, margin bands, affinity
3. Orders - average order value and basket size
4. Customers - RFM segmentation, high-value customers at risk
5. Reps - revenue and profit leaderboard
"""

from .customers import CustomerAtRisk, high_value_at_risk, rfm_segmentation
from .orders import OrderValueSummary, order_value_summary
from .products import (
    CategoryProfitability,
    MarginBand,
    ProductMarginBand,
    ProductPair,
    ProductProfit,
    category_profitability,
    classify_margin,
    product_affinity,
    product_margin_bands,
    top_products_by_profit,
)
from .reps import RepPerformance, sales_rep_leaderboard
from .revenue import (
    DiscountLeakage,
    MonthlyRevenue,
    SegmentRegionGrowth,
    discount_leakage,
    monthly_revenue,
    revenue_growth_by_segment_region,
)

__all__ = [
    # Revenue
    "MonthlyRevenue",
    "SegmentRegionGrowth",
    "DiscountLeakage",
    "monthly_revenue",
    "revenue_growth_by_segment_region",
    "discount_leakage",
    # Products
    "ProductProfit",
    "CategoryProfitability",
    "MarginBand",
    "ProductMarginBand",
    "ProductPair",
    "top_products_by_profit",
    "category_profitability",
    "classify_margin",
    "product_margin_bands",
    "product_affinity",
    # Orders
    "OrderValueSummary",
    "order_value_summary",
    # Customers
    "CustomerAtRisk",
    "rfm_segmentation",
    "high_value_at_risk",
    # Reps
    "RepPerformance",
    "sales_rep_leaderboard",
]
