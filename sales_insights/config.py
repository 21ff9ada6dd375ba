"""Analysis parameters shared by every result set."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import date
from decimal import Decimal
from typing import Any, Mapping

from sales_insights.foundation.sales_fact import PeriodGranularity, parse_date


_TRUE_STRINGS = {"true", "yes", "1"}
_FALSE_STRINGS = {"false", "no", "0"}


def _parse_flag(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration for a run of the sales analyses.

    Attributes
    ----------
    reference_date:
        Date recency and lookback windows are measured against. ``None``
        means today.
    lookback_days:
        Days without orders before a high-value customer counts as at risk.
    rfm_buckets:
        Quantile buckets per RFM dimension.
    low_margin_threshold:
        Margin ratio below which a product is "Low Margin".
    high_margin_threshold:
        Margin ratio from which a product is "High Margin".
    min_lifetime_value:
        Lifetime net revenue a customer needs to be considered high value.
    top_products_limit:
        Rows in the top-products-by-profit ranking.
    affinity_limit:
        Rows in the product-pair affinity ranking.
    cohort_granularity:
        Period used to build cohorts and measure activity.
    zero_fill_cohorts:
        Emit a dense cohort/period grid with zero rows for inactive periods.
    """

    reference_date: date | None = None
    lookback_days: int = 90
    rfm_buckets: int = 5
    low_margin_threshold: Decimal = Decimal("0.10")
    high_margin_threshold: Decimal = Decimal("0.30")
    min_lifetime_value: Decimal = Decimal("1000")
    top_products_limit: int = 10
    affinity_limit: int = 20
    cohort_granularity: PeriodGranularity = PeriodGranularity.QUARTER
    zero_fill_cohorts: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.lookback_days < 0:
            raise ValueError(f"lookback_days cannot be negative: {self.lookback_days}")
        if self.rfm_buckets < 1:
            raise ValueError(f"rfm_buckets must be positive: {self.rfm_buckets}")
        if not 0 <= self.low_margin_threshold <= self.high_margin_threshold:
            raise ValueError(
                f"Margin thresholds must satisfy 0 <= low <= high: "
                f"low={self.low_margin_threshold}, high={self.high_margin_threshold}"
            )
        if self.min_lifetime_value < 0:
            raise ValueError(
                f"min_lifetime_value cannot be negative: {self.min_lifetime_value}"
            )
        for name in ("top_products_limit", "affinity_limit"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be positive: {getattr(self, name)}")

    @property
    def effective_reference_date(self) -> date:
        return self.reference_date or date.today()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AnalysisConfig":
        """Build a config from JSON-like data.

        Unknown keys raise ``ValueError``. Dates may be ISO strings, money
        and ratio values may be strings or numbers, and the cohort
        granularity may be given by name.
        """
        return cls().with_overrides(data)

    def with_overrides(self, overrides: Mapping[str, Any]) -> "AnalysisConfig":
        """Return a copy with ``overrides`` applied and coerced."""
        known = {field.name for field in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {unknown}")

        values: dict[str, Any] = {}
        for name, value in overrides.items():
            if name == "reference_date":
                values[name] = parse_date(value)
            elif name in ("low_margin_threshold", "high_margin_threshold", "min_lifetime_value"):
                values[name] = Decimal(str(value))
            elif name == "cohort_granularity":
                values[name] = PeriodGranularity(value)
            elif name == "zero_fill_cohorts":
                values[name] = _parse_flag(name, value)
            else:
                values[name] = int(value)
        return replace(self, **values)
