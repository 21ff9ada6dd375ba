"""Shared utilities for pandas conversion operations."""

from decimal import Decimal
from typing import Any


def decimal_to_float(value: Decimal) -> float:
    """Convert Decimal to float for pandas compatibility."""
    return float(value)


def to_frame_value(value: Any) -> Any:
    """Convert a result value for a DataFrame cell (Decimal becomes float).

    Example:
        >>> to_frame_value(Decimal("12.50"))
        12.5
    """
    if isinstance(value, Decimal):
        return decimal_to_float(value)
    return value
