"""Sales fact records and the builder that validates raw rows.

A sales fact is the denormalised (order, product) line that every analysis
in this package reads: order and customer identifiers, product and category,
the sale amounts after discount, cost and profit. Revenue, cost and profit
are computed upstream; the builder only derives them when a raw row does not
provide them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Iterable, Mapping

MONEY_PRECISION = Decimal("0.01")

#: Columns every raw row must carry.
REQUIRED_FIELDS = ("order_id", "customer_id", "product_id")


def quantize_money(value: Decimal) -> Decimal:
    """Round a money amount half-up to cents."""
    return value.quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class SalesFact:
    """One sales line: a product sold within an order.

    Attributes
    ----------
    order_id:
        Order the line belongs to.
    order_date:
        Calendar date of the order. ``None`` when the source row had no date;
        date-keyed analyses skip such rows.
    customer_id:
        Customer who placed the order.
    product_id:
        Product sold on this line.
    quantity:
        Units sold.
    unit_price:
        List price per unit before discount.
    discount_rate:
        Fraction of the gross amount given away, in [0, 1].
    net_revenue:
        Revenue after discount.
    total_cost:
        Cost of goods for the line.
    profit:
        ``net_revenue - total_cost`` as computed upstream.
    customer_name, product_name, category_name, segment, region,
    employee_id, sales_rep:
        Descriptive attributes joined in from the reference tables.
    """

    order_id: str
    order_date: date | None
    customer_id: str
    product_id: str
    quantity: int
    unit_price: Decimal
    discount_rate: Decimal
    net_revenue: Decimal
    total_cost: Decimal
    profit: Decimal
    customer_name: str = ""
    product_name: str = ""
    category_name: str = ""
    segment: str = ""
    region: str = ""
    employee_id: str = ""
    sales_rep: str = ""

    def __post_init__(self) -> None:
        """Validate sales fact values."""
        for name in REQUIRED_FIELDS:
            if not getattr(self, name):
                raise ValueError(f"{name} must not be empty (order_id={self.order_id!r})")
        if self.quantity < 0:
            raise ValueError(
                f"Quantity cannot be negative: {self.quantity} (order_id={self.order_id})"
            )
        if self.unit_price < 0:
            raise ValueError(
                f"Unit price cannot be negative: {self.unit_price} (order_id={self.order_id})"
            )
        if not 0 <= self.discount_rate <= 1:
            raise ValueError(
                f"Discount rate must be between 0 and 1: {self.discount_rate} "
                f"(order_id={self.order_id})"
            )
        if self.total_cost < 0:
            raise ValueError(
                f"Total cost cannot be negative: {self.total_cost} (order_id={self.order_id})"
            )

    @property
    def gross_amount(self) -> Decimal:
        """Sale amount before discount."""
        return self.unit_price * self.quantity

    @property
    def net_amount(self) -> Decimal:
        """Sale amount after discount, recomputed from price, quantity and rate."""
        return self.gross_amount * (1 - self.discount_rate)

    @property
    def discount_amount(self) -> Decimal:
        return self.gross_amount - self.net_amount


class PeriodGranularity(str, Enum):
    """Calendar periods used to bucket order dates."""

    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


def period_start(day: date, granularity: PeriodGranularity) -> date:
    """Return the first day of the period containing ``day``."""

    if granularity is PeriodGranularity.MONTH:
        return date(day.year, day.month, 1)
    if granularity is PeriodGranularity.QUARTER:
        return date(day.year, ((day.month - 1) // 3) * 3 + 1, 1)
    if granularity is PeriodGranularity.YEAR:
        return date(day.year, 1, 1)
    raise ValueError(f"Unsupported granularity: {granularity}")  # pragma: no cover


def next_period_start(start: date, granularity: PeriodGranularity) -> date:
    """Return the first day of the period following the one starting at ``start``."""

    if granularity is PeriodGranularity.MONTH:
        return (start.replace(day=28) + timedelta(days=4)).replace(day=1)
    if granularity is PeriodGranularity.QUARTER:
        month = start.month + 3
        if month > 12:
            return date(start.year + 1, month - 12, 1)
        return date(start.year, month, 1)
    if granularity is PeriodGranularity.YEAR:
        return date(start.year + 1, 1, 1)
    raise ValueError(f"Unsupported granularity: {granularity}")  # pragma: no cover


def period_label(day: date, granularity: PeriodGranularity) -> str:
    """Return the display label of the period containing ``day``.

    >>> period_label(date(2023, 5, 17), PeriodGranularity.QUARTER)
    '2023-Q2'
    >>> period_label(date(2023, 5, 17), PeriodGranularity.MONTH)
    '2023-05'
    """

    if granularity is PeriodGranularity.MONTH:
        return f"{day.year}-{day.month:02d}"
    if granularity is PeriodGranularity.QUARTER:
        return f"{day.year}-Q{(day.month - 1) // 3 + 1}"
    if granularity is PeriodGranularity.YEAR:
        return f"{day.year}"
    raise ValueError(f"Unsupported granularity: {granularity}")  # pragma: no cover


def parse_date(value: Any) -> date | None:
    """Normalise a raw date value to ``date``.

    Accepts ``date``/``datetime`` instances and ISO 8601 strings. Empty
    values (``None``, ``""``, pandas ``NaT``) become ``None``.
    """

    if value is None or value == "":
        return None
    # NaN and pandas.NaT compare unequal to themselves
    if value != value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    to_pydatetime = getattr(value, "to_pydatetime", None)
    if to_pydatetime is not None:
        return to_pydatetime().date()
    raise TypeError(f"Unsupported date value: {value!r}")


def _to_decimal(value: Any, field_name: str, idx: int) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(
            f"Row {idx}: {field_name} is not numeric",
            {"index": idx, "value": value},
        ) from exc
    # NaN and Infinity parse as Decimal but break every comparison downstream
    if not result.is_finite():
        raise ValueError(
            f"Row {idx}: {field_name} is not numeric",
            {"index": idx, "value": value},
        )
    return result


class SalesFactBuilder:
    """Build validated sales facts from raw row mappings.

    Raw rows use the column names of the sales fact view. ``net_revenue``,
    ``total_cost`` and ``profit`` are optional: missing values are derived
    from price, quantity, discount and ``unit_cost``.
    """

    def build(self, rows: Iterable[Mapping[str, Any]]) -> list[SalesFact]:
        return [self._build_fact(idx, row) for idx, row in enumerate(rows)]

    @staticmethod
    def _build_fact(idx: int, row: Mapping[str, Any]) -> SalesFact:
        try:
            order_id = str(row["order_id"])
            customer_id = str(row["customer_id"])
            product_id = str(row["product_id"])
        except KeyError as exc:
            raise KeyError(f"Row at index {idx} missing key {exc.args[0]}") from exc

        raw_date = row.get("order_date", row.get("order_ts"))
        try:
            order_date = parse_date(raw_date)
        except ValueError as exc:
            raise ValueError(
                f"Row {idx}: order_date is not an ISO date",
                {"index": idx, "value": raw_date},
            ) from exc

        quantity_value = row.get("quantity", 1)
        if isinstance(quantity_value, float) and not quantity_value.is_integer():
            raise TypeError(
                "Quantity must be a whole number",
                {"index": idx, "quantity": quantity_value},
            )
        quantity = int(quantity_value)

        unit_price = _to_decimal(row.get("unit_price", 0), "unit_price", idx)
        discount_rate = _to_decimal(row.get("discount_rate") or 0, "discount_rate", idx)

        if row.get("net_revenue") is not None:
            net_revenue = _to_decimal(row["net_revenue"], "net_revenue", idx)
        else:
            net_revenue = quantize_money(unit_price * quantity * (1 - discount_rate))

        if row.get("total_cost") is not None:
            total_cost = _to_decimal(row["total_cost"], "total_cost", idx)
        else:
            unit_cost = _to_decimal(row.get("unit_cost") or 0, "unit_cost", idx)
            total_cost = quantize_money(unit_cost * quantity)

        if row.get("profit") is not None:
            profit = _to_decimal(row["profit"], "profit", idx)
        else:
            profit = net_revenue - total_cost

        customer_name = row.get("customer_name")
        if not customer_name and (row.get("first_name") or row.get("last_name")):
            customer_name = f"{row.get('first_name', '')} {row.get('last_name', '')}".strip()

        return SalesFact(
            order_id=order_id,
            order_date=order_date,
            customer_id=customer_id,
            product_id=product_id,
            quantity=quantity,
            unit_price=unit_price,
            discount_rate=discount_rate,
            net_revenue=net_revenue,
            total_cost=total_cost,
            profit=profit,
            customer_name=str(customer_name or ""),
            product_name=str(row.get("product_name") or ""),
            category_name=str(row.get("category_name") or ""),
            segment=str(row.get("segment") or ""),
            region=str(row.get("region") or ""),
            employee_id=str(row.get("employee_id") or ""),
            sales_rep=str(row.get("sales_rep") or ""),
        )


def fact_to_dict(fact: SalesFact) -> dict[str, object]:
    """Return a JSON-serialisable representation of a sales fact."""

    return {
        "order_id": fact.order_id,
        "order_date": fact.order_date.isoformat() if fact.order_date else None,
        "customer_id": fact.customer_id,
        "customer_name": fact.customer_name,
        "product_id": fact.product_id,
        "product_name": fact.product_name,
        "category_name": fact.category_name,
        "quantity": fact.quantity,
        "unit_price": str(fact.unit_price),
        "discount_rate": str(fact.discount_rate),
        "net_revenue": str(fact.net_revenue),
        "total_cost": str(fact.total_cost),
        "profit": str(fact.profit),
        "segment": fact.segment,
        "region": fact.region,
        "employee_id": fact.employee_id,
        "sales_rep": fact.sales_rep,
    }
