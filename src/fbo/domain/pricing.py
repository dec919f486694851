"""Pricing engine.

Pure functions that derive the monetary fields stored on sofa models, order
items and orders:

  base_price  = sum(cost * quantity) over the model's bill of materials
  final_price = base_price * (1 + profit_percentage / 100)
  unit_price  = model final_price + sum(cost) of the surcharge materials
  total_price = unit_price * quantity
  order total = sum(line total_price) + shipping_cost

All arithmetic is exact ``Decimal``; each result is rounded to cents
(half-up) once, when it leaves the function.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from fbo.domain.errors import InvalidInputError

CENTS = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise InvalidInputError(f"Not a number: {value!r}")
    elif isinstance(value, (int, float, str)):
        try:
            # floats go through str() so 0.1 stays 0.1
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise InvalidInputError(f"Not a number: {value!r}") from e
    else:
        raise InvalidInputError(f"Not a number: {value!r}")

    if not result.is_finite():
        raise InvalidInputError(f"Value must be finite. Received: {value!r}")
    return result


def to_money(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_cents(value: Any) -> int:
    return int(to_money(value) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(int(cents)) / HUNDRED).quantize(CENTS)


def format_currency(value: Any) -> str:
    """Display format used by the dashboard, e.g. ``$ 1.234,50``."""
    amount = to_money(value)
    sign = "-" if amount < 0 else ""
    text = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}$ {text}"


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        try:
            return item[name]
        except KeyError as e:
            raise InvalidInputError(f"Missing field: {name}") from e
    try:
        return getattr(item, name)
    except AttributeError as e:
        raise InvalidInputError(f"Missing field: {name}") from e


def compute_base_price(materials: Iterable[Any]) -> Decimal:
    total = ZERO
    for m in materials:
        total += to_decimal(_field(m, "cost")) * to_decimal(_field(m, "quantity"))
    return total.quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_final_price(base_price: Any, profit_percentage: Any) -> Decimal:
    factor = 1 + to_decimal(profit_percentage) / HUNDRED
    return (to_decimal(base_price) * factor).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_order_line_unit_price(model_final_price: Any, selected_materials: Iterable[Any]) -> Decimal:
    surcharge = sum((to_decimal(_field(m, "cost")) for m in selected_materials), ZERO)
    return (to_decimal(model_final_price) + surcharge).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_order_line_total(unit_price: Any, quantity: Any) -> Decimal:
    return (to_decimal(unit_price) * to_decimal(quantity)).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_order_total(lines: Iterable[Any], shipping_cost: Any) -> Decimal:
    subtotal = sum((to_decimal(_field(line, "total_price")) for line in lines), ZERO)
    return (subtotal + to_decimal(shipping_cost)).quantize(CENTS, rounding=ROUND_HALF_UP)
