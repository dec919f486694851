from decimal import Decimal
import itertools

import pytest

from fbo.domain.errors import InvalidInputError
from fbo.domain.models import BomLine
from fbo.domain.pricing import (
    compute_base_price,
    compute_final_price,
    compute_order_line_total,
    compute_order_line_unit_price,
    compute_order_total,
    format_currency,
    from_cents,
    to_cents,
)


def test_base_price_of_empty_bill_of_materials_is_zero():
    assert compute_base_price([]) == Decimal("0")


def test_base_price_is_exact_sum_of_products():
    materials = [
        {"cost": "0.10", "quantity": 3},
        {"cost": "1500.00", "quantity": "6.5"},
        {"cost": "800.50", "quantity": 2},
    ]
    assert compute_base_price(materials) == Decimal("11351.30")


def test_base_price_does_not_drift_over_many_lines():
    materials = [{"cost": 0.1, "quantity": 1}] * 1000
    assert compute_base_price(materials) == Decimal("100.00")


def test_base_price_ignores_line_order():
    materials = [
        {"cost": "12.34", "quantity": "1.5"},
        {"cost": "0.99", "quantity": 7},
        {"cost": "250", "quantity": "0.25"},
    ]
    expected = compute_base_price(materials)
    for perm in itertools.permutations(materials):
        assert compute_base_price(perm) == expected


def test_base_price_accepts_objects_with_cost_and_quantity():
    bom = [
        BomLine(material_id=1, name="Tela", type="Tela", unit="m", cost=Decimal("100.00"), quantity=Decimal("2")),
        BomLine(material_id=2, name="Patas", type="Madera", unit="u", cost=Decimal("25.00"), quantity=Decimal("4")),
    ]
    assert compute_base_price(bom) == Decimal("300.00")


@pytest.mark.parametrize(
    "base, profit, expected",
    [
        (100, 30, "130"),
        (0, 30, "0"),
        (100, 0, "100"),
        ("199.99", "12.5", "224.99"),
    ],
)
def test_final_price_applies_profit_margin(base, profit, expected):
    assert compute_final_price(base, profit) == Decimal(expected)


def test_order_line_unit_price_adds_selected_material_costs():
    assert compute_order_line_unit_price(200, [{"cost": 10}, {"cost": 5}]) == Decimal("215")


def test_order_line_unit_price_without_surcharge_is_model_price():
    assert compute_order_line_unit_price("1234.56", []) == Decimal("1234.56")


def test_order_line_total():
    assert compute_order_line_total(215, 3) == Decimal("645")


def test_order_total_includes_shipping():
    assert compute_order_total([{"total_price": 645}, {"total_price": 100}], 50) == Decimal("795")


def test_recomputing_with_same_inputs_gives_same_result():
    materials = [{"cost": "33.33", "quantity": 3}]
    first = compute_final_price(compute_base_price(materials), 17)
    for _ in range(5):
        assert compute_final_price(compute_base_price(materials), 17) == first


@pytest.mark.parametrize("bad", ["NaN", "Infinity", float("inf"), "abc", None, True])
def test_non_numeric_input_is_rejected(bad):
    with pytest.raises(InvalidInputError):
        compute_final_price(bad, 10)


def test_missing_field_is_rejected():
    with pytest.raises(InvalidInputError):
        compute_base_price([{"cost": 10}])


def test_cents_helpers_and_display_format():
    assert to_cents("1234.5") == 123450
    assert from_cents(123450) == Decimal("1234.50")
    assert format_currency("1234567.891") == "$ 1.234.567,89"
    assert format_currency(-5) == "-$ 5,00"
