from decimal import Decimal

import pytest

from conftest import seed_catalogue
from fbo.domain.errors import NotFoundError, ValidationError
from fbo.domain.models import OrderStatus
from fbo.domain.pricing import compute_order_total


def test_quote_line_selects_whole_bill_of_materials_by_default(container):
    fabric, foam, sofa_id = seed_catalogue(container)

    quote = container.orders.quote_line(sofa_id, 2)

    # final 14756.30 + surcharge 1500.00 + 800.50
    assert quote.unit_price == Decimal("17056.80")
    assert quote.total_price == Decimal("34113.60")
    assert quote.selected_material_ids == (fabric, foam)


def test_quote_line_with_subset_and_empty_selection(container):
    fabric, foam, sofa_id = seed_catalogue(container)

    only_foam = container.orders.quote_line(sofa_id, 1, [foam])
    none = container.orders.quote_line(sofa_id, 1, [])

    assert only_foam.unit_price == Decimal("15556.80")
    assert none.unit_price == Decimal("14756.30")


def test_quote_line_rejects_material_outside_bill_of_materials(container):
    _, _, sofa_id = seed_catalogue(container)
    other = container.materials.add_material("Cuero", "Tapizado", 9000, "m2")

    with pytest.raises(ValidationError, match="bill of materials"):
        container.orders.quote_line(sofa_id, 1, [other])


@pytest.mark.parametrize("qty", [0, -1, "1.5", 2.5])
def test_quote_line_rejects_non_positive_or_fractional_quantity(container, qty):
    _, _, sofa_id = seed_catalogue(container)
    with pytest.raises(ValidationError):
        container.orders.quote_line(sofa_id, qty)


def test_create_order_snapshots_line_and_order_totals(container):
    fabric, foam, sofa_id = seed_catalogue(container)
    puff = container.sofa_models.create_model("Puff", None, 0, [{"material_id": foam, "quantity": 1}])

    order_id = container.orders.create_order(
        "Juan Perez",
        [
            {"sofa_id": sofa_id, "quantity": 3, "selected_material_ids": []},
            {"sofa_id": puff, "quantity": 2, "selected_material_ids": []},
        ],
        shipping_cost="2500",
        customer_email="juan@example.com",
        delivery_date="2026-11-30",
    )

    order = container.orders.get_order(order_id)
    items = container.orders.items_for_order(order_id)

    assert [(i.sofa_name, i.quantity, i.unit_price, i.total_price) for i in items] == [
        ("Chesterfield", 3, Decimal("14756.30"), Decimal("44268.90")),
        ("Puff", 2, Decimal("800.50"), Decimal("1601.00")),
    ]
    assert order.shipping_cost == Decimal("2500.00")
    assert order.total_amount == compute_order_total(items, order.shipping_cost)
    assert order.total_amount == Decimal("48369.90")
    assert order.status == OrderStatus.PENDING
    assert order.delivery_date == "2026-11-30"


def test_order_prices_do_not_follow_later_model_changes(container):
    fabric, _, sofa_id = seed_catalogue(container)
    order_id = container.orders.create_order("Ana Gomez", [{"sofa_id": sofa_id, "quantity": 1}])
    before = container.orders.items_for_order(order_id)[0].unit_price

    container.sofa_models.update_model(sofa_id, "Chesterfield", None, 100, [{"material_id": fabric, "quantity": 1}])

    assert container.orders.items_for_order(order_id)[0].unit_price == before


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"customer_name": "J"}, "Customer name"),
        ({"status": "lost"}, "status"),
        ({"payment_method": "cheque"}, "payment method"),
        ({"shipping_cost": -1}, "Shipping"),
        ({"customer_email": "not-an-email"}, "email"),
        ({"delivery_date": "30/11/2026"}, "Delivery date"),
        ({"items": []}, "at least one"),
        ({"items": [{"quantity": 1}]}, "sofa_id and quantity"),
        ({"items": [{"sofa_id": "abc", "quantity": 1}]}, "sofa model id"),
        ({"items": [{"sofa_id": 1, "quantity": 1, "selected_material_ids": ["tela"]}]}, "material id"),
    ],
)
def test_create_order_validation(container, kwargs, message):
    _, _, sofa_id = seed_catalogue(container)
    args = {"customer_name": "Juan Perez", "items": [{"sofa_id": sofa_id, "quantity": 1}]}
    args.update(kwargs)
    with pytest.raises(ValidationError, match=message):
        container.orders.create_order(**args)


def test_create_order_with_unknown_model(container):
    with pytest.raises(NotFoundError):
        container.orders.create_order("Juan Perez", [{"sofa_id": 99, "quantity": 1}])
    assert container.orders.list_orders() == []


def test_update_order_keeps_prices(container):
    _, _, sofa_id = seed_catalogue(container)
    order_id = container.orders.create_order("Juan Perez", [{"sofa_id": sofa_id, "quantity": 1}], shipping_cost=100)
    total = container.orders.get_order(order_id).total_amount

    container.orders.update_order(
        order_id,
        "Juan P. Perez",
        OrderStatus.IN_PROGRESS,
        "transferencia",
        customer_location="Cordoba",
        notes="  ",
    )

    order = container.orders.get_order(order_id)
    assert order.customer_name == "Juan P. Perez"
    assert order.status == OrderStatus.IN_PROGRESS
    assert order.payment_method == "transferencia"
    assert order.customer_location == "Cordoba"
    assert order.notes is None
    assert order.total_amount == total


def test_status_filter_and_delete_cascades_items(container):
    _, _, sofa_id = seed_catalogue(container)
    first = container.orders.create_order("Juan Perez", [{"sofa_id": sofa_id, "quantity": 1}])
    second = container.orders.create_order("Ana Gomez", [{"sofa_id": sofa_id, "quantity": 1}])
    container.orders.update_status(second, OrderStatus.COMPLETED)

    assert [o.id for o in container.orders.list_orders(OrderStatus.COMPLETED)] == [second]

    container.orders.delete_order(first)
    assert container.repo.order_items_for_order(first) == []
    with pytest.raises(NotFoundError):
        container.orders.get_order(first)
    with pytest.raises(NotFoundError):
        container.orders.update_status(first, OrderStatus.CANCELLED)


def test_recent_orders_newest_first(container):
    _, _, sofa_id = seed_catalogue(container)
    for day in range(1, 8):
        container.orders.create_order(
            f"Cliente {day}", [{"sofa_id": sofa_id, "quantity": 1}], created_at=f"2026-03-0{day} 10:00:00"
        )

    recent = container.orders.recent_orders()
    assert [o.customer_name for o in recent] == [f"Cliente {d}" for d in (7, 6, 5, 4, 3)]
