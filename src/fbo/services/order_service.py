from __future__ import annotations

import logging
import re
from datetime import date
from typing import Callable, Iterable, Optional

from fbo.domain.errors import NotFoundError, ValidationError
from fbo.domain.models import LineQuote, Order, OrderItem, OrderStatus, PaymentMethod
from fbo.domain.pricing import (
    compute_order_line_total,
    compute_order_line_unit_price,
    compute_order_total,
    to_cents,
    to_decimal,
)
from fbo.repositories.unit_of_work import RepositoryUnitOfWork, UnitOfWork, now_iso

log = logging.getLogger("fbo.orders")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _optional(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


class OrderService:
    def __init__(self, repo, uow_factory: Callable[[], UnitOfWork] | None = None):
        self.repo = repo
        self.uow_factory = uow_factory or (lambda: RepositoryUnitOfWork(repo))

    @staticmethod
    def _quantity(value) -> int:
        qty = to_decimal(value)
        if qty <= 0 or qty != qty.to_integral_value():
            raise ValidationError("Quantity must be a positive integer.")
        return int(qty)

    def quote_line(self, sofa_id: int, quantity, selected_material_ids: Optional[Iterable[int]] = None) -> LineQuote:
        """
        Price one order line.

        The surcharge pool is the model's own bill of materials. With
        selected_material_ids=None every material in it is selected, which is
        what the order form does when a model is picked.
        """
        qty = self._quantity(quantity)
        try:
            sofa_id = int(sofa_id)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid sofa model id: {sofa_id!r}") from e
        model = self.repo.get_sofa_model(sofa_id)
        if not model:
            raise NotFoundError("Sofa model not found.")

        pool = {b.material_id: b for b in self.repo.bom_for_model(model.id)}
        if selected_material_ids is None:
            selected = list(pool)
        else:
            selected = []
            for mid in selected_material_ids:
                try:
                    mid = int(mid)
                except (TypeError, ValueError) as e:
                    raise ValidationError(f"Invalid material id: {mid!r}") from e
                if mid not in pool:
                    raise ValidationError(f"Material {mid} is not part of the model's bill of materials.")
                if mid not in selected:
                    selected.append(mid)

        unit_price = compute_order_line_unit_price(model.final_price, [pool[mid] for mid in selected])
        return LineQuote(
            sofa_id=model.id,
            quantity=qty,
            unit_price=unit_price,
            total_price=compute_order_line_total(unit_price, qty),
            selected_material_ids=tuple(selected),
        )

    def _clean_fields(
        self,
        customer_name: str,
        status: str,
        payment_method: str,
        delivery_date: Optional[str],
        customer_phone: Optional[str],
        customer_email: Optional[str],
        customer_location: Optional[str],
        customer_address: Optional[str],
        notes: Optional[str],
    ) -> dict:
        customer_name = (customer_name or "").strip()
        if len(customer_name) < 2:
            raise ValidationError("Customer name must be at least 2 characters.")
        if status not in OrderStatus.ALL:
            raise ValidationError(f"Unknown order status: {status}")
        if payment_method not in PaymentMethod.ALL:
            raise ValidationError(f"Unknown payment method: {payment_method}")

        email = _optional(customer_email)
        if email and not _EMAIL_RE.match(email):
            raise ValidationError("Invalid email address.")

        delivery = _optional(delivery_date)
        if delivery:
            try:
                delivery = date.fromisoformat(delivery).isoformat()
            except ValueError as e:
                raise ValidationError("Delivery date must be YYYY-MM-DD.") from e

        return {
            "customer_name": customer_name,
            "customer_phone": _optional(customer_phone),
            "customer_email": email,
            "customer_location": _optional(customer_location),
            "customer_address": _optional(customer_address),
            "status": status,
            "delivery_date": delivery,
            "payment_method": payment_method,
            "notes": _optional(notes),
        }

    def create_order(
        self,
        customer_name: str,
        items: Iterable[dict],
        status: str = OrderStatus.PENDING,
        payment_method: str = PaymentMethod.CASH,
        shipping_cost=0,
        delivery_date: Optional[str] = None,
        customer_phone: Optional[str] = None,
        customer_email: Optional[str] = None,
        customer_location: Optional[str] = None,
        customer_address: Optional[str] = None,
        notes: Optional[str] = None,
        created_at: Optional[str] = None,
    ) -> int:
        """
        items: [{sofa_id, quantity, selected_material_ids?}]

        Unit and total prices are frozen on the order items at creation.
        """
        fields = self._clean_fields(
            customer_name, status, payment_method, delivery_date,
            customer_phone, customer_email, customer_location, customer_address, notes,
        )
        shipping = to_decimal(shipping_cost)
        if shipping < 0:
            raise ValidationError("Shipping cost must be >= 0.")

        items = list(items)
        if not items:
            raise ValidationError("Order must contain at least one sofa model.")

        quotes = []
        for it in items:
            try:
                sofa_id, quantity = it["sofa_id"], it["quantity"]
            except (KeyError, TypeError) as e:
                raise ValidationError(f"Order line needs sofa_id and quantity: {it!r}") from e
            quotes.append(self.quote_line(sofa_id, quantity, it.get("selected_material_ids")))
        total = compute_order_total(quotes, shipping)

        with self.uow_factory() as uow:
            order_id = uow.create_order(
                fields,
                to_cents(shipping),
                to_cents(total),
                [
                    {
                        "sofa_id": q.sofa_id,
                        "quantity": q.quantity,
                        "unit_price_cents": to_cents(q.unit_price),
                        "total_price_cents": to_cents(q.total_price),
                    }
                    for q in quotes
                ],
                created_at=created_at,
            )
        log.info("order_created order_id=%s items=%s shipping=%s total=%s", order_id, len(quotes), shipping, total)
        return order_id

    def update_order(
        self,
        order_id: int,
        customer_name: str,
        status: str,
        payment_method: str,
        delivery_date: Optional[str] = None,
        customer_phone: Optional[str] = None,
        customer_email: Optional[str] = None,
        customer_location: Optional[str] = None,
        customer_address: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        """Edits contact, status and delivery data. Prices stay as snapshotted."""
        fields = self._clean_fields(
            customer_name, status, payment_method, delivery_date,
            customer_phone, customer_email, customer_location, customer_address, notes,
        )
        updated = self.repo.update_order(int(order_id), fields, now_iso())
        if not updated:
            raise NotFoundError("Order not found.")
        log.info("order_updated order_id=%s status=%s", order_id, status)

    def update_status(self, order_id: int, status: str) -> None:
        if status not in OrderStatus.ALL:
            raise ValidationError(f"Unknown order status: {status}")
        updated = self.repo.update_order_status(int(order_id), status, now_iso())
        if not updated:
            raise NotFoundError("Order not found.")
        log.info("order_status_changed order_id=%s status=%s", order_id, status)

    def delete_order(self, order_id: int) -> None:
        removed = self.repo.delete_order(int(order_id))
        if not removed:
            raise NotFoundError("Order not found.")
        log.info("order_deleted order_id=%s", order_id)

    def get_order(self, order_id: int) -> Order:
        order = self.repo.get_order(int(order_id))
        if not order:
            raise NotFoundError("Order not found.")
        return order

    def items_for_order(self, order_id: int) -> list[OrderItem]:
        self.get_order(order_id)
        return self.repo.order_items_for_order(int(order_id))

    def list_orders(self, status: Optional[str] = None) -> list[Order]:
        if status is not None and status not in OrderStatus.ALL:
            raise ValidationError(f"Unknown order status: {status}")
        return self.repo.list_orders(status=status)

    def recent_orders(self, limit: int = 5) -> list[Order]:
        return self.repo.list_orders(limit=limit)
