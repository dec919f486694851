from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


class OrderStatus:
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DELIVERED = "delivered"
    STOCK = "stock"
    CANCELLED = "cancelled"

    ALL = (PENDING, IN_PROGRESS, COMPLETED, DELIVERED, STOCK, CANCELLED)


class PaymentMethod:
    CASH = "efectivo"
    TRANSFER = "transferencia"
    CARD = "tarjeta"

    ALL = (CASH, TRANSFER, CARD)


@dataclass(frozen=True)
class Material:
    id: int
    name: str
    type: str
    cost: Decimal
    unit: str


@dataclass(frozen=True)
class SofaModel:
    id: int
    name: str
    description: Optional[str]
    profit_percentage: Decimal
    base_price: Decimal
    final_price: Decimal


@dataclass(frozen=True)
class SofaMaterial:
    sofa_id: int
    material_id: int
    quantity: Decimal


@dataclass(frozen=True)
class BomLine:
    material_id: int
    name: str
    type: str
    unit: str
    cost: Decimal
    quantity: Decimal


@dataclass(frozen=True)
class Order:
    id: int
    customer_name: str
    customer_phone: Optional[str]
    customer_email: Optional[str]
    customer_location: Optional[str]
    customer_address: Optional[str]
    status: str
    delivery_date: Optional[str]
    payment_method: str
    shipping_cost: Decimal
    total_amount: Decimal
    notes: Optional[str]
    created_at: str


@dataclass(frozen=True)
class OrderItem:
    id: int
    order_id: int
    sofa_id: int
    sofa_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class LineQuote:
    sofa_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    selected_material_ids: tuple[int, ...]


@dataclass(frozen=True)
class SalesSummary:
    total_sales: Decimal
    total_orders: int
    completed_orders: int
    pending_orders: int
    completed_pct: int
    pending_pct: int


@dataclass(frozen=True)
class MonthlySales:
    month: int
    label: str
    total: Decimal


@dataclass(frozen=True)
class TopSofa:
    name: str
    quantity: int
    total_sales: Decimal


@dataclass(frozen=True)
class MaterialUsage:
    name: str
    quantity: Decimal


@dataclass(frozen=True)
class DashboardCounts:
    materials: int
    sofa_models: int
    orders: int
