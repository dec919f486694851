from .models import (
    BomLine,
    Material,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    SofaMaterial,
    SofaModel,
)
from .errors import AppError, ConflictError, InvalidInputError, NotFoundError, ValidationError

__all__ = [
    "BomLine",
    "Material",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    "SofaMaterial",
    "SofaModel",
    "AppError",
    "ConflictError",
    "InvalidInputError",
    "NotFoundError",
    "ValidationError",
]
