"""SQLAlchemy models."""

from gastro.models.restaurant import (
    BarClosing,
    Restaurant,
    RestaurantTable,
    ServiceSession,
    SessionStatus,
    TableStatus,
)
from gastro.models.inventory import Dish, Item, TechnicalSheet
from gastro.models.order import Order, OrderItem, OrderItemStatus, OrderStatus
from gastro.models.stock import MovementType, StockMovement, WithdrawalReason

__all__ = [
    "BarClosing",
    "Dish",
    "Item",
    "MovementType",
    "Order",
    "OrderItem",
    "OrderItemStatus",
    "OrderStatus",
    "Restaurant",
    "RestaurantTable",
    "ServiceSession",
    "SessionStatus",
    "StockMovement",
    "TableStatus",
    "TechnicalSheet",
    "WithdrawalReason",
]
