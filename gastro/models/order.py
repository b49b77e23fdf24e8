"""Order aggregate: orders and their items."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from gastro.db.base import Base, TenantMixin, VersionMixin
from gastro.models.validators import non_negative, positive


class OrderStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"  # Paid sale
    CANCELLED = "cancelled"  # Released with nothing to charge


class OrderItemStatus(str, Enum):
    PENDING = "pending"  # Waiting on the kitchen
    READY = "ready"


class Order(Base, TenantMixin, VersionMixin):
    """A table or counter order.

    ``total`` always equals the sum of ``quantity * unit_price`` over the
    order's live items. Closed and cancelled orders are immutable.
    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    table_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("restaurant_tables.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # Counter / take-away orders are labelled by customer instead of table
    customer_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=OrderStatus.OPEN.value, nullable=False, index=True)
    waiter_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    waiter_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    guest_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    payment_method: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    service_session_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("service_sessions.id", ondelete="SET NULL"), nullable=True, index=True
    )
    opened_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )
    table: Mapped[Optional["RestaurantTable"]] = relationship("RestaurantTable")

    @validates("guest_count")
    def _validate_guest_count(self, key, value):
        return positive(key, value)

    @validates("total")
    def _validate_total(self, key, value):
        return non_negative(key, value)

    @property
    def is_open(self) -> bool:
        return self.status == OrderStatus.OPEN.value

    @property
    def label(self) -> str:
        """Human label used in ledger reasons: ``Table 4`` or ``Counter - Ana``."""
        if self.table is not None:
            return self.table.label
        return f"Counter - {self.customer_name}" if self.customer_name else "Counter"


class OrderItem(Base):
    """One line of an order: a dish (kitchen) or a direct-sale item."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    dish_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("dishes.id", ondelete="SET NULL"), nullable=True, index=True
    )
    item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # Snapshot of the dish/item name at the time of sale
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=OrderItemStatus.PENDING.value, nullable=False, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    ready_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="items")

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return positive(key, value)

    @validates("unit_price")
    def _validate_unit_price(self, key, value):
        return non_negative(key, value)

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.quantity) * Decimal(self.unit_price)

    @property
    def is_direct_sale(self) -> bool:
        return self.dish_id is None and self.item_id is not None


# Forward references
from gastro.models.restaurant import RestaurantTable  # noqa: E402,F401
