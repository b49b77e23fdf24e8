"""Restaurant models: the tenant, its tables, service sessions and day closings."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from gastro.db.base import Base, TenantMixin, TimestampMixin
from gastro.models.validators import non_negative, not_blank, positive


class TableStatus(str, Enum):
    FREE = "free"
    OCCUPIED = "occupied"
    RESERVED = "reserved"


class SessionStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class Restaurant(Base, TimestampMixin):
    """A tenant. Every other row belongs to exactly one restaurant."""

    __tablename__ = "restaurants"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)

    tables: Mapped[list["RestaurantTable"]] = relationship(
        "RestaurantTable", back_populates="restaurant", cascade="all, delete-orphan"
    )

    @validates("name")
    def _validate_name(self, key, value):
        return not_blank(key, value)


class RestaurantTable(Base, TenantMixin, TimestampMixin):
    """A dining-room table.

    ``status == occupied`` holds exactly when ``current_order_id`` points at
    an open order whose ``table_id`` points back here. Both sides are changed
    together by the order service.
    """

    __tablename__ = "restaurant_tables"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "table_number", name="uq_table_number_per_restaurant"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    table_number: Mapped[int] = mapped_column(Integer, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, default=4, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=TableStatus.FREE.value, nullable=False)
    # Plain reference to orders.id; orders already reference this table
    current_order_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    restaurant: Mapped["Restaurant"] = relationship("Restaurant", back_populates="tables")

    @validates("table_number", "capacity")
    def _validate_positive(self, key, value):
        return positive(key, value)

    @validates("status")
    def _validate_status(self, key, value):
        return TableStatus(value).value

    @property
    def label(self) -> str:
        return f"Table {self.table_number}"


class ServiceSession(Base, TenantMixin):
    """A business day or shift. At most one is open per restaurant."""

    __tablename__ = "service_sessions"

    id: Mapped[int] = mapped_column(primary_key=True)
    status: Mapped[str] = mapped_column(String(20), default=SessionStatus.OPEN.value, nullable=False, index=True)
    opened_by: Mapped[int] = mapped_column(Integer, nullable=False)
    closed_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class BarClosing(Base, TenantMixin):
    """Persisted day-end report."""

    __tablename__ = "bar_closings"

    id: Mapped[int] = mapped_column(primary_key=True)
    service_session_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("service_sessions.id", ondelete="SET NULL"), nullable=True
    )
    closed_by: Mapped[int] = mapped_column(Integer, nullable=False)
    closed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    total_revenue: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    total_orders: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sales_by_waiter: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    consumed_products: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    expired_items: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    orders_summary: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    @validates("total_revenue", "total_orders")
    def _validate_non_negative(self, key, value):
        return non_negative(key, value)

