"""Stock movement ledger."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gastro.db.base import Base, TenantMixin
from gastro.models.validators import STOCK_SCALE


class MovementType(str, Enum):
    """Direction of a stock movement."""

    ENTRY = "entry"  # Goods received, counted increase, returned on removal
    WITHDRAWAL = "withdrawal"  # Sale or manual withdrawal
    ADJUSTMENT = "adjustment"  # Recount correction


class WithdrawalReason(str, Enum):
    """Reasons a staff member may give for a manual withdrawal."""

    SALE = "sale"
    WASTE = "waste"
    INTERNAL_USE = "internal_use"
    EXPIRED = "expired"
    OTHER = "other"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


class StockMovement(Base, TenantMixin):
    """Ledger of all stock changes (single source of truth).

    Append-only: rows are never updated or deleted. ``order_item_id`` is kept
    as a plain integer because order items are purged on cancellation while
    the movement must survive unchanged.
    """

    __tablename__ = "stock_movements"

    id: Mapped[int] = mapped_column(primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    previous_stock: Mapped[Decimal] = mapped_column(Numeric(20, STOCK_SCALE), nullable=False)
    new_stock: Mapped[Decimal] = mapped_column(Numeric(20, STOCK_SCALE), nullable=False)
    previous_expiry: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    new_expiry: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    movement_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    changed_by: Mapped[int] = mapped_column(Integer, nullable=False)
    order_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("orders.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    order_item_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    item: Mapped["Item"] = relationship("Item", back_populates="movements")

    @property
    def item_name(self) -> Optional[str]:
        return self.item.name if self.item is not None else None

    @property
    def delta(self) -> Decimal:
        return self.new_stock - self.previous_stock


# Forward references
from gastro.models.inventory import Item  # noqa: E402,F401
