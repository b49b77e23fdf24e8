"""Inventory models: stock items, dishes and their technical sheets."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from gastro.db.base import Base, SoftDeleteMixin, TenantMixin, TimestampMixin, VersionMixin
from gastro.models.validators import STOCK_SCALE, non_negative, not_blank, positive


class Item(Base, TenantMixin, TimestampMixin, SoftDeleteMixin, VersionMixin):
    """A stock-tracked inventory item.

    ``current_stock`` is expressed in purchase units and is only ever written
    by the stock ledger, which appends a StockMovement in the same
    transaction. It may go negative only through a ledgered movement.

    Optional unit chain used by the unit conversion policy:
    purchase_unit (e.g. box) -> sub_unit (e.g. bottle, ``units_per_package``
    per purchase unit) -> recipe_unit (e.g. ml, ``recipe_units_per_consumption``
    per sub unit).
    """

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)

    current_stock: Mapped[Decimal] = mapped_column(Numeric(20, STOCK_SCALE), default=0, nullable=False)
    min_stock: Mapped[Decimal] = mapped_column(Numeric(20, STOCK_SCALE), default=0, nullable=False)

    purchase_unit: Mapped[str] = mapped_column(String(30), default="unit", nullable=False)
    sub_unit: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    units_per_package: Mapped[Decimal] = mapped_column(Numeric(12, 4), default=1, nullable=False)
    recipe_unit: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    recipe_units_per_consumption: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 4), nullable=True)

    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)

    # Items sold as-is, without a technical sheet (bottled drinks, snacks)
    direct_sale: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    last_count_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_counted_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    movements: Mapped[list["StockMovement"]] = relationship(
        "StockMovement", back_populates="item", order_by="StockMovement.id"
    )

    @validates("name")
    def _validate_name(self, key, value):
        return not_blank(key, value)

    @validates("min_stock", "price")
    def _validate_non_negative(self, key, value):
        return non_negative(key, value)

    @validates("units_per_package", "recipe_units_per_consumption")
    def _validate_positive(self, key, value):
        return positive(key, value)

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.min_stock


class Dish(Base, TenantMixin, TimestampMixin):
    """A sellable menu entry. Its technical sheet lists ingredient consumption per sale."""

    __tablename__ = "dishes"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    sheet: Mapped[list["TechnicalSheet"]] = relationship(
        "TechnicalSheet", back_populates="dish", cascade="all, delete-orphan",
        order_by="TechnicalSheet.id",
    )

    @validates("name")
    def _validate_name(self, key, value):
        return not_blank(key, value)

    @validates("price")
    def _validate_price(self, key, value):
        return non_negative(key, value)


class TechnicalSheet(Base):
    """One ingredient line of a dish: how much of an item one sale consumes."""

    __tablename__ = "technical_sheets"
    __table_args__ = (
        UniqueConstraint("dish_id", "item_id", name="uq_technical_sheet_dish_item"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    dish_id: Mapped[int] = mapped_column(
        ForeignKey("dishes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Plain reference: a sheet may outlive its item, the resolver skips dangling lines
    item_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    quantity_per_sale: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    # Unit the quantity is expressed in; None means the item's purchase unit
    unit: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    dish: Mapped["Dish"] = relationship("Dish", back_populates="sheet")

    @validates("quantity_per_sale")
    def _validate_quantity(self, key, value):
        return positive(key, value)


# Forward references
from gastro.models.stock import StockMovement  # noqa: E402,F401
