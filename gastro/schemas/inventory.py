"""Item and dish schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class ItemBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: Optional[str] = None
    min_stock: Decimal = Field(default=Decimal("0"), ge=0)
    purchase_unit: str = Field(default="unit", min_length=1, max_length=30)
    sub_unit: Optional[str] = None
    units_per_package: Decimal = Field(default=Decimal("1"), gt=0)
    recipe_unit: Optional[str] = None
    recipe_units_per_consumption: Optional[Decimal] = Field(default=None, gt=0)
    direct_sale: bool = False
    price: Optional[Decimal] = Field(default=None, ge=0)


class ItemCreate(ItemBase):
    """New item. ``initial_stock`` is booked as an entry movement."""

    initial_stock: Decimal = Field(default=Decimal("0"), ge=0)
    expiry_date: Optional[date] = None

    @model_validator(mode="after")
    def direct_sale_needs_price(self) -> "ItemCreate":
        if self.direct_sale and self.price is None:
            raise ValueError("Direct-sale items need a price")
        return self


class ItemUpdate(BaseModel):
    """Partial update. Stock and expiry change only through stock operations."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = None
    min_stock: Optional[Decimal] = Field(default=None, ge=0)
    purchase_unit: Optional[str] = Field(default=None, min_length=1, max_length=30)
    sub_unit: Optional[str] = None
    units_per_package: Optional[Decimal] = Field(default=None, gt=0)
    recipe_unit: Optional[str] = None
    recipe_units_per_consumption: Optional[Decimal] = Field(default=None, gt=0)
    direct_sale: Optional[bool] = None
    price: Optional[Decimal] = Field(default=None, ge=0)


class ItemResponse(ItemBase):
    id: int
    current_stock: Decimal
    expiry_date: Optional[date] = None
    is_low_stock: bool
    is_deleted: bool
    last_count_date: Optional[datetime] = None
    last_counted_by: Optional[int] = None
    version: int

    model_config = {"from_attributes": True}


class SheetLine(BaseModel):
    item_id: int
    quantity_per_sale: Decimal = Field(..., gt=0)
    unit: Optional[str] = None

    model_config = {"from_attributes": True}


class DishCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., ge=0)
    category: Optional[str] = None
    description: Optional[str] = None
    active: bool = True
    sheet: List[SheetLine] = Field(default_factory=list)


class DishUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    price: Optional[Decimal] = Field(default=None, ge=0)
    category: Optional[str] = None
    description: Optional[str] = None
    active: Optional[bool] = None


class DishResponse(BaseModel):
    id: int
    name: str
    price: Decimal
    category: Optional[str] = None
    description: Optional[str] = None
    active: bool
    sheet: List[SheetLine]

    model_config = {"from_attributes": True}
