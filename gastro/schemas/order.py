"""Order schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class TableOrderCreate(BaseModel):
    table_id: int
    guest_count: int = Field(default=1, ge=1)


class CounterOrderCreate(BaseModel):
    customer_name: Optional[str] = Field(default=None, max_length=200)


class OrderLineRequest(BaseModel):
    """A dish or a direct-sale item to add. Exactly one id is required."""

    dish_id: Optional[int] = None
    item_id: Optional[int] = None
    quantity: int = Field(default=1, ge=1)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def exactly_one_target(self) -> "OrderLineRequest":
        if (self.dish_id is None) == (self.item_id is None):
            raise ValueError("Provide exactly one of dish_id or item_id")
        return self


class AddItemsRequest(BaseModel):
    lines: List[OrderLineRequest] = Field(..., min_length=1)


class CloseOrderRequest(BaseModel):
    payment_method: Optional[str] = Field(default=None, max_length=30)


class GuestCountUpdate(BaseModel):
    guest_count: int = Field(..., ge=1)


class OrderItemResponse(BaseModel):
    id: int
    order_id: int
    dish_id: Optional[int] = None
    item_id: Optional[int] = None
    name: str
    quantity: int
    unit_price: Decimal
    status: str
    notes: Optional[str] = None
    sent_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    id: int
    table_id: Optional[int] = None
    customer_name: Optional[str] = None
    label: str
    status: str
    waiter_id: int
    waiter_name: Optional[str] = None
    guest_count: int
    total: Decimal
    payment_method: Optional[str] = None
    service_session_id: Optional[int] = None
    opened_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    items: List[OrderItemResponse] = []

    model_config = {"from_attributes": True}
