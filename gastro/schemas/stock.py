"""Stock schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from gastro.models.stock import WithdrawalReason


class WithdrawalRequest(BaseModel):
    item_id: int
    quantity: Decimal = Field(..., gt=0)
    reason: WithdrawalReason
    notes: Optional[str] = Field(default=None, max_length=400)


class WithdrawalResponse(BaseModel):
    success: bool
    new_stock: Decimal
    is_low_stock: bool
    movement_id: int


class StockReceiveRequest(BaseModel):
    item_id: int
    quantity: Decimal = Field(..., gt=0)
    expiry_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=400)


class StockCountRequest(BaseModel):
    """Counted stock. Leave ``expiry_date`` out to keep the stored one."""

    item_id: int
    new_stock: Decimal = Field(..., ge=0)
    expiry_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=400)


class StockAdjustmentRequest(BaseModel):
    item_id: int
    new_stock: Decimal
    reason: str = Field(..., min_length=1, max_length=400)


class StockMovementResponse(BaseModel):
    id: int
    created_at: Optional[datetime] = None
    item_id: int
    item_name: Optional[str] = None
    previous_stock: Decimal
    new_stock: Decimal
    previous_expiry: Optional[date] = None
    new_expiry: Optional[date] = None
    movement_type: str
    reason: Optional[str] = None
    changed_by: int
    order_id: Optional[int] = None
    order_item_id: Optional[int] = None

    model_config = {"from_attributes": True}
