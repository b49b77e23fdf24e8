"""Table, service session and day-closing schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class TableCreate(BaseModel):
    table_number: int = Field(..., ge=1)
    capacity: int = Field(default=4, ge=1)


class TableUpdate(BaseModel):
    table_number: Optional[int] = Field(default=None, ge=1)
    capacity: Optional[int] = Field(default=None, ge=1)


class TableReservation(BaseModel):
    reserved: bool


class TableRelease(BaseModel):
    payment_method: Optional[str] = Field(default=None, max_length=30)


class TableResponse(BaseModel):
    id: int
    table_number: int
    capacity: int
    status: str
    current_order_id: Optional[int] = None

    model_config = {"from_attributes": True}


class ServiceSessionResponse(BaseModel):
    id: int
    status: str
    opened_by: int
    closed_by: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DayCloseRequest(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=2000)


class BarClosingResponse(BaseModel):
    id: int
    service_session_id: Optional[int] = None
    closed_by: int
    closed_at: Optional[datetime] = None
    total_revenue: Decimal
    total_orders: int
    sales_by_waiter: List[Any]
    consumed_products: List[Any]
    expired_items: List[Any]
    orders_summary: List[Any]
    notes: Optional[str] = None

    model_config = {"from_attributes": True}
