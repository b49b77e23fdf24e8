"""Order routes - dining room and counter POS.

Stock shortfalls come back as 409 with ``code: insufficient_stock`` and the
per-item shortfall list in ``details``; nothing is written in that case.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Query, Request, status

from gastro.core.config import settings
from gastro.core.rate_limit import limiter
from gastro.core.rbac import CurrentUser, RequireStaff
from gastro.core.responses import list_response
from gastro.db.session import DbSession
from gastro.schemas.order import (
    AddItemsRequest,
    CloseOrderRequest,
    CounterOrderCreate,
    GuestCountUpdate,
    OrderItemResponse,
    OrderResponse,
    TableOrderCreate,
)
from gastro.services.order_service import OrderLine, OrderService
from gastro.services.realtime import notifier

logger = logging.getLogger(__name__)

router = APIRouter()

ORDER_TABLES = ("orders", "order_items", "items", "stock_movements")


@router.get("")
def list_orders(
    db: DbSession,
    current_user: CurrentUser,
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(open|closed|cancelled)$"),
    table_id: Optional[int] = None,
    session_id: Optional[int] = None,
    limit: int = Query(100, ge=1, le=500),
):
    orders = OrderService(db, current_user).list_orders(
        status=status_filter, table_id=table_id, session_id=session_id, limit=limit
    )
    return list_response([OrderResponse.model_validate(o).model_dump(mode="json") for o in orders])


@router.post("/table", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_write)
def open_table_order(
    request: Request,
    payload: TableOrderCreate,
    db: DbSession,
    current_user: RequireStaff,
    background_tasks: BackgroundTasks,
):
    """Open (or resume) the order on a table."""
    order = OrderService(db, current_user).open_table_order(payload.table_id, payload.guest_count)
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "orders", "restaurant_tables")
    return order


@router.post("/counter", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_write)
def open_counter_order(
    request: Request,
    payload: CounterOrderCreate,
    db: DbSession,
    current_user: RequireStaff,
    background_tasks: BackgroundTasks,
):
    order = OrderService(db, current_user).open_counter_order(payload.customer_name)
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "orders")
    return order


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, db: DbSession, current_user: CurrentUser):
    return OrderService(db, current_user).get_order(order_id)


@router.post("/{order_id}/items", response_model=List[OrderItemResponse], status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_write)
def add_items(
    request: Request,
    order_id: int,
    payload: AddItemsRequest,
    db: DbSession,
    current_user: RequireStaff,
    background_tasks: BackgroundTasks,
):
    """Add dishes and/or direct-sale items, deducting stock atomically."""
    lines = [
        OrderLine(dish_id=line.dish_id, item_id=line.item_id, quantity=line.quantity, notes=line.notes)
        for line in payload.lines
    ]
    added = OrderService(db, current_user).add_items(order_id, lines)
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, *ORDER_TABLES)
    return added


@router.delete("/{order_id}/items/{order_item_id}", response_model=OrderResponse)
@limiter.limit(settings.rate_limit_write)
def remove_item(
    request: Request,
    order_id: int,
    order_item_id: int,
    db: DbSession,
    current_user: RequireStaff,
    background_tasks: BackgroundTasks,
):
    order = OrderService(db, current_user).remove_item(order_id, order_item_id)
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, *ORDER_TABLES)
    return order


@router.patch("/{order_id}/guests", response_model=OrderResponse)
@limiter.limit(settings.rate_limit_write)
def update_guest_count(
    request: Request,
    order_id: int,
    payload: GuestCountUpdate,
    db: DbSession,
    current_user: RequireStaff,
    background_tasks: BackgroundTasks,
):
    order = OrderService(db, current_user).update_guest_count(order_id, payload.guest_count)
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "orders")
    return order


@router.post("/{order_id}/close", response_model=OrderResponse)
@limiter.limit(settings.rate_limit_write)
def close_order(
    request: Request,
    order_id: int,
    payload: CloseOrderRequest,
    db: DbSession,
    current_user: RequireStaff,
    background_tasks: BackgroundTasks,
):
    """Close as a sale (payment method required) or cancel an empty order."""
    order = OrderService(db, current_user).close_order(order_id, payment_method=payload.payment_method)
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "orders", "restaurant_tables")
    return order
