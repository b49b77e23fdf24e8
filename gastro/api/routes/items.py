"""Inventory item routes."""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Query, Request, status

from gastro.core.config import settings
from gastro.core.rate_limit import limiter
from gastro.core.rbac import CurrentUser, RequireAdmin
from gastro.core.responses import list_response
from gastro.db.session import DbSession
from gastro.schemas.inventory import ItemCreate, ItemResponse, ItemUpdate
from gastro.services.inventory_service import InventoryService
from gastro.services.realtime import notifier

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
@limiter.limit(settings.rate_limit_read)
def list_items(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    search: Optional[str] = None,
    category: Optional[str] = None,
    direct_sale: Optional[bool] = None,
    include_archived: bool = Query(False),
):
    """List items, archived ones only on request."""
    items = InventoryService(db, current_user).list_items(
        search=search,
        category=category,
        direct_sale=direct_sale,
        include_archived=include_archived,
    )
    return list_response([ItemResponse.model_validate(i).model_dump(mode="json") for i in items])


@router.post("", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_write)
def create_item(
    request: Request,
    payload: ItemCreate,
    db: DbSession,
    current_user: RequireAdmin,
    background_tasks: BackgroundTasks,
):
    data = payload.model_dump(exclude={"initial_stock"})
    item = InventoryService(db, current_user).create_item(data, initial_stock=payload.initial_stock)
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "items")
    return item


@router.get("/{item_id}", response_model=ItemResponse)
def get_item(item_id: int, db: DbSession, current_user: CurrentUser):
    return InventoryService(db, current_user).get_item(item_id, include_archived=True)


@router.patch("/{item_id}", response_model=ItemResponse)
@limiter.limit(settings.rate_limit_write)
def update_item(
    request: Request,
    item_id: int,
    payload: ItemUpdate,
    db: DbSession,
    current_user: RequireAdmin,
    background_tasks: BackgroundTasks,
):
    item = InventoryService(db, current_user).update_item(item_id, payload.model_dump(exclude_unset=True))
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "items")
    return item


@router.delete("/{item_id}", response_model=ItemResponse)
@limiter.limit(settings.rate_limit_write)
def archive_item(
    request: Request,
    item_id: int,
    db: DbSession,
    current_user: RequireAdmin,
    background_tasks: BackgroundTasks,
):
    """Archive an item. Its stock history is kept and it can be restored."""
    item = InventoryService(db, current_user).archive_item(item_id)
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "items")
    return item


@router.post("/{item_id}/restore", response_model=ItemResponse)
@limiter.limit(settings.rate_limit_write)
def restore_item(
    request: Request,
    item_id: int,
    db: DbSession,
    current_user: RequireAdmin,
    background_tasks: BackgroundTasks,
):
    item = InventoryService(db, current_user).restore_item(item_id)
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "items")
    return item
