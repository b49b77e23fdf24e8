"""Kitchen display routes."""

from fastapi import APIRouter, BackgroundTasks, Request

from gastro.core.config import settings
from gastro.core.rate_limit import limiter
from gastro.core.rbac import RequireKitchen
from gastro.core.responses import list_response
from gastro.db.session import DbSession
from gastro.models.order import OrderItemStatus
from gastro.schemas.order import OrderItemResponse
from gastro.services.kitchen_service import KitchenService
from gastro.services.realtime import notifier

router = APIRouter()


@router.get("/queue")
def get_queue(db: DbSession, current_user: RequireKitchen):
    """Open orders with pending lines, oldest first. Only pending lines are listed."""
    orders = KitchenService(db, current_user).queue()
    return list_response([
        {
            "order_id": order.id,
            "label": order.label,
            "opened_at": order.opened_at.isoformat() if order.opened_at else None,
            "items": [
                OrderItemResponse.model_validate(i).model_dump(mode="json")
                for i in order.items
                if i.status == OrderItemStatus.PENDING.value
            ],
        }
        for order in orders
    ])


@router.post("/items/{order_item_id}/ready", response_model=OrderItemResponse)
@limiter.limit(settings.rate_limit_write)
def mark_item_ready(
    request: Request,
    order_item_id: int,
    db: DbSession,
    current_user: RequireKitchen,
    background_tasks: BackgroundTasks,
):
    order_item = KitchenService(db, current_user).mark_item_ready(order_item_id)
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "order_items")
    return order_item


@router.post("/orders/{order_id}/ready")
@limiter.limit(settings.rate_limit_write)
def mark_order_ready(
    request: Request,
    order_id: int,
    db: DbSession,
    current_user: RequireKitchen,
    background_tasks: BackgroundTasks,
):
    changed = KitchenService(db, current_user).mark_order_ready(order_id)
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "order_items")
    return {"order_id": order_id, "items_marked_ready": changed}
