"""Stock routes - withdrawals, receipts, counts, adjustments, ledger and shopping list.

Every write here lands in the stock ledger as exactly one movement.
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Query, Request, status

from gastro.core.config import settings
from gastro.core.rate_limit import limiter
from gastro.core.rbac import CurrentUser, RequireAdmin, RequireStaff
from gastro.core.responses import list_response, paginated_response
from gastro.db.session import DbSession
from gastro.schemas.stock import (
    StockAdjustmentRequest,
    StockCountRequest,
    StockMovementResponse,
    StockReceiveRequest,
    WithdrawalRequest,
    WithdrawalResponse,
)
from gastro.services.realtime import notifier
from gastro.services.reporting_service import ReportingService
from gastro.services.shopping_list_service import ShoppingListService
from gastro.services.stock_ledger import UNCHANGED
from gastro.services.withdrawal_service import WithdrawalService

logger = logging.getLogger(__name__)

router = APIRouter()

STOCK_TABLES = ("items", "stock_movements")


@router.post("/withdrawals", response_model=WithdrawalResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_write)
def create_withdrawal(
    request: Request,
    payload: WithdrawalRequest,
    db: DbSession,
    current_user: RequireStaff,
    background_tasks: BackgroundTasks,
):
    """Withdraw stock for waste, internal use, expiry and so on."""
    result = WithdrawalService(db, current_user).process_withdrawal(
        payload.item_id, payload.quantity, payload.reason, notes=payload.notes
    )
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, *STOCK_TABLES)
    return result


@router.post("/receipts", response_model=StockMovementResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_write)
def receive_stock(
    request: Request,
    payload: StockReceiveRequest,
    db: DbSession,
    current_user: RequireStaff,
    background_tasks: BackgroundTasks,
):
    expiry = payload.expiry_date if "expiry_date" in payload.model_fields_set else UNCHANGED
    movement = WithdrawalService(db, current_user).receive_stock(
        payload.item_id, payload.quantity, new_expiry=expiry, notes=payload.notes
    )
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, *STOCK_TABLES)
    return movement


@router.post("/counts")
@limiter.limit(settings.rate_limit_write)
def record_count(
    request: Request,
    payload: StockCountRequest,
    db: DbSession,
    current_user: RequireStaff,
    background_tasks: BackgroundTasks,
):
    """Record a physical count. Non-admins may only raise stock this way."""
    expiry = payload.expiry_date if "expiry_date" in payload.model_fields_set else UNCHANGED
    movement = WithdrawalService(db, current_user).record_stock_count(
        payload.item_id, payload.new_stock, new_expiry=expiry, notes=payload.notes
    )
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, *STOCK_TABLES)
    return {
        "item_id": payload.item_id,
        "changed": movement is not None,
        "movement": (
            StockMovementResponse.model_validate(movement).model_dump(mode="json") if movement else None
        ),
    }


@router.post("/adjustments", response_model=StockMovementResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_write)
def adjust_stock(
    request: Request,
    payload: StockAdjustmentRequest,
    db: DbSession,
    current_user: RequireAdmin,
    background_tasks: BackgroundTasks,
):
    movement = WithdrawalService(db, current_user).adjust_stock(
        payload.item_id, payload.new_stock, payload.reason
    )
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, *STOCK_TABLES)
    return movement


@router.get("/movements")
@limiter.limit(settings.rate_limit_read)
def list_movements(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    item_id: Optional[int] = None,
    movement_type: Optional[str] = Query(None, pattern="^(entry|withdrawal|adjustment)$"),
    order_id: Optional[int] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
):
    """Stock audit trail, newest first."""
    rows, total = ReportingService(db, current_user).stock_history(
        item_id=item_id, movement_type=movement_type, order_id=order_id, skip=skip, limit=limit
    )
    return paginated_response(
        [StockMovementResponse.model_validate(m).model_dump(mode="json") for m in rows],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/shopping-list")
def shopping_list(db: DbSession, current_user: CurrentUser):
    """Items that are expired, expiring soon or below minimum stock."""
    entries = ShoppingListService(db, current_user).build()
    return list_response([e.to_dict() for e in entries])
