"""Table routes."""

from fastapi import APIRouter, BackgroundTasks, Request, status

from gastro.core.config import settings
from gastro.core.rate_limit import limiter
from gastro.core.rbac import CurrentUser, RequireAdmin, RequireStaff
from gastro.core.responses import list_response
from gastro.db.session import DbSession
from gastro.schemas.order import OrderResponse
from gastro.schemas.restaurant import TableCreate, TableRelease, TableReservation, TableResponse, TableUpdate
from gastro.services.order_service import OrderService
from gastro.services.realtime import notifier
from gastro.services.table_service import TableService

router = APIRouter()


@router.get("")
def list_tables(db: DbSession, current_user: CurrentUser):
    tables = TableService(db, current_user).list_tables()
    return list_response([TableResponse.model_validate(t).model_dump(mode="json") for t in tables])


@router.post("", response_model=TableResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_write)
def create_table(
    request: Request,
    payload: TableCreate,
    db: DbSession,
    current_user: RequireAdmin,
    background_tasks: BackgroundTasks,
):
    table = TableService(db, current_user).create_table(payload.table_number, payload.capacity)
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "restaurant_tables")
    return table


@router.patch("/{table_id}", response_model=TableResponse)
@limiter.limit(settings.rate_limit_write)
def update_table(
    request: Request,
    table_id: int,
    payload: TableUpdate,
    db: DbSession,
    current_user: RequireAdmin,
    background_tasks: BackgroundTasks,
):
    table = TableService(db, current_user).update_table(table_id, payload.model_dump(exclude_unset=True))
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "restaurant_tables")
    return table


@router.put("/{table_id}/reservation", response_model=TableResponse)
@limiter.limit(settings.rate_limit_write)
def set_reservation(
    request: Request,
    table_id: int,
    payload: TableReservation,
    db: DbSession,
    current_user: RequireStaff,
    background_tasks: BackgroundTasks,
):
    table = TableService(db, current_user).set_reserved(table_id, payload.reserved)
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "restaurant_tables")
    return table


@router.post("/{table_id}/release", response_model=OrderResponse)
@limiter.limit(settings.rate_limit_write)
def release_table(
    request: Request,
    table_id: int,
    payload: TableRelease,
    db: DbSession,
    current_user: RequireStaff,
    background_tasks: BackgroundTasks,
):
    """Close the table's order (sale or cancellation) and free the table."""
    order = OrderService(db, current_user).release_table(table_id, payment_method=payload.payment_method)
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "orders", "restaurant_tables")
    return order


@router.delete("/{table_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.rate_limit_write)
def delete_table(
    request: Request,
    table_id: int,
    db: DbSession,
    current_user: RequireAdmin,
    background_tasks: BackgroundTasks,
):
    TableService(db, current_user).delete_table(table_id)
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "restaurant_tables")
