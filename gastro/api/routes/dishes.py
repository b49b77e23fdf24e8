"""Dish and technical sheet routes."""

from typing import List

from fastapi import APIRouter, BackgroundTasks, Request, status

from gastro.core.config import settings
from gastro.core.rate_limit import limiter
from gastro.core.rbac import CurrentUser, RequireAdmin
from gastro.core.responses import list_response
from gastro.db.session import DbSession
from gastro.schemas.inventory import DishCreate, DishResponse, DishUpdate, SheetLine
from gastro.services.inventory_service import InventoryService
from gastro.services.realtime import notifier

router = APIRouter()


@router.get("")
def list_dishes(db: DbSession, current_user: CurrentUser, active_only: bool = False):
    dishes = InventoryService(db, current_user).list_dishes(active_only=active_only)
    return list_response([DishResponse.model_validate(d).model_dump(mode="json") for d in dishes])


@router.post("", response_model=DishResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_write)
def create_dish(
    request: Request,
    payload: DishCreate,
    db: DbSession,
    current_user: RequireAdmin,
    background_tasks: BackgroundTasks,
):
    dish = InventoryService(db, current_user).create_dish(
        payload.model_dump(exclude={"sheet"}),
        sheet=[line.model_dump() for line in payload.sheet],
    )
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "dishes")
    return dish


@router.get("/{dish_id}", response_model=DishResponse)
def get_dish(dish_id: int, db: DbSession, current_user: CurrentUser):
    return InventoryService(db, current_user).get_dish(dish_id)


@router.patch("/{dish_id}", response_model=DishResponse)
@limiter.limit(settings.rate_limit_write)
def update_dish(
    request: Request,
    dish_id: int,
    payload: DishUpdate,
    db: DbSession,
    current_user: RequireAdmin,
    background_tasks: BackgroundTasks,
):
    dish = InventoryService(db, current_user).update_dish(dish_id, payload.model_dump(exclude_unset=True))
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "dishes")
    return dish


@router.put("/{dish_id}/sheet", response_model=DishResponse)
@limiter.limit(settings.rate_limit_write)
def replace_sheet(
    request: Request,
    dish_id: int,
    lines: List[SheetLine],
    db: DbSession,
    current_user: RequireAdmin,
    background_tasks: BackgroundTasks,
):
    """Replace the technical sheet of a dish."""
    dish = InventoryService(db, current_user).set_technical_sheet(
        dish_id, [line.model_dump() for line in lines]
    )
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "dishes", "technical_sheets")
    return dish
