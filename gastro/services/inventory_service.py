"""Inventory catalogue: items, dishes and technical sheets.

Stock levels are never set here. A new item's opening stock is booked as an
entry movement through the ledger like any other stock change.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from gastro.core.rbac import TenantContext
from gastro.db.session import unit_of_work
from gastro.models.inventory import Dish, Item, TechnicalSheet
from gastro.models.stock import MovementType
from gastro.services.exceptions import NotFoundError, ValidationError
from gastro.services.stock_ledger import StockLedger

logger = logging.getLogger(__name__)

# Columns an item update may touch; current_stock and expiry go through the ledger
ITEM_EDITABLE_FIELDS = {
    "name", "category", "min_stock", "purchase_unit", "sub_unit", "units_per_package",
    "recipe_unit", "recipe_units_per_consumption", "direct_sale", "price",
}
DISH_EDITABLE_FIELDS = {"name", "price", "category", "description", "active"}
# Non-nullable columns an update may change but never clear
ITEM_REQUIRED_FIELDS = {"name", "min_stock", "purchase_unit", "units_per_package", "direct_sale"}
DISH_REQUIRED_FIELDS = {"name", "price", "active"}


def _reject_cleared(data: Dict[str, Any], required: set) -> None:
    cleared = sorted(field for field in required if field in data and data[field] is None)
    if cleared:
        raise ValidationError(f"{', '.join(cleared)} cannot be empty")


class InventoryService:
    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx
        self.ledger = StockLedger(db, ctx)

    # ===== ITEMS =====

    def list_items(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        direct_sale: Optional[bool] = None,
        include_archived: bool = False,
    ) -> List[Item]:
        query = select(Item).where(Item.for_tenant(self.ctx.restaurant_id))
        if not include_archived:
            query = query.where(Item.not_deleted())
        if search:
            query = query.where(Item.name.ilike(f"%{search}%"))
        if category:
            query = query.where(Item.category == category)
        if direct_sale is not None:
            query = query.where(Item.direct_sale.is_(direct_sale))
        return list(self.db.execute(query.order_by(Item.name)).scalars())

    def get_item(self, item_id: int, include_archived: bool = False) -> Item:
        return self.ledger.get_item(item_id, include_archived=include_archived)

    def create_item(self, data: Dict[str, Any], initial_stock=None) -> Item:
        unknown = set(data) - ITEM_EDITABLE_FIELDS - {"expiry_date"}
        if unknown:
            raise ValidationError(f"Unknown item fields: {', '.join(sorted(unknown))}")
        if data.get("direct_sale") and data.get("price") is None:
            raise ValidationError("Direct-sale items need a price")

        with unit_of_work(self.db):
            item = Item(restaurant_id=self.ctx.restaurant_id, current_stock=Decimal("0"), **data)
            self.db.add(item)
            self.db.flush()

            if initial_stock is not None and Decimal(str(initial_stock)) != 0:
                self.ledger.apply_movement(
                    item, Decimal(str(initial_stock)), MovementType.ENTRY, reason="Initial stock"
                )

        logger.info(f"Item {item.id} '{item.name}' created by {self.ctx.actor_id}")
        return item

    def update_item(self, item_id: int, data: Dict[str, Any]) -> Item:
        forbidden = set(data) - ITEM_EDITABLE_FIELDS
        if forbidden:
            raise ValidationError(
                f"Cannot update {', '.join(sorted(forbidden))} directly; use stock operations"
            )
        _reject_cleared(data, ITEM_REQUIRED_FIELDS)
        with unit_of_work(self.db):
            item = self.ledger.get_item(item_id)
            for field, value in data.items():
                setattr(item, field, value)
            if item.direct_sale and item.price is None:
                raise ValidationError("Direct-sale items need a price")
            self.db.flush()
        return item

    def archive_item(self, item_id: int) -> Item:
        """Hide an item from listings and recipes. Its ledger stays intact."""
        with unit_of_work(self.db):
            item = self.ledger.get_item(item_id)
            item.soft_delete()
            self.db.flush()
        logger.info(f"Item {item_id} archived by {self.ctx.actor_id}")
        return item

    def restore_item(self, item_id: int) -> Item:
        with unit_of_work(self.db):
            item = self.ledger.get_item(item_id, include_archived=True)
            item.restore()
            self.db.flush()
        return item

    # ===== DISHES =====

    def list_dishes(self, active_only: bool = False) -> List[Dish]:
        query = (
            select(Dish)
            .where(Dish.for_tenant(self.ctx.restaurant_id))
            .options(selectinload(Dish.sheet))
        )
        if active_only:
            query = query.where(Dish.active.is_(True))
        return list(self.db.execute(query.order_by(Dish.name)).scalars())

    def get_dish(self, dish_id: int) -> Dish:
        dish = self.db.execute(
            select(Dish).where(Dish.id == dish_id, Dish.for_tenant(self.ctx.restaurant_id))
        ).scalar_one_or_none()
        if dish is None:
            raise NotFoundError("Dish", dish_id)
        return dish

    def create_dish(self, data: Dict[str, Any], sheet: Optional[List[Dict[str, Any]]] = None) -> Dish:
        unknown = set(data) - DISH_EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown dish fields: {', '.join(sorted(unknown))}")
        _reject_cleared(data, DISH_REQUIRED_FIELDS)
        with unit_of_work(self.db):
            dish = Dish(restaurant_id=self.ctx.restaurant_id, **data)
            self.db.add(dish)
            self.db.flush()
            if sheet:
                self._write_sheet(dish, sheet)
        logger.info(f"Dish {dish.id} '{dish.name}' created by {self.ctx.actor_id}")
        return dish

    def update_dish(self, dish_id: int, data: Dict[str, Any]) -> Dish:
        unknown = set(data) - DISH_EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown dish fields: {', '.join(sorted(unknown))}")
        with unit_of_work(self.db):
            dish = self.get_dish(dish_id)
            for field, value in data.items():
                setattr(dish, field, value)
            self.db.flush()
        return dish

    def set_technical_sheet(self, dish_id: int, lines: List[Dict[str, Any]]) -> Dish:
        """Replace a dish's technical sheet."""
        with unit_of_work(self.db):
            dish = self.get_dish(dish_id)
            dish.sheet.clear()
            self.db.flush()
            self._write_sheet(dish, lines)
        return dish

    def _write_sheet(self, dish: Dish, lines: List[Dict[str, Any]]) -> None:
        seen = set()
        for line in lines:
            item_id = line["item_id"]
            if item_id in seen:
                raise ValidationError(f"Item {item_id} appears twice in the technical sheet")
            seen.add(item_id)
            # Existence check only
            self.ledger.get_item(item_id)
            dish.sheet.append(
                TechnicalSheet(
                    item_id=item_id,
                    quantity_per_sale=Decimal(str(line["quantity_per_sale"])),
                    unit=line.get("unit"),
                )
            )
        self.db.flush()
