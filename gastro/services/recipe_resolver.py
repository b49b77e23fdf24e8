"""Recipe resolver: expands a dish sale into stock requirements.

Read-only. Technical-sheet lines whose item is missing or archived are skipped,
so a dish with a stale sheet stays sellable.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from gastro.core.rbac import TenantContext
from gastro.models.inventory import Dish, Item
from gastro.services.exceptions import NotFoundError
from gastro.services.unit_conversion import to_purchase_units

logger = logging.getLogger(__name__)


@dataclass
class IngredientRequirement:
    """Quantity of one item, in its purchase unit, that a sale consumes."""

    item: Item
    quantity: Decimal


def merge_requirements(requirements: List[IngredientRequirement]) -> List[IngredientRequirement]:
    """Sum requirements that refer to the same item, keeping first-seen order."""
    merged: Dict[int, IngredientRequirement] = {}
    for req in requirements:
        if req.item.id in merged:
            merged[req.item.id].quantity += req.quantity
        else:
            merged[req.item.id] = IngredientRequirement(item=req.item, quantity=req.quantity)
    return list(merged.values())


class RecipeResolver:
    """Resolves dishes to ingredient requirements for one tenant."""

    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx

    def get_dish(self, dish_id: int) -> Dish:
        dish = self.db.execute(
            select(Dish).where(Dish.id == dish_id, Dish.for_tenant(self.ctx.restaurant_id))
        ).scalar_one_or_none()
        if dish is None:
            raise NotFoundError("Dish", dish_id)
        return dish

    def resolve(self, dish: Dish, quantity_sold) -> List[IngredientRequirement]:
        """Ingredient requirements for selling ``quantity_sold`` of ``dish``.

        A dish without technical-sheet lines resolves to an empty list.
        """
        quantity_sold = Decimal(str(quantity_sold))
        if quantity_sold <= 0:
            raise ValueError(f"quantity_sold must be positive, got {quantity_sold}")

        if not dish.sheet:
            return []

        item_ids = [line.item_id for line in dish.sheet]
        items = {
            item.id: item
            for item in self.db.execute(
                select(Item)
                .where(
                    Item.id.in_(item_ids),
                    Item.for_tenant(self.ctx.restaurant_id),
                    Item.not_deleted(),
                )
                .execution_options(populate_existing=True)
            ).scalars()
        }

        requirements = []
        for line in dish.sheet:
            item = items.get(line.item_id)
            if item is None:
                logger.debug(
                    f"Skipping sheet line {line.id} of dish '{dish.name}': "
                    f"item {line.item_id} missing or archived"
                )
                continue
            per_sale = to_purchase_units(line.quantity_per_sale, line.unit, item)
            requirements.append(IngredientRequirement(item=item, quantity=per_sale * quantity_sold))

        return merge_requirements(requirements)

    def resolve_ingredients(self, dish_id: int, quantity_sold) -> List[IngredientRequirement]:
        return self.resolve(self.get_dish(dish_id), quantity_sold)
