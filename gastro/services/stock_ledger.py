"""Stock ledger writer.

The only code path allowed to change ``Item.current_stock``. Every change
appends exactly one StockMovement in the same transaction, so summing
movements per item always reproduces its current stock.

Writes are compare-and-set on ``Item.version``: the caller's read of the item
is the expectation, and if another writer got there first the update matches
no row and ConcurrentModificationError is raised. Callers run inside
``unit_of_work`` so the whole operation rolls back.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from gastro.core.rbac import TenantContext
from gastro.models.inventory import Item
from gastro.models.stock import MovementType, StockMovement
from gastro.models.validators import STOCK_QUANTUM
from gastro.services.exceptions import ConcurrentModificationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("audit")


class Unchanged:
    def __repr__(self) -> str:
        return "UNCHANGED"


UNCHANGED = Unchanged()


class StockLedger:
    """Applies stock movements for one tenant and actor."""

    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx

    def get_item(self, item_id: int, include_archived: bool = False) -> Item:
        """Load an item fresh from the database, scoped to the tenant."""
        query = select(Item).where(Item.id == item_id, Item.for_tenant(self.ctx.restaurant_id))
        if not include_archived:
            query = query.where(Item.not_deleted())
        item = self.db.execute(
            query.execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if item is None:
            raise NotFoundError("Item", item_id)
        return item

    def apply_movement(
        self,
        item: Item,
        new_stock,
        movement_type: MovementType,
        reason: Optional[str] = None,
        order_id: Optional[int] = None,
        order_item_id: Optional[int] = None,
        new_expiry: Union[Optional[date], Unchanged] = UNCHANGED,
    ) -> StockMovement:
        """Set ``item.current_stock`` to ``new_stock`` and append the movement.

        Raises:
            ValidationError: neither stock nor expiry would change.
            ConcurrentModificationError: the item changed since it was read.
        """
        movement_type = MovementType(movement_type)
        new_stock = Decimal(str(new_stock)).quantize(STOCK_QUANTUM)
        previous_stock = Decimal(item.current_stock).quantize(STOCK_QUANTUM)
        previous_expiry = item.expiry_date
        expiry = previous_expiry if new_expiry is UNCHANGED else new_expiry

        if new_stock == previous_stock and expiry == previous_expiry:
            raise ValidationError(f"Movement for '{item.name}' changes nothing")

        expected_version = item.version
        result = self.db.execute(
            update(Item)
            .where(Item.id == item.id, Item.version == expected_version)
            .values(current_stock=new_stock, expiry_date=expiry, version=expected_version + 1)
        )
        if result.rowcount != 1:
            logger.warning(
                f"Lost update on item {item.id} (expected version {expected_version})"
            )
            raise ConcurrentModificationError("Item", item.id)

        movement = StockMovement(
            restaurant_id=self.ctx.restaurant_id,
            item_id=item.id,
            previous_stock=previous_stock,
            new_stock=new_stock,
            previous_expiry=previous_expiry,
            new_expiry=expiry,
            movement_type=movement_type.value,
            reason=reason,
            changed_by=self.ctx.actor_id,
            order_id=order_id,
            order_item_id=order_item_id,
        )
        self.db.add(movement)
        self.db.flush()

        audit_logger.info(
            f"stock {movement_type.value} item={item.id} '{item.name}' "
            f"{previous_stock} -> {new_stock} by={self.ctx.actor_id} "
            f"order={order_id} reason={reason!r}"
        )
        return movement

    def apply_delta(
        self,
        item: Item,
        delta,
        movement_type: MovementType,
        reason: Optional[str] = None,
        order_id: Optional[int] = None,
        order_item_id: Optional[int] = None,
    ) -> StockMovement:
        """Shift stock by ``delta`` (negative to consume) from the item as read."""
        new_stock = Decimal(item.current_stock) + Decimal(str(delta))
        return self.apply_movement(
            item,
            new_stock,
            movement_type,
            reason=reason,
            order_id=order_id,
            order_item_id=order_item_id,
        )
