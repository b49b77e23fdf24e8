"""Kitchen queue: pending dish lines of open orders."""

import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from gastro.core.rbac import TenantContext
from gastro.db.session import unit_of_work
from gastro.models.order import Order, OrderItem, OrderItemStatus, OrderStatus
from gastro.services.exceptions import NotFoundError, OrderStateError

logger = logging.getLogger(__name__)


class KitchenService:
    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx

    def queue(self) -> List[Order]:
        """Open orders with at least one pending line, oldest first."""
        pending_orders = (
            select(OrderItem.order_id)
            .where(OrderItem.status == OrderItemStatus.PENDING.value)
            .distinct()
        )
        return list(
            self.db.execute(
                select(Order)
                .where(
                    Order.for_tenant(self.ctx.restaurant_id),
                    Order.status == OrderStatus.OPEN.value,
                    Order.id.in_(pending_orders),
                )
                .options(selectinload(Order.items))
                .order_by(Order.opened_at, Order.id)
            ).scalars()
        )

    def mark_item_ready(self, order_item_id: int) -> OrderItem:
        with unit_of_work(self.db):
            order_item = self.db.execute(
                select(OrderItem)
                .join(Order, Order.id == OrderItem.order_id)
                .where(OrderItem.id == order_item_id, Order.for_tenant(self.ctx.restaurant_id))
            ).scalar_one_or_none()
            if order_item is None:
                raise NotFoundError("Order item", order_item_id)
            if not order_item.order.is_open:
                raise OrderStateError(f"Order {order_item.order_id} is {order_item.order.status}")

            if order_item.status != OrderItemStatus.READY.value:
                order_item.status = OrderItemStatus.READY.value
                order_item.ready_at = datetime.now(timezone.utc)
                self.db.flush()

        logger.info(f"Order item {order_item_id} ready")
        return order_item

    def mark_order_ready(self, order_id: int) -> int:
        """Mark every pending line of an order ready. Returns how many changed."""
        with unit_of_work(self.db):
            order = self.db.execute(
                select(Order).where(Order.id == order_id, Order.for_tenant(self.ctx.restaurant_id))
            ).scalar_one_or_none()
            if order is None:
                raise NotFoundError("Order", order_id)
            if not order.is_open:
                raise OrderStateError(f"Order {order_id} is {order.status}")

            now = datetime.now(timezone.utc)
            changed = 0
            for order_item in order.items:
                if order_item.status == OrderItemStatus.PENDING.value:
                    order_item.status = OrderItemStatus.READY.value
                    order_item.ready_at = now
                    changed += 1
            self.db.flush()

        logger.info(f"Order {order_id}: {changed} item(s) ready")
        return changed
