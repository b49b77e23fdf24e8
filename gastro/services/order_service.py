"""Order Service - table and counter order lifecycle.

Adding to an order is all-or-nothing:
1. Resolve every line to ingredient requirements (technical sheet, or the
   item itself for direct sales)
2. Validate the summed requirements against current stock; any shortfall
   aborts before anything is written
3. Insert the order item, write one withdrawal movement per ingredient tagged
   with the order and order item, and raise the order total
4. Commit once

Closing an order either records a sale (status ``closed`` with a payment
method) or, when nothing was charged, cancels it and purges its items. Both
release the table.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from gastro.core.config import Settings, settings as default_settings
from gastro.core.rbac import TenantContext
from gastro.db.session import unit_of_work
from gastro.models.order import Order, OrderItem, OrderItemStatus, OrderStatus
from gastro.models.restaurant import RestaurantTable, TableStatus
from gastro.models.stock import MovementType, StockMovement
from gastro.services.exceptions import (
    ConcurrentModificationError,
    NotFoundError,
    OrderStateError,
    ValidationError,
)
from gastro.services.recipe_resolver import IngredientRequirement, RecipeResolver
from gastro.services.session_service import SessionService
from gastro.services.stock_ledger import StockLedger
from gastro.services.stock_validator import ensure_available

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class OrderLine:
    """One requested addition: a dish or a direct-sale item."""

    quantity: int
    dish_id: Optional[int] = None
    item_id: Optional[int] = None
    notes: Optional[str] = None


@dataclass
class _PreparedLine:
    line: OrderLine
    name: str
    unit_price: Decimal
    status: OrderItemStatus
    requirements: List[IngredientRequirement]


class OrderService:
    """Order aggregate operations for one tenant and actor."""

    def __init__(self, db: Session, ctx: TenantContext, settings: Optional[Settings] = None):
        self.db = db
        self.ctx = ctx
        self.settings = settings or default_settings
        self.resolver = RecipeResolver(db, ctx)
        self.ledger = StockLedger(db, ctx)

    # ===== READS =====

    def get_order(self, order_id: int) -> Order:
        order = self.db.execute(
            select(Order)
            .where(Order.id == order_id, Order.for_tenant(self.ctx.restaurant_id))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def list_orders(
        self,
        status: Optional[str] = None,
        table_id: Optional[int] = None,
        session_id: Optional[int] = None,
        limit: int = 100,
    ) -> List[Order]:
        query = select(Order).where(Order.for_tenant(self.ctx.restaurant_id))
        if status:
            query = query.where(Order.status == OrderStatus(status).value)
        if table_id is not None:
            query = query.where(Order.table_id == table_id)
        if session_id is not None:
            query = query.where(Order.service_session_id == session_id)
        return list(self.db.execute(query.order_by(Order.opened_at.desc(), Order.id.desc()).limit(limit)).scalars())

    def _get_open_order(self, order_id: int) -> Order:
        order = self.get_order(order_id)
        if not order.is_open:
            raise OrderStateError(f"Order {order_id} is {order.status}")
        return order

    def _get_table(self, table_id: int) -> RestaurantTable:
        table = self.db.execute(
            select(RestaurantTable)
            .where(RestaurantTable.id == table_id, RestaurantTable.for_tenant(self.ctx.restaurant_id))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if table is None:
            raise NotFoundError("Table", table_id)
        return table

    # ===== OPENING =====

    def open_table_order(self, table_id: int, guest_count: int = 1) -> Order:
        """Open an order on a table and occupy it.

        If the table already holds an open order, that order is returned with
        its guest count updated.
        """
        if guest_count < 1:
            raise ValidationError("guest_count must be at least 1")

        with unit_of_work(self.db):
            table = self._get_table(table_id)
            if table.current_order_id is not None:
                existing = self.db.get(Order, table.current_order_id)
                if existing is not None and existing.is_open:
                    existing.guest_count = guest_count
                    self.db.flush()
                    return existing

            order = self._new_order(table_id=table.id, guest_count=guest_count)

            # Conditional claim: fails if another order took the table meanwhile
            if table.current_order_id is None:
                unclaimed = RestaurantTable.current_order_id.is_(None)
            else:
                unclaimed = RestaurantTable.current_order_id == table.current_order_id
            result = self.db.execute(
                update(RestaurantTable)
                .where(RestaurantTable.id == table.id, unclaimed)
                .values(status=TableStatus.OCCUPIED.value, current_order_id=order.id)
            )
            if result.rowcount != 1:
                raise ConcurrentModificationError("Table", table.id)

        logger.info(f"Order {order.id} opened on table {table.table_number} by {self.ctx.actor_id}")
        return order

    def open_counter_order(self, customer_name: Optional[str] = None) -> Order:
        """Open a counter / take-away order, not bound to any table."""
        name = (customer_name or "").strip()
        if not name:
            name = f"{self.settings.counter_label_prefix} #{secrets.randbelow(10000):04d}"

        with unit_of_work(self.db):
            order = self._new_order(customer_name=name)

        logger.info(f"Counter order {order.id} opened for '{name}' by {self.ctx.actor_id}")
        return order

    def _new_order(self, table_id: Optional[int] = None, customer_name: Optional[str] = None,
                   guest_count: int = 1) -> Order:
        current_session = SessionService(self.db, self.ctx).current()
        order = Order(
            restaurant_id=self.ctx.restaurant_id,
            table_id=table_id,
            customer_name=customer_name,
            status=OrderStatus.OPEN.value,
            waiter_id=self.ctx.actor_id,
            waiter_name=self.ctx.name or None,
            guest_count=guest_count,
            total=ZERO,
            service_session_id=current_session.id if current_session else None,
        )
        self.db.add(order)
        self.db.flush()
        return order

    def update_guest_count(self, order_id: int, guest_count: int) -> Order:
        if guest_count < 1:
            raise ValidationError("guest_count must be at least 1")
        with unit_of_work(self.db):
            order = self._get_open_order(order_id)
            order.guest_count = guest_count
            self.db.flush()
        return order

    # ===== ADDING ITEMS =====

    def add_dish(self, order_id: int, dish_id: int, quantity: int, notes: Optional[str] = None) -> OrderItem:
        return self.add_items(order_id, [OrderLine(dish_id=dish_id, quantity=quantity, notes=notes)])[0]

    def add_direct_item(self, order_id: int, item_id: int, quantity: int, notes: Optional[str] = None) -> OrderItem:
        return self.add_items(order_id, [OrderLine(item_id=item_id, quantity=quantity, notes=notes)])[0]

    def add_items(self, order_id: int, lines: List[OrderLine]) -> List[OrderItem]:
        """Add several lines to an open order in one transaction.

        Stock is validated against the combined needs of every line first;
        on any shortfall InsufficientStockError is raised and nothing is
        persisted.
        """
        if not lines:
            raise ValidationError("No items to add")

        with unit_of_work(self.db):
            order = self._get_open_order(order_id)
            prepared = [self._prepare_line(line) for line in lines]
            ensure_available([req for p in prepared for req in p.requirements])

            added = []
            value = ZERO
            for p in prepared:
                order_item = OrderItem(
                    dish_id=p.line.dish_id,
                    item_id=p.line.item_id,
                    name=p.name,
                    quantity=p.line.quantity,
                    unit_price=p.unit_price,
                    status=p.status.value,
                    notes=p.line.notes,
                )
                order.items.append(order_item)
                self.db.flush()

                reason = f"Sale: {p.name} x{p.line.quantity} - {order.label}"
                for req in p.requirements:
                    self.ledger.apply_delta(
                        req.item,
                        -req.quantity,
                        MovementType.WITHDRAWAL,
                        reason=reason,
                        order_id=order.id,
                        order_item_id=order_item.id,
                    )
                value += order_item.line_total
                added.append(order_item)

            self._shift_total(order, value)

        self.db.refresh(order)
        logger.info(f"Added {len(added)} line(s) to order {order_id}, total now {order.total}")
        return added

    def _prepare_line(self, line: OrderLine) -> _PreparedLine:
        if line.quantity is None or line.quantity < 1:
            raise ValidationError("quantity must be at least 1")
        if (line.dish_id is None) == (line.item_id is None):
            raise ValidationError("Each line needs exactly one of dish_id or item_id")

        if line.dish_id is not None:
            dish = self.resolver.get_dish(line.dish_id)
            if not dish.active:
                raise ValidationError(f"Dish '{dish.name}' is not available")
            return _PreparedLine(
                line=line,
                name=dish.name,
                unit_price=Decimal(dish.price),
                status=OrderItemStatus.PENDING,
                requirements=self.resolver.resolve(dish, line.quantity),
            )

        item = self.ledger.get_item(line.item_id)
        if not item.direct_sale:
            raise ValidationError(f"Item '{item.name}' is not sold directly")
        if item.price is None:
            raise ValidationError(f"Item '{item.name}' has no sale price")
        return _PreparedLine(
            line=line,
            name=item.name,
            unit_price=Decimal(item.price),
            status=OrderItemStatus.READY,
            requirements=[IngredientRequirement(item=item, quantity=Decimal(line.quantity))],
        )

    def _shift_total(self, order: Order, delta: Decimal) -> None:
        """Move the order total by ``delta`` (floored at zero), guarded by the order version."""
        new_total = max(ZERO, Decimal(order.total) + delta)
        result = self.db.execute(
            update(Order)
            .where(Order.id == order.id, Order.version == order.version)
            .values(total=new_total, version=order.version + 1)
        )
        if result.rowcount != 1:
            raise ConcurrentModificationError("Order", order.id)

    # ===== REMOVING ITEMS =====

    def remove_item(self, order_id: int, order_item_id: int) -> Order:
        """Remove a line from an open order and lower the total.

        Stock is only returned when ``restock_on_item_removal`` is enabled;
        otherwise the sale movements stand as consumption.
        """
        with unit_of_work(self.db):
            order = self._get_open_order(order_id)
            order_item = next((i for i in order.items if i.id == order_item_id), None)
            if order_item is None:
                raise NotFoundError("Order item", order_item_id)

            if self.settings.restock_on_item_removal:
                self._restock(order, order_item)

            value = order_item.line_total
            order.items.remove(order_item)
            self.db.flush()
            self._shift_total(order, -value)

        self.db.refresh(order)
        logger.info(f"Removed item {order_item_id} from order {order_id}, total now {order.total}")
        return order

    def _restock(self, order: Order, order_item: OrderItem) -> None:
        sales = self.db.execute(
            select(StockMovement).where(
                StockMovement.order_item_id == order_item.id,
                StockMovement.order_id == order.id,
                StockMovement.movement_type == MovementType.WITHDRAWAL.value,
            )
        ).scalars().all()

        reason = f"Returned: {order_item.name} x{order_item.quantity} - {order.label}"
        for sale in sales:
            item = self.ledger.get_item(sale.item_id, include_archived=True)
            self.ledger.apply_delta(
                item,
                Decimal(sale.previous_stock) - Decimal(sale.new_stock),
                MovementType.ENTRY,
                reason=reason,
                order_id=order.id,
                order_item_id=order_item.id,
            )

    # ===== CLOSING =====

    def close_order(self, order_id: int, payment_method: Optional[str] = None) -> Order:
        """Close an open order as a sale, or cancel it if nothing was charged.

        Cancellation (no items, or a zero total) deletes any remaining items,
        zeroes the total and records no payment. Both paths release the table.
        """
        with unit_of_work(self.db):
            order = self._get_open_order(order_id)
            now = datetime.now(timezone.utc)

            if not order.items or Decimal(order.total) == ZERO:
                order.items.clear()
                self.db.flush()
                values = dict(status=OrderStatus.CANCELLED.value, total=ZERO, closed_at=now, payment_method=None)
            else:
                method = (payment_method or "").strip()
                if not method:
                    raise ValidationError("payment_method is required to close an order with a balance")
                values = dict(status=OrderStatus.CLOSED.value, closed_at=now, payment_method=method)

            result = self.db.execute(
                update(Order)
                .where(Order.id == order.id, Order.version == order.version, Order.status == OrderStatus.OPEN.value)
                .values(version=order.version + 1, **values)
            )
            if result.rowcount != 1:
                raise ConcurrentModificationError("Order", order.id)

            self._release_table(order)

        self.db.refresh(order)
        logger.info(f"Order {order.id} {order.status} (payment={order.payment_method}, total={order.total})")
        return order

    def release_table(self, table_id: int, payment_method: Optional[str] = None) -> Order:
        """Close whatever order currently holds the table."""
        table = self._get_table(table_id)
        if table.current_order_id is None:
            raise OrderStateError(f"Table {table.table_number} has no open order")
        return self.close_order(table.current_order_id, payment_method=payment_method)

    def _release_table(self, order: Order) -> None:
        if order.table_id is None:
            return
        table = self._get_table(order.table_id)
        if table.current_order_id == order.id:
            table.status = TableStatus.FREE.value
            table.current_order_id = None
            self.db.flush()


def get_order_service(db: Session, ctx: TenantContext) -> OrderService:
    """Factory function to create OrderService instance."""
    return OrderService(db, ctx)
