"""Reporting Service - revenue, waiter sales, stock audit trail and day closing.

Revenue only ever counts ``closed`` orders; cancelled orders carry no
financial record.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from gastro.core.rbac import TenantContext
from gastro.db.session import unit_of_work
from gastro.models.inventory import Item
from gastro.models.order import Order, OrderStatus
from gastro.models.restaurant import BarClosing
from gastro.models.stock import MovementType, StockMovement
from gastro.services.exceptions import OrderStateError
from gastro.services.session_service import SessionService

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _money(value: Decimal) -> float:
    return float(Decimal(value).quantize(Decimal("0.01")))


class ReportingService:
    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx

    def _closed_orders(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        payment_method: Optional[str] = None,
        session_id: Optional[int] = None,
    ) -> List[Order]:
        query = select(Order).where(
            Order.for_tenant(self.ctx.restaurant_id),
            Order.status == OrderStatus.CLOSED.value,
        )
        if start is not None:
            query = query.where(Order.closed_at >= start)
        if end is not None:
            query = query.where(Order.closed_at < end)
        if payment_method:
            query = query.where(Order.payment_method == payment_method)
        if session_id is not None:
            query = query.where(Order.service_session_id == session_id)
        return list(self.db.execute(query.order_by(Order.closed_at, Order.id)).scalars())

    # ===== FINANCIAL =====

    def revenue_summary(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        payment_method: Optional[str] = None,
        session_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Gross revenue, order count, average ticket and a per-payment-method split."""
        orders = self._closed_orders(start, end, payment_method, session_id)

        gross = sum((Decimal(o.total) for o in orders), ZERO)
        by_method: Dict[str, Dict[str, Any]] = defaultdict(lambda: {"count": 0, "total": ZERO})
        for order in orders:
            bucket = by_method[order.payment_method or "unknown"]
            bucket["count"] += 1
            bucket["total"] += Decimal(order.total)

        return {
            "gross_revenue": _money(gross),
            "order_count": len(orders),
            "average_ticket": _money(gross / len(orders)) if orders else 0.0,
            "by_payment_method": {
                method: {"count": b["count"], "total": _money(b["total"])}
                for method, b in sorted(by_method.items())
            },
        }

    def sales_by_waiter(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        session_id: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        return self._sales_by_waiter(self._closed_orders(start, end, session_id=session_id))

    @staticmethod
    def _sales_by_waiter(orders: List[Order]) -> List[Dict[str, Any]]:
        waiters: Dict[int, Dict[str, Any]] = {}
        for order in orders:
            entry = waiters.setdefault(order.waiter_id, {
                "waiter_id": order.waiter_id,
                "waiter_name": order.waiter_name or f"Staff {order.waiter_id}",
                "order_count": 0,
                "total": ZERO,
            })
            entry["order_count"] += 1
            entry["total"] += Decimal(order.total)

        rows = sorted(waiters.values(), key=lambda w: w["total"], reverse=True)
        for row in rows:
            row["total"] = _money(row["total"])
        return rows

    # ===== AUDIT =====

    def stock_history(
        self,
        item_id: Optional[int] = None,
        movement_type: Optional[str] = None,
        order_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[StockMovement], int]:
        """Movements newest first, with the unpaged total."""
        conditions = [StockMovement.for_tenant(self.ctx.restaurant_id)]
        if item_id is not None:
            conditions.append(StockMovement.item_id == item_id)
        if movement_type:
            conditions.append(StockMovement.movement_type == MovementType(movement_type).value)
        if order_id is not None:
            conditions.append(StockMovement.order_id == order_id)

        total = self.db.execute(
            select(func.count(StockMovement.id)).where(*conditions)
        ).scalar_one()
        rows = self.db.execute(
            select(StockMovement)
            .where(*conditions)
            .options(selectinload(StockMovement.item))
            .order_by(StockMovement.id.desc())
            .offset(skip)
            .limit(limit)
        ).scalars().all()
        return list(rows), total

    # ===== DAY CLOSING =====

    def close_day(self, notes: Optional[str] = None, today: Optional[date] = None) -> BarClosing:
        """Persist the day-end report and close the open service session.

        Refused while any order is still open. Covers the orders of the open
        session, or, without one, everything closed since the previous closing.
        """
        today = today or datetime.now(timezone.utc).date()

        with unit_of_work(self.db):
            open_ids = self.db.execute(
                select(Order.id).where(
                    Order.for_tenant(self.ctx.restaurant_id),
                    Order.status == OrderStatus.OPEN.value,
                )
            ).scalars().all()
            if open_ids:
                raise OrderStateError(
                    f"Cannot close the day with {len(open_ids)} open order(s)",
                    details={"open_order_ids": list(open_ids)},
                )

            sessions = SessionService(self.db, self.ctx)
            session = sessions.current()
            if session is not None:
                orders = self._closed_orders(session_id=session.id)
            else:
                last_closing = self.db.execute(
                    select(func.max(BarClosing.closed_at)).where(BarClosing.for_tenant(self.ctx.restaurant_id))
                ).scalar_one()
                orders = self._closed_orders(start=last_closing)

            closing = BarClosing(
                restaurant_id=self.ctx.restaurant_id,
                service_session_id=session.id if session else None,
                closed_by=self.ctx.actor_id,
                closed_at=datetime.now(timezone.utc),
                total_revenue=sum((Decimal(o.total) for o in orders), ZERO),
                total_orders=len(orders),
                sales_by_waiter=self._sales_by_waiter(orders),
                consumed_products=self._consumed_products(orders),
                expired_items=self._expired_items(today),
                orders_summary=[
                    {
                        "order_id": o.id,
                        "label": o.label,
                        "total": _money(o.total),
                        "payment_method": o.payment_method,
                        "closed_at": o.closed_at.isoformat() if o.closed_at else None,
                    }
                    for o in orders
                ],
                notes=notes,
            )
            self.db.add(closing)
            sessions.close_current()
            self.db.flush()

        logger.info(
            f"Day closed by {self.ctx.actor_id}: {closing.total_orders} orders, "
            f"revenue {closing.total_revenue}"
        )
        return closing

    def list_closings(self, limit: int = 30) -> List[BarClosing]:
        return list(
            self.db.execute(
                select(BarClosing)
                .where(BarClosing.for_tenant(self.ctx.restaurant_id))
                .order_by(BarClosing.closed_at.desc(), BarClosing.id.desc())
                .limit(limit)
            ).scalars()
        )

    @staticmethod
    def _consumed_products(orders: List[Order]) -> List[Dict[str, Any]]:
        products: Dict[str, Dict[str, Any]] = {}
        for order in orders:
            for line in order.items:
                entry = products.setdefault(line.name, {"name": line.name, "quantity": 0, "total": ZERO})
                entry["quantity"] += line.quantity
                entry["total"] += line.line_total
        rows = sorted(products.values(), key=lambda p: p["quantity"], reverse=True)
        for row in rows:
            row["total"] = _money(row["total"])
        return rows

    def _expired_items(self, today: date) -> List[Dict[str, Any]]:
        items = self.db.execute(
            select(Item).where(
                Item.for_tenant(self.ctx.restaurant_id),
                Item.not_deleted(),
                Item.expiry_date < today,
                Item.current_stock > 0,
            ).order_by(Item.expiry_date)
        ).scalars()
        return [
            {
                "item_id": item.id,
                "name": item.name,
                "current_stock": float(item.current_stock),
                "unit": item.purchase_unit,
                "expiry_date": item.expiry_date.isoformat(),
            }
            for item in items
        ]
