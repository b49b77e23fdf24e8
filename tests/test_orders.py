"""Tests for the order aggregate: opening, adding, removing and closing."""

from decimal import Decimal

import pytest
from sqlalchemy import select

from gastro.core.config import Settings
from gastro.models.inventory import Dish, TechnicalSheet
from gastro.models.order import OrderItem, OrderItemStatus, OrderStatus
from gastro.models.restaurant import TableStatus
from gastro.models.stock import MovementType, StockMovement
from gastro.services.exceptions import (
    InsufficientStockError,
    NotFoundError,
    OrderStateError,
    ValidationError,
)
from gastro.services.order_service import OrderLine, OrderService
from gastro.services.reporting_service import ReportingService
from gastro.services.session_service import SessionService


def movements_for(db, order_id: int):
    return db.execute(
        select(StockMovement).where(StockMovement.order_id == order_id).order_by(StockMovement.id)
    ).scalars().all()


# ============== Opening ==============

class TestOpenOrders:
    def test_table_order_occupies_table(self, db_session, staff_ctx, table_one):
        order = OrderService(db_session, staff_ctx).open_table_order(table_one.id, guest_count=3)

        db_session.refresh(table_one)
        assert order.status == OrderStatus.OPEN.value
        assert order.guest_count == 3
        assert order.waiter_id == staff_ctx.actor_id
        assert order.waiter_name == "Bruno"
        assert order.label == "Table 1"
        assert table_one.status == TableStatus.OCCUPIED.value
        assert table_one.current_order_id == order.id

    def test_occupied_table_returns_existing_order(self, db_session, staff_ctx, table_one):
        service = OrderService(db_session, staff_ctx)
        first = service.open_table_order(table_one.id, guest_count=2)
        second = service.open_table_order(table_one.id, guest_count=5)

        assert second.id == first.id
        assert second.guest_count == 5

    def test_unknown_table(self, db_session, staff_ctx):
        with pytest.raises(NotFoundError):
            OrderService(db_session, staff_ctx).open_table_order(424242)

    def test_counter_order_named(self, db_session, staff_ctx):
        order = OrderService(db_session, staff_ctx).open_counter_order("Maria")
        assert order.table_id is None
        assert order.label == "Counter - Maria"

    def test_counter_order_gets_default_name(self, db_session, staff_ctx):
        order = OrderService(db_session, staff_ctx).open_counter_order()
        assert order.customer_name.startswith("Counter #")

    def test_order_tagged_with_open_session(self, db_session, admin_ctx, staff_ctx):
        session = SessionService(db_session, admin_ctx).open_session()
        order = OrderService(db_session, staff_ctx).open_counter_order("Tom")
        assert order.service_session_id == session.id

    def test_guest_count_must_be_positive(self, db_session, staff_ctx, table_one):
        with pytest.raises(ValidationError):
            OrderService(db_session, staff_ctx).open_table_order(table_one.id, guest_count=0)


# ============== Adding ==============

class TestAddItems:
    def test_dish_sale_deducts_ingredients(self, db_session, staff_ctx, table_one, mojito, lime):
        service = OrderService(db_session, staff_ctx)
        order = service.open_table_order(table_one.id)

        added = service.add_dish(order.id, mojito.id, 3)

        db_session.refresh(lime)
        assert lime.current_stock == Decimal("4")
        assert added.status == OrderItemStatus.PENDING.value

        order = service.get_order(order.id)
        assert Decimal(order.total) == Decimal("25.50")

        movements = movements_for(db_session, order.id)
        assert len(movements) == 1
        movement = movements[0]
        assert movement.movement_type == MovementType.WITHDRAWAL.value
        assert movement.order_item_id == added.id
        assert Decimal(movement.previous_stock) == Decimal("10")
        assert Decimal(movement.new_stock) == Decimal("4")
        assert movement.reason == "Sale: Mojito x3 - Table 1"

    def test_shortfall_writes_nothing(self, db_session, staff_ctx, table_one, mojito, lime):
        service = OrderService(db_session, staff_ctx)
        order = service.open_table_order(table_one.id)
        service.add_dish(order.id, mojito.id, 3)

        with pytest.raises(InsufficientStockError) as exc_info:
            service.add_dish(order.id, mojito.id, 3)

        shortfall = exc_info.value.details[0]
        assert shortfall["item_id"] == lime.id
        assert shortfall["needed"] == 6.0
        assert shortfall["available"] == 4.0

        db_session.refresh(lime)
        assert lime.current_stock == Decimal("4")
        order = service.get_order(order.id)
        assert len(order.items) == 1
        assert Decimal(order.total) == Decimal("25.50")
        assert len(movements_for(db_session, order.id)) == 1

    def test_lines_validated_together(self, db_session, staff_ctx, mojito, lime):
        service = OrderService(db_session, staff_ctx)
        order = service.open_counter_order("Eve")

        # 3 + 3 mojitos need 12 limes, 2 + 3 need exactly the 10 in stock
        with pytest.raises(InsufficientStockError):
            service.add_items(order.id, [
                OrderLine(dish_id=mojito.id, quantity=3),
                OrderLine(dish_id=mojito.id, quantity=3),
            ])
        db_session.refresh(lime)
        assert lime.current_stock == Decimal("10")

        added = service.add_items(order.id, [
            OrderLine(dish_id=mojito.id, quantity=2),
            OrderLine(dish_id=mojito.id, quantity=3),
        ])
        assert len(added) == 2
        db_session.refresh(lime)
        assert lime.current_stock == Decimal("0")

    def test_direct_sale(self, db_session, staff_ctx, cola):
        service = OrderService(db_session, staff_ctx)
        order = service.open_counter_order("Sam")

        added = service.add_direct_item(order.id, cola.id, 4)

        assert added.is_direct_sale
        assert added.status == OrderItemStatus.READY.value
        db_session.refresh(cola)
        assert cola.current_stock == Decimal("20")
        assert Decimal(service.get_order(order.id).total) == Decimal("12.00")

    def test_item_not_for_direct_sale_rejected(self, db_session, staff_ctx, lime):
        service = OrderService(db_session, staff_ctx)
        order = service.open_counter_order("Sam")
        with pytest.raises(ValidationError):
            service.add_direct_item(order.id, lime.id, 1)

    def test_inactive_dish_rejected(self, db_session, staff_ctx, mojito):
        mojito.active = False
        db_session.commit()
        service = OrderService(db_session, staff_ctx)
        order = service.open_counter_order("Sam")
        with pytest.raises(ValidationError):
            service.add_dish(order.id, mojito.id, 1)

    def test_recipe_unit_sales_keep_fractional_stock(self, db_session, staff_ctx, restaurant, rum):
        shot = Dish(restaurant_id=restaurant.id, name="Rum taster", price=Decimal("1.00"))
        shot.sheet.append(TechnicalSheet(item_id=rum.id, quantity_per_sale=Decimal("1"), unit="ml"))
        db_session.add(shot)
        db_session.commit()

        service = OrderService(db_session, staff_ctx)
        order = service.open_counter_order("Sam")
        for _ in range(9):
            service.add_dish(order.id, shot.id, 1)

        db_session.expire_all()
        per_sale = Decimal(1) / Decimal(9000)  # one ml of a 12 x 750 ml box
        movements = movements_for(db_session, order.id)
        assert len(movements) == 9
        for movement in movements:
            assert abs(movement.delta + per_sale) <= Decimal("0.00000001")
        assert abs(Decimal(rum.current_stock) - Decimal("1.999")) < Decimal("0.0000001")
        assert sum(m.delta for m in movements) == Decimal(rum.current_stock) - Decimal("2")

    def test_dish_without_sheet_sells_without_movements(self, db_session, staff_ctx, restaurant):
        dish = Dish(restaurant_id=restaurant.id, name="Espresso", price=Decimal("1.20"))
        db_session.add(dish)
        db_session.commit()

        service = OrderService(db_session, staff_ctx)
        order = service.open_counter_order("Sam")
        service.add_dish(order.id, dish.id, 2)

        assert Decimal(service.get_order(order.id).total) == Decimal("2.40")
        assert movements_for(db_session, order.id) == []


# ============== Removing ==============

class TestRemoveItem:
    def test_removal_keeps_stock_by_default(self, db_session, staff_ctx, mojito, lime):
        service = OrderService(db_session, staff_ctx)
        order = service.open_counter_order("Sam")
        added = service.add_dish(order.id, mojito.id, 2)

        order = service.remove_item(order.id, added.id)

        assert order.items == []
        assert Decimal(order.total) == Decimal("0")
        db_session.refresh(lime)
        assert lime.current_stock == Decimal("6")
        assert len(movements_for(db_session, order.id)) == 1

    def test_removal_restocks_when_enabled(self, db_session, staff_ctx, mojito, lime):
        service = OrderService(db_session, staff_ctx, settings=Settings(restock_on_item_removal=True))
        order = service.open_counter_order("Sam")
        added = service.add_dish(order.id, mojito.id, 2)

        service.remove_item(order.id, added.id)

        db_session.refresh(lime)
        assert lime.current_stock == Decimal("10")
        movements = movements_for(db_session, order.id)
        assert [m.movement_type for m in movements] == ["withdrawal", "entry"]
        assert movements[1].reason.startswith("Returned: Mojito x2")

    def test_unknown_line(self, db_session, staff_ctx):
        service = OrderService(db_session, staff_ctx)
        order = service.open_counter_order("Sam")
        with pytest.raises(NotFoundError):
            service.remove_item(order.id, 999)


# ============== Closing ==============

class TestCloseOrder:
    def test_counter_sale_closed_and_reported(self, db_session, admin_ctx, staff_ctx, cola):
        service = OrderService(db_session, staff_ctx)
        order = service.open_counter_order("Sam")
        service.add_direct_item(order.id, cola.id, 4)

        closed = service.close_order(order.id, payment_method="cash")

        assert closed.status == OrderStatus.CLOSED.value
        assert closed.payment_method == "cash"
        assert closed.closed_at is not None

        summary = ReportingService(db_session, admin_ctx).revenue_summary()
        assert summary["gross_revenue"] == 12.0
        assert summary["by_payment_method"]["cash"] == {"count": 1, "total": 12.0}

    def test_balance_requires_payment_method(self, db_session, staff_ctx, cola):
        service = OrderService(db_session, staff_ctx)
        order = service.open_counter_order("Sam")
        service.add_direct_item(order.id, cola.id, 1)

        with pytest.raises(ValidationError):
            service.close_order(order.id)
        assert service.get_order(order.id).is_open

    def test_empty_table_order_is_cancelled(self, db_session, staff_ctx, table_one):
        service = OrderService(db_session, staff_ctx)
        order = service.open_table_order(table_one.id)

        cancelled = service.close_order(order.id)

        assert cancelled.status == OrderStatus.CANCELLED.value
        assert cancelled.payment_method is None
        assert Decimal(cancelled.total) == Decimal("0")
        db_session.refresh(table_one)
        assert table_one.status == TableStatus.FREE.value
        assert table_one.current_order_id is None
        assert movements_for(db_session, order.id) == []

    def test_zero_total_cancels_and_purges_items(self, db_session, staff_ctx, restaurant):
        dish = Dish(restaurant_id=restaurant.id, name="Tap water", price=Decimal("0"))
        db_session.add(dish)
        db_session.commit()

        service = OrderService(db_session, staff_ctx)
        order = service.open_counter_order("Sam")
        service.add_dish(order.id, dish.id, 2)

        cancelled = service.close_order(order.id, payment_method="cash")

        assert cancelled.status == OrderStatus.CANCELLED.value
        remaining = db_session.execute(
            select(OrderItem).where(OrderItem.order_id == order.id)
        ).scalars().all()
        assert remaining == []

    def test_closed_order_is_immutable(self, db_session, staff_ctx, cola, mojito):
        service = OrderService(db_session, staff_ctx)
        order = service.open_counter_order("Sam")
        added = service.add_direct_item(order.id, cola.id, 1)
        service.close_order(order.id, payment_method="card")

        with pytest.raises(OrderStateError):
            service.add_dish(order.id, mojito.id, 1)
        with pytest.raises(OrderStateError):
            service.remove_item(order.id, added.id)
        with pytest.raises(OrderStateError):
            service.close_order(order.id, payment_method="card")
        with pytest.raises(OrderStateError):
            service.update_guest_count(order.id, 4)

    def test_release_table_closes_its_order(self, db_session, staff_ctx, table_one, cola):
        service = OrderService(db_session, staff_ctx)
        order = service.open_table_order(table_one.id)
        service.add_direct_item(order.id, cola.id, 2)

        closed = service.release_table(table_one.id, payment_method="card")

        assert closed.id == order.id
        assert closed.status == OrderStatus.CLOSED.value
        db_session.refresh(table_one)
        assert table_one.status == TableStatus.FREE.value

    def test_release_free_table_rejected(self, db_session, staff_ctx, table_one):
        with pytest.raises(OrderStateError):
            OrderService(db_session, staff_ctx).release_table(table_one.id)

    def test_table_can_be_reopened_after_close(self, db_session, staff_ctx, table_one):
        service = OrderService(db_session, staff_ctx)
        first = service.open_table_order(table_one.id)
        service.close_order(first.id)

        second = service.open_table_order(table_one.id)
        assert second.id != first.id
        assert second.is_open


class TestOrderTotals:
    def test_total_matches_lines(self, db_session, staff_ctx, mojito, cola):
        service = OrderService(db_session, staff_ctx)
        order = service.open_counter_order("Sam")
        service.add_dish(order.id, mojito.id, 1)
        cola_line = service.add_direct_item(order.id, cola.id, 3)
        service.add_dish(order.id, mojito.id, 2)
        service.remove_item(order.id, cola_line.id)

        order = service.get_order(order.id)
        assert Decimal(order.total) == sum(line.line_total for line in order.items)
        assert Decimal(order.total) == Decimal("25.50")
