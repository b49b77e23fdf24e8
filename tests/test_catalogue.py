"""Tests for items, dishes, technical sheets and tables."""

from decimal import Decimal

import pytest

from gastro.models.restaurant import TableStatus
from gastro.services.exceptions import NotFoundError, OrderStateError, ValidationError
from gastro.services.inventory_service import InventoryService
from gastro.services.order_service import OrderService
from gastro.services.table_service import TableService


class TestItems:
    def test_update_cannot_touch_stock(self, db_session, admin_ctx, lime):
        with pytest.raises(ValidationError):
            InventoryService(db_session, admin_ctx).update_item(lime.id, {"current_stock": Decimal("99")})

    def test_update_fields(self, db_session, admin_ctx, lime):
        item = InventoryService(db_session, admin_ctx).update_item(lime.id, {"min_stock": Decimal("5"), "category": "Citrus"})
        assert item.min_stock == Decimal("5")
        assert item.category == "Citrus"

    def test_required_fields_cannot_be_cleared(self, db_session, admin_ctx, lime):
        inventory = InventoryService(db_session, admin_ctx)
        with pytest.raises(ValidationError):
            inventory.update_item(lime.id, {"purchase_unit": None})
        with pytest.raises(ValidationError):
            inventory.update_item(lime.id, {"direct_sale": None})

        db_session.refresh(lime)
        assert lime.purchase_unit == "unit"
        assert lime.direct_sale is False

    def test_direct_sale_needs_price(self, db_session, admin_ctx):
        with pytest.raises(ValidationError):
            InventoryService(db_session, admin_ctx).create_item({"name": "Chips", "direct_sale": True})

    def test_archive_and_restore(self, db_session, admin_ctx, lime):
        inventory = InventoryService(db_session, admin_ctx)
        inventory.archive_item(lime.id)

        assert [i.id for i in inventory.list_items()] == []
        assert [i.id for i in inventory.list_items(include_archived=True)] == [lime.id]

        inventory.restore_item(lime.id)
        assert [i.id for i in inventory.list_items()] == [lime.id]

    def test_list_filters(self, db_session, admin_ctx, lime, cola):
        inventory = InventoryService(db_session, admin_ctx)
        assert [i.name for i in inventory.list_items(direct_sale=True)] == ["Cola"]
        assert [i.name for i in inventory.list_items(search="lim")] == ["Lime"]
        assert [i.name for i in inventory.list_items(category="Fruit")] == ["Lime"]


class TestDishes:
    def test_create_dish_with_sheet(self, db_session, admin_ctx, lime, rum):
        dish = InventoryService(db_session, admin_ctx).create_dish(
            {"name": "Daiquiri", "price": Decimal("9")},
            sheet=[
                {"item_id": rum.id, "quantity_per_sale": Decimal("50"), "unit": "ml"},
                {"item_id": lime.id, "quantity_per_sale": Decimal("0.5")},
            ],
        )
        assert [(line.item_id, line.unit) for line in dish.sheet] == [(rum.id, "ml"), (lime.id, None)]

    def test_dish_name_cannot_be_cleared(self, db_session, admin_ctx, mojito):
        with pytest.raises(ValidationError):
            InventoryService(db_session, admin_ctx).update_dish(mojito.id, {"name": None})

    def test_sheet_rejects_duplicate_items(self, db_session, admin_ctx, mojito, lime):
        with pytest.raises(ValidationError):
            InventoryService(db_session, admin_ctx).set_technical_sheet(mojito.id, [
                {"item_id": lime.id, "quantity_per_sale": 1},
                {"item_id": lime.id, "quantity_per_sale": 2},
            ])

    def test_sheet_rejects_unknown_items(self, db_session, admin_ctx, mojito):
        with pytest.raises(NotFoundError):
            InventoryService(db_session, admin_ctx).set_technical_sheet(mojito.id, [
                {"item_id": 5555, "quantity_per_sale": 1},
            ])

    def test_replace_sheet(self, db_session, admin_ctx, mojito, rum):
        dish = InventoryService(db_session, admin_ctx).set_technical_sheet(mojito.id, [
            {"item_id": rum.id, "quantity_per_sale": 60, "unit": "ml"},
        ])
        assert [line.item_id for line in dish.sheet] == [rum.id]


class TestTables:
    def test_duplicate_number_rejected(self, db_session, admin_ctx, table_one):
        with pytest.raises(ValidationError):
            TableService(db_session, admin_ctx).create_table(table_number=1)

    def test_reserve_and_free(self, db_session, admin_ctx, table_one):
        tables = TableService(db_session, admin_ctx)
        assert tables.set_reserved(table_one.id, True).status == TableStatus.RESERVED.value
        assert tables.set_reserved(table_one.id, False).status == TableStatus.FREE.value

    def test_occupied_table_cannot_be_reserved_or_deleted(self, db_session, admin_ctx, staff_ctx, table_one):
        OrderService(db_session, staff_ctx).open_table_order(table_one.id)
        tables = TableService(db_session, admin_ctx)

        with pytest.raises(OrderStateError):
            tables.set_reserved(table_one.id, True)
        with pytest.raises(OrderStateError):
            tables.delete_table(table_one.id)

    def test_reserved_table_can_be_seated(self, db_session, admin_ctx, staff_ctx, table_one):
        TableService(db_session, admin_ctx).set_reserved(table_one.id, True)
        OrderService(db_session, staff_ctx).open_table_order(table_one.id)

        db_session.refresh(table_one)
        assert table_one.status == TableStatus.OCCUPIED.value
