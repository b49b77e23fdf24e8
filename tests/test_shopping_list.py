"""Tests for the derived shopping list."""

from datetime import date, timedelta
from decimal import Decimal

from gastro.models.inventory import Item
from gastro.services.shopping_list_service import ShoppingListService, evaluate_item

TODAY = date(2026, 3, 10)


def make_item(**overrides) -> Item:
    fields = dict(name="Milk", purchase_unit="l", current_stock=Decimal("5"), min_stock=Decimal("4"))
    fields.update(overrides)
    return Item(**fields)


class TestEvaluateItem:
    def test_healthy_item_needs_nothing(self):
        assert evaluate_item(make_item(), TODAY, 3) is None

    def test_below_minimum_suggests_the_gap(self):
        entry = evaluate_item(make_item(current_stock=Decimal("1")), TODAY, 3)
        assert entry.is_below_minimum
        assert entry.suggested_quantity == Decimal("3")

    def test_stock_at_minimum_is_not_below(self):
        assert evaluate_item(make_item(current_stock=Decimal("4")), TODAY, 3) is None

    def test_expired_suggests_full_minimum(self):
        entry = evaluate_item(make_item(expiry_date=TODAY - timedelta(days=1)), TODAY, 3)
        assert entry.is_expired
        assert not entry.is_expiring_soon
        assert entry.days_to_expiry == -1
        assert entry.suggested_quantity == Decimal("4")

    def test_expiring_today_counts_as_soon(self):
        entry = evaluate_item(make_item(expiry_date=TODAY), TODAY, 3)
        assert entry.is_expiring_soon
        assert not entry.is_expired

    def test_expiry_window_is_inclusive(self):
        assert evaluate_item(make_item(expiry_date=TODAY + timedelta(days=3)), TODAY, 3) is not None
        assert evaluate_item(make_item(expiry_date=TODAY + timedelta(days=4)), TODAY, 3) is None

    def test_negative_stock_suggests_refilling_to_minimum(self):
        entry = evaluate_item(make_item(current_stock=Decimal("-2"), min_stock=Decimal("0")), TODAY, 3)
        assert entry.is_below_minimum
        assert entry.suggested_quantity == Decimal("2")

    def test_to_dict(self):
        entry = evaluate_item(make_item(id=7, current_stock=Decimal("1")), TODAY, 3)
        data = entry.to_dict()
        assert data["item_id"] == 7
        assert data["suggested_quantity"] == 3.0
        assert data["expiry_date"] is None


class TestShoppingListService:
    def test_sorted_expired_then_expiring_then_name(self, db_session, staff_ctx, restaurant):
        rid = restaurant.id
        db_session.add_all([
            Item(restaurant_id=rid, name="Butter", current_stock=Decimal("0"), min_stock=Decimal("2")),
            Item(restaurant_id=rid, name="Apples", current_stock=Decimal("0"), min_stock=Decimal("2")),
            Item(restaurant_id=rid, name="Yogurt", current_stock=Decimal("5"), min_stock=Decimal("2"),
                 expiry_date=TODAY + timedelta(days=1)),
            Item(restaurant_id=rid, name="Zucchini", current_stock=Decimal("5"), min_stock=Decimal("2"),
                 expiry_date=TODAY - timedelta(days=2)),
            Item(restaurant_id=rid, name="Flour", current_stock=Decimal("9"), min_stock=Decimal("2")),
        ])
        db_session.commit()

        entries = ShoppingListService(db_session, staff_ctx).build(today=TODAY, expiring_soon_days=3)

        assert [e.name for e in entries] == ["Zucchini", "Yogurt", "Apples", "Butter"]

    def test_archived_items_excluded(self, db_session, staff_ctx, restaurant):
        item = Item(restaurant_id=restaurant.id, name="Old stock", current_stock=Decimal("0"), min_stock=Decimal("5"))
        item.soft_delete()
        db_session.add(item)
        db_session.commit()

        assert ShoppingListService(db_session, staff_ctx).build(today=TODAY) == []

    def test_other_tenants_excluded(self, db_session, staff_ctx, other_restaurant):
        db_session.add(
            Item(restaurant_id=other_restaurant.id, name="Foreign", current_stock=Decimal("0"), min_stock=Decimal("5"))
        )
        db_session.commit()

        assert ShoppingListService(db_session, staff_ctx).build(today=TODAY) == []
