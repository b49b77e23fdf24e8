"""Tests for dish to ingredient resolution and stock validation."""

from decimal import Decimal

import pytest

from gastro.core.rbac import TenantContext
from gastro.models.inventory import Dish, TechnicalSheet
from gastro.services.exceptions import InsufficientStockError, NotFoundError
from gastro.services.recipe_resolver import IngredientRequirement, RecipeResolver, merge_requirements
from gastro.services.stock_validator import ensure_available, validate


@pytest.fixture
def daiquiri(db_session, restaurant, rum, lime):
    """50 ml rum and half a lime per sale."""
    dish = Dish(restaurant_id=restaurant.id, name="Daiquiri", price=Decimal("9.00"))
    dish.sheet.append(TechnicalSheet(item_id=rum.id, quantity_per_sale=Decimal("50"), unit="ml"))
    dish.sheet.append(TechnicalSheet(item_id=lime.id, quantity_per_sale=Decimal("0.5")))
    db_session.add(dish)
    db_session.commit()
    db_session.refresh(dish)
    return dish


class TestRecipeResolver:
    def test_resolves_sheet_in_purchase_units(self, db_session, staff_ctx, daiquiri, rum, lime):
        requirements = RecipeResolver(db_session, staff_ctx).resolve_ingredients(daiquiri.id, 3)

        by_item = {r.item.id: r.quantity for r in requirements}
        assert by_item[lime.id] == Decimal("1.5")
        assert float(by_item[rum.id]) == pytest.approx(150 / 9000)

    def test_empty_sheet_resolves_to_nothing(self, db_session, staff_ctx, restaurant):
        dish = Dish(restaurant_id=restaurant.id, name="Tap water", price=Decimal("0"))
        db_session.add(dish)
        db_session.commit()

        assert RecipeResolver(db_session, staff_ctx).resolve_ingredients(dish.id, 2) == []

    def test_archived_item_is_skipped(self, db_session, staff_ctx, daiquiri, lime, rum):
        lime.soft_delete()
        db_session.commit()

        requirements = RecipeResolver(db_session, staff_ctx).resolve_ingredients(daiquiri.id, 1)
        assert [r.item.id for r in requirements] == [rum.id]

    def test_missing_item_is_skipped(self, db_session, staff_ctx, restaurant, lime):
        dish = Dish(restaurant_id=restaurant.id, name="Ghost", price=Decimal("5"))
        dish.sheet.append(TechnicalSheet(item_id=99999, quantity_per_sale=Decimal("1")))
        dish.sheet.append(TechnicalSheet(item_id=lime.id, quantity_per_sale=Decimal("1")))
        db_session.add(dish)
        db_session.commit()

        requirements = RecipeResolver(db_session, staff_ctx).resolve_ingredients(dish.id, 1)
        assert [r.item.id for r in requirements] == [lime.id]

    def test_non_positive_quantity_rejected(self, db_session, staff_ctx, daiquiri):
        with pytest.raises(ValueError):
            RecipeResolver(db_session, staff_ctx).resolve_ingredients(daiquiri.id, 0)

    def test_dish_of_other_restaurant_not_found(self, db_session, daiquiri, other_restaurant):
        foreign = TenantContext(restaurant_id=other_restaurant.id, actor_id=9)
        with pytest.raises(NotFoundError):
            RecipeResolver(db_session, foreign).resolve_ingredients(daiquiri.id, 1)

    def test_merge_sums_same_item(self, lime, rum):
        merged = merge_requirements([
            IngredientRequirement(item=lime, quantity=Decimal("2")),
            IngredientRequirement(item=rum, quantity=Decimal("0.1")),
            IngredientRequirement(item=lime, quantity=Decimal("4")),
        ])
        assert [(r.item.id, r.quantity) for r in merged] == [(lime.id, Decimal("6")), (rum.id, Decimal("0.1"))]


class TestStockValidator:
    def test_enough_stock_passes(self, lime):
        assert validate([IngredientRequirement(item=lime, quantity=Decimal("10"))]) == []

    def test_shortfall_reported(self, lime):
        shortfalls = validate([IngredientRequirement(item=lime, quantity=Decimal("12"))])

        assert len(shortfalls) == 1
        report = shortfalls[0].to_dict()
        assert report["item_id"] == lime.id
        assert report["item_name"] == "Lime"
        assert report["needed"] == 12.0
        assert report["available"] == 10.0

    def test_requirements_are_merged_before_checking(self, lime):
        # 6 + 6 exceeds 10 even though each part fits
        with pytest.raises(InsufficientStockError) as exc_info:
            ensure_available([
                IngredientRequirement(item=lime, quantity=Decimal("6")),
                IngredientRequirement(item=lime, quantity=Decimal("6")),
            ])
        assert exc_info.value.details[0]["needed"] == 12.0
