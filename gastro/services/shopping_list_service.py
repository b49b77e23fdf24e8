"""Shopping list: a derived view of items that need buying."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from gastro.core.config import settings
from gastro.core.rbac import TenantContext
from gastro.models.inventory import Item

ZERO = Decimal("0")


@dataclass
class ShoppingListEntry:
    item_id: int
    name: str
    category: Optional[str]
    unit: str
    current_stock: Decimal
    min_stock: Decimal
    expiry_date: Optional[date]
    days_to_expiry: Optional[int]
    is_expired: bool
    is_expiring_soon: bool
    is_below_minimum: bool
    suggested_quantity: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.item_id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "current_stock": float(self.current_stock),
            "min_stock": float(self.min_stock),
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "days_to_expiry": self.days_to_expiry,
            "is_expired": self.is_expired,
            "is_expiring_soon": self.is_expiring_soon,
            "is_below_minimum": self.is_below_minimum,
            "suggested_quantity": float(self.suggested_quantity),
        }


def evaluate_item(item: Item, today: date, expiring_soon_days: int) -> Optional[ShoppingListEntry]:
    """Shopping-list entry for one item, or None if it needs nothing."""
    current = Decimal(item.current_stock)
    minimum = Decimal(item.min_stock)

    days_to_expiry = (item.expiry_date - today).days if item.expiry_date else None
    is_expired = days_to_expiry is not None and days_to_expiry < 0
    is_expiring_soon = days_to_expiry is not None and 0 <= days_to_expiry <= expiring_soon_days
    is_below_minimum = current < minimum

    if not (is_expired or is_expiring_soon or is_below_minimum):
        return None

    # Expired or expiring stock is written off: buy the full minimum
    if is_expired or is_expiring_soon:
        suggested = minimum
    else:
        suggested = minimum - current

    return ShoppingListEntry(
        item_id=item.id,
        name=item.name,
        category=item.category,
        unit=item.purchase_unit,
        current_stock=current,
        min_stock=minimum,
        expiry_date=item.expiry_date,
        days_to_expiry=days_to_expiry,
        is_expired=is_expired,
        is_expiring_soon=is_expiring_soon,
        is_below_minimum=is_below_minimum,
        suggested_quantity=max(ZERO, suggested),
    )


class ShoppingListService:
    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx

    def build(self, today: Optional[date] = None, expiring_soon_days: Optional[int] = None) -> List[ShoppingListEntry]:
        """Entries sorted expired first, then expiring soon, then by name."""
        today = today or date.today()
        if expiring_soon_days is None:
            expiring_soon_days = settings.expiring_soon_days

        items = self.db.execute(
            select(Item).where(Item.for_tenant(self.ctx.restaurant_id), Item.not_deleted())
        ).scalars()

        entries = [
            entry
            for entry in (evaluate_item(item, today, expiring_soon_days) for item in items)
            if entry is not None
        ]
        entries.sort(key=lambda e: (not e.is_expired, not e.is_expiring_soon, e.name.lower()))
        return entries
