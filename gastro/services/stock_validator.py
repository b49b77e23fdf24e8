"""Stock validation: checks requirements against current stock before any write."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List

from gastro.services.exceptions import InsufficientStockError
from gastro.services.recipe_resolver import IngredientRequirement, merge_requirements


@dataclass
class ShortfallReport:
    item_id: int
    item_name: str
    needed: Decimal
    available: Decimal
    unit: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.item_id,
            "item_name": self.item_name,
            "needed": float(self.needed),
            "available": float(self.available),
            "unit": self.unit,
        }


def validate(requirements: List[IngredientRequirement]) -> List[ShortfallReport]:
    """Return one report per item whose stock does not cover the requirement.

    Read-only; an empty list means the sale may proceed. Direct-sale items use
    the same check with the sale quantity as the requirement.
    """
    shortfalls = []
    for req in merge_requirements(requirements):
        available = Decimal(req.item.current_stock)
        if available < req.quantity:
            shortfalls.append(
                ShortfallReport(
                    item_id=req.item.id,
                    item_name=req.item.name,
                    needed=req.quantity,
                    available=available,
                    unit=req.item.purchase_unit,
                )
            )
    return shortfalls


def ensure_available(requirements: List[IngredientRequirement]) -> None:
    """Raise InsufficientStockError listing every shortfall, if any."""
    shortfalls = validate(requirements)
    if shortfalls:
        raise InsufficientStockError(shortfalls)
