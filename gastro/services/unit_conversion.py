"""Unit conversion between recipe quantities and stock (purchase) units.

Stock is always held in an item's purchase unit. Technical sheets may express
consumption in any unit of the item's chain:

    purchase_unit --(units_per_package)--> sub_unit --(recipe_units_per_consumption)--> recipe_unit

e.g. a box of 12 bottles, each bottle 750 ml. Selling 50 ml consumes
50 / (12 * 750) boxes.

Unknown units fall back to purchase units and are logged, so a typo in a
technical sheet never blocks a sale.
"""

import logging
from decimal import Decimal
from typing import Optional

from gastro.models.inventory import Item

logger = logging.getLogger(__name__)

ONE = Decimal("1")


def _normalize(unit: Optional[str]) -> str:
    return (unit or "").strip().lower()


def _factor(value) -> Decimal:
    """Treat missing or non-positive factors as 1."""
    if value is None:
        return ONE
    factor = Decimal(str(value))
    return factor if factor > 0 else ONE


def conversion_factor(unit: Optional[str], item: Item) -> Decimal:
    """How many ``unit`` make one purchase unit of ``item``."""
    normalized = _normalize(unit)
    if not normalized or normalized == _normalize(item.purchase_unit):
        return ONE

    units_per_package = _factor(item.units_per_package)
    if item.sub_unit and normalized == _normalize(item.sub_unit):
        return units_per_package

    if item.recipe_unit and normalized == _normalize(item.recipe_unit):
        return units_per_package * _factor(item.recipe_units_per_consumption)

    logger.warning(
        f"Unknown unit '{unit}' for item '{item.name}' (id={item.id}), "
        f"treating quantity as {item.purchase_unit}"
    )
    return ONE


def to_purchase_units(quantity, unit: Optional[str], item: Item) -> Decimal:
    """Convert ``quantity`` expressed in ``unit`` to the item's purchase unit."""
    return Decimal(str(quantity)) / conversion_factor(unit, item)


def from_purchase_units(quantity, unit: Optional[str], item: Item) -> Decimal:
    """Inverse of :func:`to_purchase_units`."""
    return Decimal(str(quantity)) * conversion_factor(unit, item)
