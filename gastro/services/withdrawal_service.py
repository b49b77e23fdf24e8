"""Withdrawal and adjustment service - manual stock changes outside of sales.

All four operations go through the stock ledger, so each leaves exactly one
movement behind:

- withdrawal: waste, internal use, expired goods... (``withdrawal``)
- receive: goods delivered (``entry``)
- count: a physical count sets the stock (``entry`` if it rose,
  ``adjustment`` otherwise); only admins may lower stock this way
- adjust: admin correction to an arbitrary value (``adjustment``)
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy.orm import Session

from gastro.core.rbac import TenantContext
from gastro.db.session import unit_of_work
from gastro.models.stock import MovementType, StockMovement, WithdrawalReason
from gastro.services.exceptions import InsufficientStockError, PermissionDeniedError, ValidationError
from gastro.services.stock_ledger import UNCHANGED, StockLedger, Unchanged
from gastro.services.stock_validator import ShortfallReport

logger = logging.getLogger(__name__)


@dataclass
class WithdrawalResult:
    success: bool
    new_stock: Decimal
    is_low_stock: bool
    movement_id: int


def _positive_decimal(value, field: str) -> Decimal:
    quantity = Decimal(str(value))
    if quantity <= 0:
        raise ValidationError(f"{field} must be positive")
    return quantity


class WithdrawalService:
    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx
        self.ledger = StockLedger(db, ctx)

    def process_withdrawal(
        self,
        item_id: int,
        quantity,
        reason: Union[WithdrawalReason, str],
        notes: Optional[str] = None,
    ) -> WithdrawalResult:
        """Take ``quantity`` (purchase units) out of stock for a stated reason.

        Requires 0 < quantity <= current_stock; a withdrawal never drives
        stock negative.
        """
        quantity = _positive_decimal(quantity, "quantity")
        try:
            reason = WithdrawalReason(reason)
        except ValueError:
            raise ValidationError(f"Unknown withdrawal reason '{reason}'")

        with unit_of_work(self.db):
            item = self.ledger.get_item(item_id)
            available = Decimal(item.current_stock)
            if quantity > available:
                raise InsufficientStockError([
                    ShortfallReport(
                        item_id=item.id,
                        item_name=item.name,
                        needed=quantity,
                        available=available,
                        unit=item.purchase_unit,
                    )
                ])

            text = reason.label
            if notes and notes.strip():
                text = f"{text}: {notes.strip()}"
            movement = self.ledger.apply_delta(item, -quantity, MovementType.WITHDRAWAL, reason=text)

        new_stock = Decimal(movement.new_stock)
        is_low = new_stock <= Decimal(item.min_stock)
        if is_low:
            logger.warning(f"Item '{item.name}' (id={item.id}) at or below minimum: {new_stock}")
        return WithdrawalResult(
            success=True,
            new_stock=new_stock,
            is_low_stock=is_low,
            movement_id=movement.id,
        )

    def receive_stock(
        self,
        item_id: int,
        quantity,
        new_expiry: Union[Optional[date], Unchanged] = UNCHANGED,
        notes: Optional[str] = None,
    ) -> StockMovement:
        """Book delivered goods as an entry."""
        quantity = _positive_decimal(quantity, "quantity")
        with unit_of_work(self.db):
            item = self.ledger.get_item(item_id)
            movement = self.ledger.apply_movement(
                item,
                Decimal(item.current_stock) + quantity,
                MovementType.ENTRY,
                reason=notes.strip() if notes and notes.strip() else "Stock received",
                new_expiry=new_expiry,
            )
        return movement

    def record_stock_count(
        self,
        item_id: int,
        new_stock,
        new_expiry: Union[Optional[date], Unchanged] = UNCHANGED,
        notes: Optional[str] = None,
    ) -> Optional[StockMovement]:
        """Set stock to a counted value.

        Returns the movement written, or None when the count confirmed the
        stored stock and expiry (only the count date is updated).

        Raises:
            PermissionDeniedError: a non-admin count would lower stock.
        """
        new_stock = Decimal(str(new_stock))
        if new_stock < 0:
            raise ValidationError("Counted stock cannot be negative")

        with unit_of_work(self.db):
            item = self.ledger.get_item(item_id)
            current = Decimal(item.current_stock)
            if new_stock < current and not self.ctx.is_admin:
                raise PermissionDeniedError(
                    f"Only admins may lower stock by count; record a withdrawal for '{item.name}' instead"
                )

            expiry = item.expiry_date if new_expiry is UNCHANGED else new_expiry
            movement = None
            if new_stock != current or expiry != item.expiry_date:
                movement_type = MovementType.ENTRY if new_stock > current else MovementType.ADJUSTMENT
                movement = self.ledger.apply_movement(
                    item,
                    new_stock,
                    movement_type,
                    reason=notes.strip() if notes and notes.strip() else "Stock count",
                    new_expiry=expiry,
                )

            item.last_count_date = datetime.now(timezone.utc)
            item.last_counted_by = self.ctx.actor_id
            self.db.flush()

        logger.info(f"Item {item_id} counted at {new_stock} by {self.ctx.actor_id}")
        return movement

    def adjust_stock(self, item_id: int, new_stock, reason: str) -> StockMovement:
        """Admin correction of stock to ``new_stock``, in either direction."""
        if not self.ctx.is_admin:
            raise PermissionDeniedError("Stock adjustments require an admin")
        if not reason or not reason.strip():
            raise ValidationError("An adjustment needs a reason")

        with unit_of_work(self.db):
            item = self.ledger.get_item(item_id)
            movement = self.ledger.apply_movement(
                item, Decimal(str(new_stock)), MovementType.ADJUSTMENT, reason=reason.strip()
            )
        return movement


def get_withdrawal_service(db: Session, ctx: TenantContext) -> WithdrawalService:
    """Factory function to create WithdrawalService instance."""
    return WithdrawalService(db, ctx)
