"""Table management: layout and reservations.

Occupancy is owned by the order service; here a table can only be moved
between ``free`` and ``reserved`` while no order holds it.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gastro.core.rbac import TenantContext
from gastro.db.session import unit_of_work
from gastro.models.restaurant import RestaurantTable, TableStatus
from gastro.services.exceptions import NotFoundError, OrderStateError, ValidationError

logger = logging.getLogger(__name__)


class TableService:
    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx

    def list_tables(self) -> List[RestaurantTable]:
        return list(
            self.db.execute(
                select(RestaurantTable)
                .where(RestaurantTable.for_tenant(self.ctx.restaurant_id))
                .order_by(RestaurantTable.table_number)
            ).scalars()
        )

    def get_table(self, table_id: int) -> RestaurantTable:
        table = self.db.execute(
            select(RestaurantTable).where(
                RestaurantTable.id == table_id,
                RestaurantTable.for_tenant(self.ctx.restaurant_id),
            )
        ).scalar_one_or_none()
        if table is None:
            raise NotFoundError("Table", table_id)
        return table

    def create_table(self, table_number: int, capacity: int = 4) -> RestaurantTable:
        try:
            with unit_of_work(self.db):
                table = RestaurantTable(
                    restaurant_id=self.ctx.restaurant_id,
                    table_number=table_number,
                    capacity=capacity,
                    status=TableStatus.FREE.value,
                )
                self.db.add(table)
                self.db.flush()
        except IntegrityError:
            raise ValidationError(f"Table number {table_number} already exists")
        return table

    def update_table(self, table_id: int, data: Dict[str, Any]) -> RestaurantTable:
        unknown = set(data) - {"table_number", "capacity"}
        if unknown:
            raise ValidationError(f"Cannot update {', '.join(sorted(unknown))} on a table")
        try:
            with unit_of_work(self.db):
                table = self.get_table(table_id)
                for field, value in data.items():
                    setattr(table, field, value)
                self.db.flush()
        except IntegrityError:
            raise ValidationError(f"Table number {data.get('table_number')} already exists")
        return table

    def set_reserved(self, table_id: int, reserved: bool) -> RestaurantTable:
        with unit_of_work(self.db):
            table = self.get_table(table_id)
            if table.current_order_id is not None or table.status == TableStatus.OCCUPIED.value:
                raise OrderStateError(f"Table {table.table_number} is occupied")
            table.status = (TableStatus.RESERVED if reserved else TableStatus.FREE).value
            self.db.flush()
        logger.info(f"Table {table.table_number} now {table.status}")
        return table

    def delete_table(self, table_id: int) -> None:
        with unit_of_work(self.db):
            table = self.get_table(table_id)
            if table.current_order_id is not None:
                raise OrderStateError(f"Table {table.table_number} is occupied")
            self.db.delete(table)
