"""SQLAlchemy declarative base and common mixins."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class TenantMixin:
    """Scopes a row to one restaurant (the tenant)."""

    @declared_attr
    def restaurant_id(cls) -> Mapped[int]:
        return mapped_column(
            ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
        )

    @classmethod
    def for_tenant(cls, restaurant_id: int):
        """SQLAlchemy filter expression: ``WHERE restaurant_id = :restaurant_id``."""
        return cls.restaurant_id == restaurant_id


class VersionMixin:
    """Optimistic locking via a version counter.

    Models using this mixin gain a ``version`` column that starts at 1.
    Hot rows (stock levels, order totals) are written with a
    compare-and-set ``UPDATE ... WHERE version = :expected`` so that two
    concurrent writers cannot both succeed against the same read.
    """

    version: Mapped[int] = mapped_column(Integer, default=1, server_default="1", nullable=False)


class SoftDeleteMixin:
    """Soft-delete support via ``is_deleted`` flag and ``deleted_at`` timestamp.

    Call ``soft_delete()`` to archive a row and ``restore()`` to bring it back.
    Use ``not_deleted()`` as a query filter.
    """

    is_deleted: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="0", nullable=False, index=True,
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None,
    )

    def soft_delete(self) -> None:
        self.is_deleted = True
        self.deleted_at = datetime.now(timezone.utc)

    def restore(self) -> None:
        self.is_deleted = False
        self.deleted_at = None

    @classmethod
    def not_deleted(cls):
        """SQLAlchemy filter expression: ``WHERE is_deleted = FALSE``."""
        return cls.is_deleted.is_(False)
