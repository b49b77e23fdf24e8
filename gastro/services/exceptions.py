"""Domain errors raised by the service layer.

Routes never catch these individually; ``gastro.main`` registers one handler
that maps each class to its HTTP status and a stable ``code``.
"""

from typing import Any, Optional


class GastroError(Exception):
    """Base class for expected, user-facing failures."""

    code = "error"

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(GastroError):
    """Bad input: non-positive quantity, missing payment method, no-op movement."""

    code = "validation_error"


class NotFoundError(GastroError):
    code = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class PermissionDeniedError(GastroError):
    code = "permission_denied"


class OrderStateError(GastroError):
    """The order (or table) is not in a state that allows the operation."""

    code = "invalid_state"


class InsufficientStockError(GastroError):
    """Stock does not cover what the operation needs. Nothing was written.

    ``shortfalls`` lists one ShortfallReport per short item.
    """

    code = "insufficient_stock"

    def __init__(self, shortfalls: list):
        self.shortfalls = shortfalls
        names = ", ".join(s.item_name for s in shortfalls)
        super().__init__(
            f"Insufficient stock for: {names}",
            details=[s.to_dict() for s in shortfalls],
        )


class ConcurrentModificationError(GastroError):
    """Another writer changed the row between our read and our write. Safe to retry."""

    code = "concurrent_modification"

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} was modified concurrently, retry the operation")
