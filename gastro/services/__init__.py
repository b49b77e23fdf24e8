# Services module

from gastro.services.exceptions import (
    ConcurrentModificationError,
    GastroError,
    InsufficientStockError,
    NotFoundError,
    OrderStateError,
    PermissionDeniedError,
    ValidationError,
)
from gastro.services.order_service import OrderLine, OrderService
from gastro.services.withdrawal_service import WithdrawalService
