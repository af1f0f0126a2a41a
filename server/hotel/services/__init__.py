"""Service layer package."""

from .catalog_service import CatalogService
from .feedback_service import FeedbackService
from .idempotency_service import IdempotencyMismatchError, IdempotencyService, StoredResponse, scoped_operation
from .ledger_service import LedgerService
from .locks import RoomLockRegistry, room_locks
from .order_service import MenuItemUnavailableError, OrderLine, OrderService
from .reservation_service import InvalidTransitionError, ReservationService

__all__ = [
    "CatalogService",
    "FeedbackService",
    "IdempotencyMismatchError",
    "IdempotencyService",
    "InvalidTransitionError",
    "LedgerService",
    "MenuItemUnavailableError",
    "OrderLine",
    "OrderService",
    "ReservationService",
    "RoomLockRegistry",
    "StoredResponse",
    "room_locks",
    "scoped_operation",
]
