"""Models module exporting all database models."""

from .catalog import Room, RoomStatus, RoomType
from .feedback import Feedback, FeedbackCategory, FeedbackStatus, Rating, RatingType
from .idempotency import IdempotencyRecord
from .reservation import OCCUPYING_STATUSES, Reservation, ReservationStatus
from .restaurant import DeliveryType, FoodOrder, FoodOrderItem, MenuCategory, MenuItem, OrderStatus

__all__ = [
    # Catalog entities
    "RoomType",
    "Room",
    "RoomStatus",

    # Ledger entities
    "Reservation",
    "ReservationStatus",
    "OCCUPYING_STATUSES",

    # Restaurant entities
    "MenuCategory",
    "MenuItem",
    "FoodOrder",
    "FoodOrderItem",
    "OrderStatus",
    "DeliveryType",

    # Feedback entities
    "Rating",
    "RatingType",
    "Feedback",
    "FeedbackCategory",
    "FeedbackStatus",

    # Idempotency entity
    "IdempotencyRecord",
]
