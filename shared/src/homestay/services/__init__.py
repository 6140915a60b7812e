"""Services for the homestay booking core."""

from .availability import AvailabilityService, intervals_conflict, validate_interval
from .booking import BookingService
from .dynamodb import DynamoDBService, get_dynamodb_service, reset_dynamodb_service
from .expiration import ExpirationSweeper
from .notification_hooks import NotificationHooks
from .pricing import PricingService
from .reconciler import PaymentReconciler
from .rooms import RoomService

__all__ = [
    "AvailabilityService",
    "BookingService",
    "DynamoDBService",
    "ExpirationSweeper",
    "NotificationHooks",
    "PaymentReconciler",
    "PricingService",
    "RoomService",
    "get_dynamodb_service",
    "intervals_conflict",
    "reset_dynamodb_service",
    "validate_interval",
]
