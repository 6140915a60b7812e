"""FastAPI dependency providers for the booking services.

Services are built lazily and cached with @lru_cache.

Service Dependency Graph:
    DynamoDBService (singleton via get_dynamodb_service)
        ├── RoomService
        ├── PricingService
        ├── AvailabilityService (rooms, pricing)
        ├── BookingService (rooms, pricing, availability)
        │       └── PaymentReconciler
        └── ExpirationSweeper

Testing:
    Use reset_services() to clear cached instances between tests.
"""

from functools import lru_cache

from homestay.config import get_settings, reset_settings
from homestay.services.availability import AvailabilityService
from homestay.services.booking import BookingService
from homestay.services.dynamodb import get_dynamodb_service, reset_dynamodb_service
from homestay.services.expiration import ExpirationSweeper
from homestay.services.notification_hooks import NotificationHooks
from homestay.services.pricing import PricingService
from homestay.services.reconciler import PaymentReconciler
from homestay.services.rooms import RoomService
from homestay.services.ssm_service import get_sepay_api_key


@lru_cache
def get_notification_hooks() -> NotificationHooks:
    return NotificationHooks()


@lru_cache
def get_room_service() -> RoomService:
    return RoomService(db=get_dynamodb_service())


@lru_cache
def get_pricing_service() -> PricingService:
    return PricingService(db=get_dynamodb_service(), settings=get_settings())


@lru_cache
def get_availability_service() -> AvailabilityService:
    return AvailabilityService(
        db=get_dynamodb_service(),
        rooms=get_room_service(),
        pricing=get_pricing_service(),
    )


@lru_cache
def get_booking_service() -> BookingService:
    """Get cached BookingService instance.

    Returns:
        BookingService configured with all required dependencies.
    """
    return BookingService(
        db=get_dynamodb_service(),
        rooms=get_room_service(),
        pricing=get_pricing_service(),
        availability=get_availability_service(),
        settings=get_settings(),
        hooks=get_notification_hooks(),
    )


@lru_cache
def get_payment_reconciler() -> PaymentReconciler:
    return PaymentReconciler(
        db=get_dynamodb_service(),
        bookings=get_booking_service(),
        settings=get_settings(),
        hooks=get_notification_hooks(),
    )


@lru_cache
def get_expiration_sweeper() -> ExpirationSweeper:
    return ExpirationSweeper(db=get_dynamodb_service(), hooks=get_notification_hooks())


def get_webhook_api_key() -> str | None:
    """SePay webhook key for the current environment."""
    return get_sepay_api_key(get_settings().environment)


def reset_services() -> None:
    """Clear all cached service instances, settings and the DynamoDB singleton.

    Example:
        @pytest.fixture(autouse=True)
        def reset_state():
            yield
            reset_services()
    """
    get_notification_hooks.cache_clear()
    get_room_service.cache_clear()
    get_pricing_service.cache_clear()
    get_availability_service.cache_clear()
    get_booking_service.cache_clear()
    get_payment_reconciler.cache_clear()
    get_expiration_sweeper.cache_clear()
    reset_settings()
    reset_dynamodb_service()
