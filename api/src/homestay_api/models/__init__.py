"""API-layer request and response models."""

from .common import ValidationErrorDetail, ValidationErrorResponse
from .reservations import (
    CancelRequest,
    CashPaymentRequest,
    DayPriceListResponse,
    DayPriceUpdateRequest,
    PaymentInstructionsResponse,
    PaymentRetryResponse,
    ReservationListResponse,
    SweepResponse,
)

__all__ = [
    "CancelRequest",
    "CashPaymentRequest",
    "DayPriceListResponse",
    "DayPriceUpdateRequest",
    "PaymentInstructionsResponse",
    "PaymentRetryResponse",
    "ReservationListResponse",
    "SweepResponse",
    "ValidationErrorDetail",
    "ValidationErrorResponse",
]
