"""Payment notification and ledger models."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field

from .enums import PaymentStatus, ProcessingResult


class PaymentNotification(BaseModel):
    """A provider payment notification after normalization.

    ``direction`` and ``status`` keep the provider's vocabulary, lowercased
    and uppercased respectively; an empty string means the provider sent none.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    provider: str = Field(..., examples=["sepay"])
    transaction_id: str = Field(..., min_length=1, examples=["FT24153XXXX"])
    amount: int
    narrative: str = Field(default="", examples=["HS-42-NVH-7K2QXA chuyen tien"])
    direction: str = Field(default="", examples=["in"])
    status: str = Field(default="", examples=["SUCCESS"])


class LedgerEntry(BaseModel):
    """Append-only record of a processed notification."""

    model_config = ConfigDict(strict=True)

    provider: str
    transaction_id: str
    amount: int
    narrative: str
    direction: str
    status: str
    received_at: dt.datetime
    reservation_id: int | None = None
    processing_result: ProcessingResult


class ReconciliationResult(BaseModel):
    """Outcome of reconciling one notification."""

    model_config = ConfigDict(strict=True)

    processing_result: ProcessingResult
    transaction_id: str
    reservation_id: int | None = None
    paid_amount: int | None = None
    payment_status: PaymentStatus | None = None
    confirmed: bool = Field(
        default=False, description="True when this notification confirmed the booking"
    )
