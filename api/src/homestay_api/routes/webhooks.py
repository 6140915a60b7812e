"""Webhook endpoints for payment provider notifications.

SePay authenticates with an API key header instead of JWT. Once
authenticated, every notification is acknowledged with 200 so the provider
stops retrying; duplicates, unmatched narratives and processing errors are
recorded in the ledger or the logs rather than surfaced.
"""

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from homestay.services.reconciler import PaymentReconciler
from homestay.services.sepay import PROVIDER, normalize_payload
from homestay.utils.logging import get_logger, log_webhook_event
from homestay_api.dependencies import get_payment_reconciler
from homestay_api.security import require_webhook_key

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])


class WebhookResponse(BaseModel):
    """Acknowledgement returned to the provider."""

    success: bool = True
    transaction_id: str | None = None
    processing_result: str  # a ProcessingResult value, or "error"
    reservation_id: int | None = None


async def _read_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("SePay webhook body is not valid JSON")
        return {}
    return body if isinstance(body, dict) else {}


@router.post(
    "/webhooks/sepay",
    summary="SePay payment notification",
    response_model=WebhookResponse,
    dependencies=[Depends(require_webhook_key)],
    responses={401: {"description": "Missing or wrong Apikey authorization"}},
)
async def sepay_webhook(
    request: Request,
    reconciler: PaymentReconciler = Depends(get_payment_reconciler),
) -> WebhookResponse:
    notification = normalize_payload(await _read_body(request))
    try:
        result = reconciler.reconcile(notification)
    except Exception as e:
        logger.exception("Failed to reconcile SePay notification")
        log_webhook_event(
            logger,
            PROVIDER,
            notification.transaction_id,
            result="error",
            amount=notification.amount,
            error=str(e),
        )
        return WebhookResponse(
            transaction_id=notification.transaction_id, processing_result="error"
        )
    return WebhookResponse(
        transaction_id=result.transaction_id,
        processing_result=result.processing_result.value,
        reservation_id=result.reservation_id,
    )
