"""Logging for the booking core.

Every record carries the correlation ID of the HTTP request (or webhook
delivery) that produced it, so one booking or payment can be followed across
services. The API middleware sets the ID; services only call
``get_logger(__name__)`` and the ``log_*`` helpers below.
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

NO_CORRELATION_ID = "no-correlation-id"


def generate_correlation_id() -> str:
    """Generate a new UUID-based correlation ID."""
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set the correlation ID for the current request context.

    Args:
        correlation_id: Incoming ID to reuse; a fresh UUID when empty

    Returns:
        The ID now bound to this context
    """
    cid = correlation_id or generate_correlation_id()
    _correlation_id.set(cid)
    return cid


def get_correlation_id() -> str | None:
    """Get the current correlation ID, or None outside a request."""
    return _correlation_id.get()


def clear_correlation_id() -> None:
    """Clear the correlation ID context."""
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds correlation_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class StructuredFormatter(logging.Formatter):
    """Formatter that prefixes records with their correlation ID."""

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return f"[{record.correlation_id}] {super().format(record)}"


def configure_logging(level: int | str = logging.INFO) -> None:
    """Install the structured formatter on the root logger.

    Safe to call more than once; an existing handler is reused.

    Args:
        level: Root log level
    """
    root = logging.getLogger()
    root.setLevel(level)
    if not root.handlers:
        root.addHandler(logging.StreamHandler())
    for handler in root.handlers:
        handler.setFormatter(
            StructuredFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )


def get_logger(name: str) -> logging.Logger:
    """Get a logger with correlation ID support.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())
    return logger


def log_payment_operation(
    logger: logging.Logger,
    operation: str,
    *,
    reservation_id: int | None = None,
    amount: int | None = None,
    paid_amount: int | None = None,
    payment_status: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a payment-affecting operation with structured context.

    Args:
        logger: Logger instance
        operation: Operation name (e.g. "apply_transfer", "mark_cash_paid")
        reservation_id: Reservation the funds belong to
        amount: Amount received in this operation
        paid_amount: Cumulative amount paid after the operation
        payment_status: Payment status after the operation
        error: Error message if the operation failed
        **extra: Additional context fields
    """
    context: dict[str, Any] = {"operation": operation}
    if reservation_id is not None:
        context["reservation_id"] = reservation_id
    if amount is not None:
        context["amount"] = amount
    if paid_amount is not None:
        context["paid_amount"] = paid_amount
    if payment_status:
        context["payment_status"] = payment_status
    if error:
        context["error"] = error
    context.update(extra)

    message = " | ".join(
        [f"Payment operation: {operation}"]
        + [f"{key}={value}" for key, value in context.items() if key != "operation"]
    )
    if error:
        logger.error(message, extra=context)
    else:
        logger.info(message, extra=context)


def log_webhook_event(
    logger: logging.Logger,
    provider: str,
    transaction_id: str,
    *,
    result: str,
    reservation_id: int | None = None,
    amount: int | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log the outcome of one payment notification.

    Args:
        logger: Logger instance
        provider: Notification source (e.g. "sepay")
        transaction_id: Provider transaction ID (or synthesized key)
        result: Processing result (applied, duplicate, ignored, unmatched, error)
        reservation_id: Matched reservation, if any
        amount: Notified amount
        error: Error message if processing failed
        **extra: Additional context fields
    """
    context: dict[str, Any] = {
        "provider": provider,
        "transaction_id": transaction_id,
        "result": result,
    }
    if reservation_id is not None:
        context["reservation_id"] = reservation_id
    if amount is not None:
        context["amount"] = amount
    if error:
        context["error"] = error
    context.update(extra)

    msg_parts = [f"Webhook event: {provider} ({transaction_id})", f"result={result}"]
    if reservation_id is not None:
        msg_parts.append(f"reservation={reservation_id}")
    if error:
        msg_parts.append(f"error={error}")
    message = " | ".join(msg_parts)

    if result == "error":
        logger.error(message, extra=context)
    elif result in ("duplicate", "unmatched"):
        logger.warning(message, extra=context)
    else:
        logger.info(message, extra=context)
