"""SePay bank-transfer provider adapter.

SePay posts one JSON notification per bank transaction and authenticates
with ``Authorization: Apikey <key>``. Field names vary between account
types, so each value is read from the first key present.
"""

import hashlib
import hmac
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any
from urllib.parse import quote

from homestay.config import BankAccount
from homestay.models import PaymentNotification, PaymentProvider

PROVIDER = PaymentProvider.SEPAY.value

TRANSACTION_ID_KEYS = ("referenceCode", "id", "txn_id", "transactionId", "transId", "reference")
AMOUNT_KEYS = ("transferAmount", "amount", "money")
NARRATIVE_KEYS = ("code", "content", "description", "memo", "note", "transferContent")
DIRECTION_KEYS = ("transferType", "direction", "type")
STATUS_KEYS = ("status", "state")

INCOMING_DIRECTIONS = frozenset({"", "in", "credit", "incoming"})
SUCCESS_STATUSES = frozenset({"", "SUCCESS", "PAID", "COMPLETED"})


def _first(body: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = body.get(key)
        if value not in (None, ""):
            return value
    return None


def _to_amount(value: Any) -> int:
    """Parse an amount, flooring fractions; unparseable values become 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        return int(Decimal(str(value).strip()).to_integral_value(rounding=ROUND_FLOOR))
    except (InvalidOperation, ValueError):
        return 0


def synthesize_transaction_id(narrative: str, amount: int) -> str:
    """Stable key for notifications that carry no transaction ID."""
    digest = hashlib.sha256(f"{narrative}|{amount}".encode()).hexdigest()
    return f"noid_{digest[:32]}"


def normalize_payload(body: dict[str, Any]) -> PaymentNotification:
    """Turn a raw SePay webhook body into a PaymentNotification.

    Args:
        body: Parsed JSON body

    Returns:
        Normalized notification; a missing transaction ID is synthesized
        from the narrative and amount
    """
    amount = _to_amount(_first(body, AMOUNT_KEYS))
    narrative = str(_first(body, NARRATIVE_KEYS) or "").strip()
    transaction_id = str(_first(body, TRANSACTION_ID_KEYS) or "").strip()
    return PaymentNotification(
        provider=PROVIDER,
        transaction_id=transaction_id or synthesize_transaction_id(narrative, amount),
        amount=amount,
        narrative=narrative,
        direction=str(_first(body, DIRECTION_KEYS) or "").strip().lower(),
        status=str(_first(body, STATUS_KEYS) or "").strip().upper(),
    )


def is_incoming_success(notification: PaymentNotification) -> bool:
    """True for credited, successful notifications with a positive amount."""
    return (
        notification.direction in INCOMING_DIRECTIONS
        and notification.status in SUCCESS_STATUSES
        and notification.amount > 0
    )


def build_qr_url(template: str, bank: BankAccount, amount: int, content: str) -> str:
    """Fill the QR deep-link template with URL-encoded transfer details.

    Placeholders: {ACC} account number, {BANK} bank name, {BIN} bank BIN
    (for VietQR-style links), {AMOUNT} and {DES} the transfer content.
    """

    def enc(value: str) -> str:
        return quote(value, safe="!~*'()")

    return (
        template.replace("{ACC}", enc(bank.account_number))
        .replace("{BANK}", enc(bank.bank_name))
        .replace("{BIN}", enc(bank.bank_bin))
        .replace("{AMOUNT}", enc(str(amount)))
        .replace("{DES}", enc(content))
    )


def verify_api_key(authorization: str | None, expected_key: str | None) -> bool:
    """Check an ``Authorization: Apikey <key>`` header.

    The scheme is matched case-insensitively. A missing configured key
    rejects everything.
    """
    if not expected_key or not authorization:
        return False
    scheme, _, supplied = authorization.strip().partition(" ")
    if scheme.lower() != "apikey":
        return False
    return hmac.compare_digest(supplied.strip().encode(), expected_key.encode())
