"""Caller identity and webhook authentication.

The API Gateway authorizer validates the session and forwards the caller as
``x-user-id`` (numeric) and ``x-user-admin`` headers. Requests without them
are anonymous.
"""

from fastapi import Depends, Request

from homestay.models import Caller, ErrorCode, ForbiddenError
from homestay.services.sepay import verify_api_key
from homestay_api.dependencies import get_webhook_api_key

USER_ID_HEADER = "x-user-id"
USER_ADMIN_HEADER = "x-user-admin"

_TRUTHY = {"1", "true", "yes"}


def get_caller(request: Request) -> Caller:
    """Build the Caller from gateway headers (anonymous when absent)."""
    raw_id = request.headers.get(USER_ID_HEADER, "").strip()
    if not raw_id:
        return Caller()
    # str.isdigit() also accepts digits int() cannot parse, such as "²"
    if not (raw_id.isascii() and raw_id.isdigit()):
        raise ForbiddenError(ErrorCode.AUTH_REQUIRED, {"header": USER_ID_HEADER})
    is_admin = request.headers.get(USER_ADMIN_HEADER, "").strip().lower() in _TRUTHY
    return Caller(user_id=int(raw_id), is_admin=is_admin)


def require_admin(caller: Caller = Depends(get_caller)) -> Caller:
    """Dependency for staff-only routes."""
    caller.require_admin()
    return caller


def require_webhook_key(
    request: Request,
    expected_key: str | None = Depends(get_webhook_api_key),
) -> None:
    """Reject webhook calls without ``Authorization: Apikey <key>``."""
    if not verify_api_key(request.headers.get("authorization"), expected_key):
        raise ForbiddenError(ErrorCode.INVALID_WEBHOOK_KEY)
