"""FastAPI exception handlers for converting BookingError to HTTP responses.

The ErrorCode-to-HTTP status mapping:
- 400 Bad Request: input validation failures
- 401 Unauthorized: bad webhook credentials
- 403 Forbidden: caller not signed in or not staff
- 404 Not Found: unknown room or reservation
- 409 Conflict: overlapping bookings and illegal lifecycle moves
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
)

from homestay.models.errors import (
    BookingError,
    ConflictError,
    ErrorCode,
    ForbiddenError,
    NotFoundError,
    StateError,
    ValidationError,
)
from homestay.utils.logging import get_logger
from homestay_api.models.common import ValidationErrorDetail, ValidationErrorResponse

logger = get_logger(__name__)

# Status by error class; individual codes below take precedence.
ERROR_CLASS_TO_HTTP_STATUS: dict[type[BookingError], int] = {
    ValidationError: HTTP_400_BAD_REQUEST,
    ForbiddenError: HTTP_403_FORBIDDEN,
    NotFoundError: HTTP_404_NOT_FOUND,
    ConflictError: HTTP_409_CONFLICT,
    StateError: HTTP_409_CONFLICT,
}

ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.INVALID_WEBHOOK_KEY: HTTP_401_UNAUTHORIZED,
    ErrorCode.ROOM_NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.RESERVATION_NOT_FOUND: HTTP_404_NOT_FOUND,
}


def get_http_status_for_error(exc: BookingError) -> int:
    """Get HTTP status code for a BookingError.

    Args:
        exc: The error to map

    Returns:
        HTTP status code, defaults to 400 if not explicitly mapped.
    """
    if exc.code in ERROR_CODE_TO_HTTP_STATUS:
        return ERROR_CODE_TO_HTTP_STATUS[exc.code]
    for error_class, status_code in ERROR_CLASS_TO_HTTP_STATUS.items():
        if isinstance(exc, error_class):
            return status_code
    return HTTP_400_BAD_REQUEST


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    """Convert a BookingError to a ToolError JSON body with a mapped status."""
    status_code = get_http_status_for_error(exc)
    if status_code >= HTTP_409_CONFLICT:
        logger.info("%s %s -> %s (%s)", request.method, request.url.path, status_code, exc.code.value)
    return JSONResponse(
        status_code=status_code,
        content=exc.to_tool_error().model_dump(mode="json"),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Wrap FastAPI request validation errors in the standard error body."""
    body = ValidationErrorResponse(
        details=[
            ValidationErrorDetail(
                loc=[part if isinstance(part, int) else str(part) for part in err.get("loc", ())],
                msg=str(err.get("msg", "")),
                type=str(err.get("type", "")),
            )
            for err in exc.errors()
        ]
    )
    return JSONResponse(
        status_code=422,
        content=body.model_dump(mode="json"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(BookingError, booking_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
