"""FastAPI application for the homestay booking API.

Serves guest booking, the availability calendar, staff operations and the
SePay payment webhook under /api. Runs on Lambda behind API Gateway via
Mangum, or locally with uvicorn.
"""

import os
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from homestay import __version__
from homestay.utils.logging import configure_logging, get_logger
from homestay_api.exceptions import register_exception_handlers
from homestay_api.middleware import CorrelationIdMiddleware
from homestay_api.routes.admin import router as admin_router
from homestay_api.routes.availability import router as availability_router
from homestay_api.routes.reservations import router as reservations_router
from homestay_api.routes.webhooks import router as webhooks_router

configure_logging(os.getenv("LOG_LEVEL", "INFO"))
logger = get_logger(__name__)

app = FastAPI(
    title="Homestay Booking API",
    description="Overnight and hourly room booking with bank-transfer payments",
    version=__version__,
)

# Configure CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv(
        "CORS_ALLOW_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
    ).split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

register_exception_handlers(app)

app.include_router(availability_router, prefix="/api")
app.include_router(reservations_router, prefix="/api")
app.include_router(webhooks_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/api/ping")
async def ping() -> dict[str, Any]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "homestay-api",
    }


# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = False) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8080)
        reload: Enable hot reload for development (default: False)
    """
    import uvicorn

    if reload:
        uvicorn.run(
            "homestay_api.main:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["api/src", "shared/src"],
        )
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server(reload=True)
