"""FastAPI application for the Payments Service."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from libs.common.logging import get_logger
from libs.common.middleware import add_observability_middleware
from services.payments_service.errors import PaymentError
from services.payments_service.routers import (
    intents_router,
    manual_router,
    webhooks_router,
)

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Create and configure the Payments Service FastAPI app."""
    app = FastAPI(
        title="Rentals Payments Service",
        version="0.1.0",
        description="Rent collection and processor reconciliation for leases.",
    )
    add_observability_middleware(app)

    @app.exception_handler(PaymentError)
    async def payment_error_handler(request: Request, exc: PaymentError):
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "payments"}

    app.include_router(manual_router)
    app.include_router(webhooks_router)
    # Last, so GET /payments/{payment_id} is tried after the literal paths.
    app.include_router(intents_router)

    return app


app = create_app()
