"""Processor webhook endpoint and on-demand reconciliation."""

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.payments_service.dependencies import get_reconciler
from services.payments_service.errors import ReconciliationError
from services.payments_service.processor_client import (
    ProcessorClient,
    get_processor_client,
)
from services.payments_service.schemas import SweepResult, WebhookAck
from services.payments_service.services.reconciler import WebhookReconciler
from services.payments_service.tasks import sweep_stale_pending_payments
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["webhooks"])
logger = get_logger(__name__)

SIGNATURE_HEADER = "stripe-signature"


@router.post("/webhooks/processor", response_model=WebhookAck)
async def processor_webhook(
    request: Request,
    processor: ProcessorClient = Depends(get_processor_client),
    reconciler: WebhookReconciler = Depends(get_reconciler),
):
    """
    Processor webhook endpoint (no auth; verified by signature header).

    Once the signature checks out the response is always 200, whatever
    happens locally, so the processor does not enter a retry storm.
    """
    raw = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)
    if not signature or not processor.verify_signature(raw, signature):
        logger.warning("Rejected webhook with missing or invalid signature")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature"
        )

    try:
        event = processor.parse_event(raw)
    except ReconciliationError as e:
        logger.error("Discarding malformed webhook: %s", e.message)
        return WebhookAck()

    if event is None:
        return WebhookAck()

    outcome = await reconciler.reconcile(event)
    logger.info(
        "Webhook %s for intent %s -> %s",
        event.type.value,
        event.provider_intent_id,
        outcome.value,
    )
    return WebhookAck()


@router.post("/payments/admin/reconcile-pending", response_model=SweepResult)
async def reconcile_pending_payments(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    processor: ProcessorClient = Depends(get_processor_client),
):
    """Run the stale-pending sweep now instead of waiting for the worker. Admin only."""
    settings = get_settings()
    counts = await sweep_stale_pending_payments(
        db,
        processor,
        older_than=timedelta(minutes=settings.STALE_PENDING_MINUTES),
    )
    logger.info("Admin %s ran pending sweep: %s", current_user.user_id, counts)
    return SweepResult(**counts)
