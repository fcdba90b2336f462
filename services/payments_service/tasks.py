"""Background reconciliation tasks for payments service."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.db.config import AsyncSessionLocal
from services.payments_service.errors import ProcessorError
from services.payments_service.processor_client import (
    ProcessorClient,
    ProcessorEvent,
    ProcessorEventType,
    ProcessorIntent,
    get_processor_client,
)
from services.payments_service.repository import PaymentRepository
from services.payments_service.services.reconciler import (
    ReconcileOutcome,
    WebhookReconciler,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def event_from_intent(intent: ProcessorIntent) -> Optional[ProcessorEvent]:
    """Translate a polled intent status into the event a webhook would have carried."""
    if intent.status == "succeeded":
        return ProcessorEvent(
            type=ProcessorEventType.SUCCEEDED,
            provider_intent_id=intent.provider_intent_id,
        )
    # A declined attempt drops the intent back to requires_payment_method.
    if intent.status == "requires_payment_method" and intent.failure_reason:
        return ProcessorEvent(
            type=ProcessorEventType.FAILED,
            provider_intent_id=intent.provider_intent_id,
            failure_reason=intent.failure_reason,
        )
    return None


async def _check_intent(
    processor: ProcessorClient,
    reconciler: WebhookReconciler,
    intent_id: str,
    counts: dict[str, int],
) -> None:
    try:
        intent = await processor.retrieve_intent(intent_id)
    except ProcessorError as e:
        logger.warning("Pending intent lookup failed for %s: %s", intent_id, e.message)
        counts["errors"] += 1
        return

    event = event_from_intent(intent)
    if event is None:
        counts["unchanged"] += 1
        return

    outcome = await reconciler.reconcile(event)
    if outcome == ReconcileOutcome.APPLIED:
        counts["applied"] += 1
    elif outcome == ReconcileOutcome.ERROR:
        counts["errors"] += 1
    else:
        counts["unchanged"] += 1


async def sweep_stale_pending_payments(
    db: AsyncSession,
    processor: ProcessorClient,
    *,
    older_than: timedelta,
    batch_size: int = 200,
) -> dict[str, int]:
    """Poll the processor for payments still PENDING and reconcile what it reports.

    Covers webhooks that never arrived. Goes through the same conditional
    transition as the webhook path, so it is safe to overlap with deliveries.
    Walks every stale row in ``batch_size`` pages, so intents that stay
    PENDING at the processor never crowd out newer ones.
    """
    repository = PaymentRepository(db)
    reconciler = WebhookReconciler(repository, not_found_retries=0)
    counts = {"checked": 0, "applied": 0, "unchanged": 0, "errors": 0}

    cursor = None
    while True:
        page = await repository.list_stale_pending(
            older_than, limit=batch_size, after=cursor
        )
        if not page:
            break
        # Read keys before reconciling; each transition ends the transaction.
        cursor = (page[-1].created_at, page[-1].id)
        intent_ids = [p.provider_intent_id for p in page]

        for intent_id in intent_ids:
            counts["checked"] += 1
            await _check_intent(processor, reconciler, intent_id, counts)

        if len(page) < batch_size:
            break

    if counts["checked"]:
        logger.info("Pending sweep finished: %s", counts)
    return counts


async def reconcile_stale_pending_payments() -> dict[str, int]:
    """Entry point for the worker: own session, configured processor client."""
    settings = get_settings()
    processor = get_processor_client()
    async with AsyncSessionLocal() as db:
        return await sweep_stale_pending_payments(
            db,
            processor,
            older_than=timedelta(minutes=settings.STALE_PENDING_MINUTES),
        )
