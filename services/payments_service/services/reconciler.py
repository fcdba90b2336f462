"""Webhook-driven payment status reconciliation.

State machine owned here (everything else is terminal for this component):

    PENDING --succeeded--> PAID
    PENDING --failed-----> FAILED

Deliveries are at-least-once and unordered. Safety comes from the
repository's conditional UPDATE: the transition only lands if the row is still
PENDING, so duplicates and late arrivals become no-ops. A miss on the intent id
is retried with bounded backoff, since the webhook can beat the commit of the
request that created the payment.
"""

import asyncio
import enum
from typing import Awaitable, Callable, Iterable, Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.payments_service.errors import ReconciliationError
from services.payments_service.models import Payment, PaymentStatus
from services.payments_service.processor_client import (
    ProcessorEvent,
    ProcessorEventType,
)
from services.payments_service.repository import PaymentRepository

logger = get_logger(__name__)

_TARGET_STATUS = {
    ProcessorEventType.SUCCEEDED: PaymentStatus.PAID,
    ProcessorEventType.FAILED: PaymentStatus.FAILED,
}


class ReconcileOutcome(str, enum.Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"  # payment already left PENDING
    NOT_FOUND = "not_found"
    IGNORED = "ignored"
    ERROR = "error"


class WebhookReconciler:
    def __init__(
        self,
        repository: PaymentRepository,
        *,
        not_found_retries: int = 3,
        retry_backoff: float = 0.25,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.repository = repository
        self.not_found_retries = max(0, not_found_retries)
        self.retry_backoff = retry_backoff
        self._sleep = sleep

    async def reconcile(self, event: ProcessorEvent) -> ReconcileOutcome:
        """Apply one event. Never raises; failures are logged and reported as ERROR."""
        try:
            return await self._apply(event)
        except Exception:
            logger.exception(
                "Reconciliation failed for intent %s (%s)",
                event.provider_intent_id,
                event.type.value,
                extra={"extra_fields": {"event_id": event.event_id}},
            )
            return ReconcileOutcome.ERROR

    async def reconcile_many(
        self, events: Iterable[ProcessorEvent]
    ) -> list[ReconcileOutcome]:
        """Apply events one at a time; a failing event does not stop the rest."""
        outcomes = []
        for event in events:
            outcomes.append(await self.reconcile(event))
        return outcomes

    async def _apply(self, event: ProcessorEvent) -> ReconcileOutcome:
        target = _TARGET_STATUS.get(event.type)
        if target is None:
            return ReconcileOutcome.IGNORED

        payment = await self._find_payment(event.provider_intent_id)
        if payment is None:
            error = ReconciliationError(
                f"No payment for intent {event.provider_intent_id}"
            )
            logger.warning(
                "%s; acknowledging %s event",
                error.message,
                event.type.value,
                extra={"extra_fields": {"event_id": event.event_id}},
            )
            return ReconcileOutcome.NOT_FOUND

        if payment.status.is_terminal:
            logger.info(
                "Event %s for payment %s skipped - already %s",
                event.type.value,
                payment.id,
                payment.status.value,
            )
            return ReconcileOutcome.DUPLICATE

        paid_date = None
        if target == PaymentStatus.PAID:
            paid_date = event.occurred_at or utc_now()
        applied = await self.repository.transition_from_pending(
            event.provider_intent_id,
            target,
            paid_date=paid_date,
            failure_reason=event.failure_reason,
        )
        if not applied:
            # Lost the race to a concurrent delivery of the same transition.
            logger.info(
                "Payment %s left PENDING concurrently; %s is a no-op",
                payment.id,
                event.type.value,
            )
            return ReconcileOutcome.DUPLICATE

        logger.info(
            "Payment %s marked %s via processor event",
            payment.id,
            target.value,
            extra={"extra_fields": {"event_id": event.event_id}},
        )
        return ReconcileOutcome.APPLIED

    async def _find_payment(self, provider_intent_id: str) -> Optional[Payment]:
        delay = self.retry_backoff
        for attempt in range(self.not_found_retries + 1):
            payment = await self.repository.get_by_intent_id(provider_intent_id)
            if payment is not None or attempt == self.not_found_retries:
                return payment
            logger.debug(
                "Intent %s not found (attempt %d), retrying in %.2fs",
                provider_intent_id,
                attempt + 1,
                delay,
            )
            await self.repository.end_read()
            await self._sleep(delay)
            delay *= 2
        return None
