"""Unit tests for the stale-pending sweep."""

from datetime import datetime, timedelta, timezone

import pytest
from services.payments_service.errors import ProcessorError
from services.payments_service.models import PaymentStatus
from services.payments_service.processor_client import (
    ProcessorEventType,
    ProcessorIntent,
)
from services.payments_service.tasks import (
    event_from_intent,
    sweep_stale_pending_payments,
)
from tests.factories import PaymentFactory


@pytest.mark.unit
def test_event_from_intent():
    succeeded = event_from_intent(ProcessorIntent("pi_1", status="succeeded"))
    declined = event_from_intent(
        ProcessorIntent("pi_2", status="requires_payment_method", failure_reason="Declined")
    )
    untouched = event_from_intent(ProcessorIntent("pi_3", status="requires_payment_method"))
    processing = event_from_intent(ProcessorIntent("pi_4", status="processing"))

    assert succeeded.type == ProcessorEventType.SUCCEEDED
    assert declined.type == ProcessorEventType.FAILED
    assert declined.failure_reason == "Declined"
    assert untouched is None
    assert processing is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_sweep_reconciles_what_the_processor_reports(db_session, processor):
    an_hour_ago = datetime.now(timezone.utc) - timedelta(hours=1)
    paid = PaymentFactory.create(provider_intent_id="pi_paid", created_at=an_hour_ago)
    declined = PaymentFactory.create(provider_intent_id="pi_declined", created_at=an_hour_ago)
    waiting = PaymentFactory.create(provider_intent_id="pi_waiting", created_at=an_hour_ago)
    lost = PaymentFactory.create(provider_intent_id="pi_lost", created_at=an_hour_ago)
    db_session.add_all([paid, declined, waiting, lost])
    await db_session.commit()

    processor.set_intent_status("pi_paid", "succeeded")
    processor.set_intent_status("pi_declined", "requires_payment_method", "Card declined")
    processor.set_intent_status("pi_waiting", "requires_payment_method")
    # pi_lost is unknown to the processor: retrieve raises ProcessorError

    counts = await sweep_stale_pending_payments(
        db_session, processor, older_than=timedelta(minutes=15)
    )

    assert counts == {"checked": 4, "applied": 2, "unchanged": 1, "errors": 1}
    for payment in (paid, declined, waiting, lost):
        await db_session.refresh(payment)
    assert paid.status == PaymentStatus.PAID
    assert declined.status == PaymentStatus.FAILED
    assert declined.failure_reason == "Card declined"
    assert waiting.status == PaymentStatus.PENDING
    assert lost.status == PaymentStatus.PENDING


@pytest.mark.asyncio
@pytest.mark.unit
async def test_sweep_skips_recent_payments(db_session, processor):
    recent = PaymentFactory.create(provider_intent_id="pi_recent")
    db_session.add(recent)
    await db_session.commit()
    processor.set_intent_status("pi_recent", "succeeded")

    counts = await sweep_stale_pending_payments(
        db_session, processor, older_than=timedelta(minutes=15)
    )

    assert counts["checked"] == 0
    await db_session.refresh(recent)
    assert recent.status == PaymentStatus.PENDING


@pytest.mark.asyncio
@pytest.mark.unit
async def test_worker_task_runs_the_sweep(monkeypatch):
    from services.payments_service import tasks, worker

    async def fake_sweep():
        return {"checked": 0, "applied": 0, "unchanged": 0, "errors": 0}

    monkeypatch.setattr(tasks, "reconcile_stale_pending_payments", fake_sweep)

    result = await worker.task_reconcile_pending_payments({})

    assert result["checked"] == 0
    assert worker.task_reconcile_pending_payments in worker.WorkerSettings.functions
    assert len(worker.WorkerSettings.cron_jobs) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_abandoned_intents_do_not_block_later_payments(db_session, processor):
    now = datetime.now(timezone.utc)
    abandoned = [
        PaymentFactory.create(
            provider_intent_id=f"pi_abandoned_{i}", created_at=now - timedelta(hours=3 - i)
        )
        for i in range(2)
    ]
    succeeded = PaymentFactory.create(
        provider_intent_id="pi_succeeded", created_at=now - timedelta(minutes=30)
    )
    db_session.add_all([*abandoned, succeeded])
    await db_session.commit()
    processor.set_intent_status("pi_abandoned_0", "requires_payment_method")
    processor.set_intent_status("pi_abandoned_1", "canceled")
    processor.set_intent_status("pi_succeeded", "succeeded")

    counts = await sweep_stale_pending_payments(
        db_session, processor, older_than=timedelta(minutes=15), batch_size=2
    )

    assert counts == {"checked": 3, "applied": 1, "unchanged": 2, "errors": 0}
    await db_session.refresh(succeeded)
    assert succeeded.status == PaymentStatus.PAID
    for payment in abandoned:
        await db_session.refresh(payment)
        assert payment.status == PaymentStatus.PENDING
