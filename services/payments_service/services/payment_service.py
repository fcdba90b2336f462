"""Payment creation and read access.

Flow for a processor-backed payment:
1. Validate input (no I/O)
2. Fetch the lease from the lease registry
3. Authorization guard
4. Open the processor intent (bounded by a timeout)
5. Persist the PENDING payment keyed by the returned intent id

The processor call and the insert form one logical unit. A processor failure
leaves no row; an insert failure (or cancellation) after the processor
succeeded cancels the intent so no intent id exists without a row.
"""

import asyncio
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

from libs.auth.models import AuthUser
from libs.common.currency import quantize_money, to_decimal
from libs.common.datetime_utils import ensure_utc, utc_now, utc_today
from libs.common.logging import get_logger
from services.payments_service.errors import (
    NotFoundError,
    ProcessorError,
    ValidationError,
)
from services.payments_service.lease_registry import LeaseRegistry, LeaseSummary
from services.payments_service.models import (
    Payment,
    PaymentProvider,
    PaymentStatus,
    PaymentType,
)
from services.payments_service.processor_client import ProcessorClient, ProcessorIntent
from services.payments_service.repository import PaymentRepository
from services.payments_service.services import authorization
from services.payments_service.services.fees import compute_fee

logger = get_logger(__name__)

DEFAULT_MANUAL_DESCRIPTION = "Manual payment recorded by landlord"


@dataclass(frozen=True)
class IntentResult:
    payment_id: uuid.UUID
    client_token: Optional[str]
    amount: Decimal


@dataclass(frozen=True)
class PaymentWithLease:
    payment: Payment
    lease: LeaseSummary


def validate_lease_id(lease_id: Optional[str]) -> str:
    if lease_id is None or not str(lease_id).strip():
        raise ValidationError("lease_id is required")
    return str(lease_id).strip()


def validate_amount(amount) -> Decimal:
    """Return the amount as a cent-precision Decimal or raise ValidationError."""
    if amount is None:
        raise ValidationError("amount is required")
    if isinstance(amount, bool):
        raise ValidationError("amount must be a number")
    try:
        value = to_decimal(amount)
    except ValueError:
        raise ValidationError("amount must be a number")
    if not value.is_finite():
        raise ValidationError("amount must be a finite number")
    if value <= 0:
        raise ValidationError("amount must be greater than zero")
    if quantize_money(value) != value:
        raise ValidationError("amount cannot have more than two decimal places")
    return quantize_money(value)


class PaymentService:
    def __init__(
        self,
        repository: PaymentRepository,
        *,
        processor: ProcessorClient,
        leases: LeaseRegistry,
        fee_rate_bps: int,
        currency: str = "usd",
        processor_timeout: float = 15.0,
    ):
        self.repository = repository
        self.processor = processor
        self.leases = leases
        self.fee_rate_bps = fee_rate_bps
        self.currency = currency
        self.processor_timeout = processor_timeout

    async def _get_lease(self, lease_id: str) -> LeaseSummary:
        lease = await self.leases.get_lease(lease_id)
        if lease is None:
            raise NotFoundError("Lease not found")
        return lease

    # =========================================================================
    # Processor-backed payments
    # =========================================================================

    async def create_payment_intent(
        self,
        lease_id: Optional[str],
        amount,
        tenant_id: str,
        *,
        payment_type: PaymentType = PaymentType.RENT,
        due_date: Optional[date] = None,
        description: Optional[str] = None,
    ) -> IntentResult:
        lease_id = validate_lease_id(lease_id)
        amount = validate_amount(amount)

        lease = await self._get_lease(lease_id)
        authorization.ensure_can_initiate_intent(tenant_id, lease)

        fees = compute_fee(amount, self.fee_rate_bps)
        payment_id = uuid.uuid4()

        intent = await self._open_intent(
            amount,
            metadata={
                "payment_id": str(payment_id),
                "lease_id": lease.lease_id,
                "tenant_id": tenant_id,
                "property_title": lease.property_title or "",
            },
            idempotency_key=f"payment-{payment_id}",
        )

        payment = Payment(
            id=payment_id,
            lease_id=lease.lease_id,
            tenant_id=lease.tenant_id,
            landlord_id=lease.landlord_id,
            amount=amount,
            currency=self.currency,
            fee_amount=fees.fee,
            net_amount=fees.net,
            type=payment_type,
            status=PaymentStatus.PENDING,
            provider=PaymentProvider.PROCESSOR,
            provider_intent_id=intent.provider_intent_id,
            due_date=due_date or utc_today(),
            description=description,
        )
        try:
            await self.repository.add(payment)
        except (Exception, asyncio.CancelledError):
            await self._release_intent(intent.provider_intent_id)
            raise

        # The row is committed: no awaits past this point, so a cancelled
        # request cannot leave a PENDING row behind a cancelled intent.
        logger.info(
            "Created pending payment %s for lease %s (intent %s, amount %s)",
            payment_id,
            lease.lease_id,
            intent.provider_intent_id,
            amount,
        )
        return IntentResult(
            payment_id=payment_id,
            client_token=intent.client_token,
            amount=amount,
        )

    async def _open_intent(
        self, amount: Decimal, *, metadata: dict, idempotency_key: str
    ) -> ProcessorIntent:
        try:
            intent = await asyncio.wait_for(
                self.processor.create_intent(
                    amount,
                    self.currency,
                    metadata=metadata,
                    idempotency_key=idempotency_key,
                ),
                timeout=self.processor_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(
                "Processor create_intent timed out after %ss (key %s)",
                self.processor_timeout,
                idempotency_key,
            )
            raise ProcessorError("Payment processor timed out") from e

        if not intent.provider_intent_id:
            raise ProcessorError("Payment processor returned no intent id")
        return intent

    async def _release_intent(self, provider_intent_id: str) -> None:
        """Cancel an intent whose payment row could not be written."""
        try:
            await self.processor.cancel_intent(provider_intent_id)
            logger.warning(
                "Cancelled intent %s after its payment row failed to persist",
                provider_intent_id,
            )
        except ProcessorError as e:
            # Not fatal: without a client token the intent cannot be confirmed.
            logger.error(
                "Could not cancel orphaned intent %s: %s",
                provider_intent_id,
                e.message,
            )

    # =========================================================================
    # Manual payments
    # =========================================================================

    async def create_manual_payment(
        self,
        lease_id: Optional[str],
        amount,
        paid_at: Optional[datetime],
        landlord_id: str,
        description: Optional[str] = None,
    ) -> Payment:
        lease_id = validate_lease_id(lease_id)
        amount = validate_amount(amount)

        lease = await self._get_lease(lease_id)
        authorization.ensure_can_record_manual(landlord_id, lease)

        fees = compute_fee(amount, self.fee_rate_bps)
        paid_date = ensure_utc(paid_at) if paid_at else utc_now()

        payment = Payment(
            lease_id=lease.lease_id,
            tenant_id=lease.tenant_id,
            landlord_id=lease.landlord_id,
            amount=amount,
            currency=self.currency,
            fee_amount=fees.fee,
            net_amount=fees.net,
            type=PaymentType.RENT,
            status=PaymentStatus.PAID,
            provider=PaymentProvider.MANUAL,
            provider_intent_id=None,
            due_date=paid_date.date(),
            paid_date=paid_date,
            description=description or DEFAULT_MANUAL_DESCRIPTION,
        )
        await self.repository.add(payment)
        await self.repository.reload(payment)

        logger.info(
            "Landlord %s recorded manual payment %s on lease %s",
            landlord_id,
            payment.id,
            lease.lease_id,
        )
        return payment

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_payment_by_id(
        self, payment_id: uuid.UUID, actor: AuthUser
    ) -> PaymentWithLease:
        payment = await self.repository.get_by_id(payment_id)
        if payment is None:
            raise NotFoundError("Payment not found")

        lease = await self._get_lease(payment.lease_id)
        authorization.ensure_can_read(actor, payment, lease)
        return PaymentWithLease(payment=payment, lease=lease)

    async def list_lease_payments(
        self, lease_id: str, actor: AuthUser
    ) -> Sequence[Payment]:
        lease = await self._get_lease(validate_lease_id(lease_id))
        authorization.ensure_can_read_lease_payments(actor, lease)
        return await self.repository.list_by_lease(lease.lease_id)

    async def list_tenant_payments(self, actor: AuthUser) -> Sequence[Payment]:
        return await self.repository.list_by_tenant(actor.user_id)

    async def list_overdue_payments(
        self, actor: AuthUser, today: Optional[date] = None
    ) -> Sequence[Payment]:
        """PENDING payments past their due date. Admins see all, landlords their own."""
        authorization.ensure_can_list_overdue(actor)
        landlord_id = None if actor.is_admin else actor.user_id
        return await self.repository.list_overdue(today or utc_today(), landlord_id)
