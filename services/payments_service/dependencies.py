"""FastAPI dependency providers for the payments service.

Collaborators (processor client, lease registry) are resolved here so tests
can swap them through ``app.dependency_overrides``.
"""

from fastapi import Depends
from libs.common.config import get_settings
from libs.db.session import get_async_db
from services.payments_service.lease_registry import HttpLeaseRegistry, LeaseRegistry
from services.payments_service.processor_client import (
    ProcessorClient,
    get_processor_client,
)
from services.payments_service.repository import PaymentRepository
from services.payments_service.services.payment_service import PaymentService
from services.payments_service.services.reconciler import WebhookReconciler
from sqlalchemy.ext.asyncio import AsyncSession


def get_lease_registry() -> LeaseRegistry:
    return HttpLeaseRegistry()


def get_payment_repository(
    db: AsyncSession = Depends(get_async_db),
) -> PaymentRepository:
    return PaymentRepository(db)


def get_payment_service(
    repository: PaymentRepository = Depends(get_payment_repository),
    processor: ProcessorClient = Depends(get_processor_client),
    leases: LeaseRegistry = Depends(get_lease_registry),
) -> PaymentService:
    settings = get_settings()
    return PaymentService(
        repository,
        processor=processor,
        leases=leases,
        fee_rate_bps=settings.PLATFORM_FEE_BPS,
        currency=settings.PAYMENT_CURRENCY,
        processor_timeout=settings.PROCESSOR_TIMEOUT_SECONDS,
    )


def get_reconciler(
    repository: PaymentRepository = Depends(get_payment_repository),
) -> WebhookReconciler:
    settings = get_settings()
    return WebhookReconciler(
        repository,
        not_found_retries=settings.WEBHOOK_NOT_FOUND_RETRIES,
        retry_backoff=settings.WEBHOOK_RETRY_BACKOFF_SECONDS,
    )
