"""Tenant-facing payment endpoints: intent creation and payment reads."""

import uuid

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from services.payments_service.dependencies import get_payment_service
from services.payments_service.schemas import (
    CreatePaymentIntentRequest,
    LeaseSummaryResponse,
    PaymentDetailResponse,
    PaymentIntentResponse,
    PaymentResponse,
    TenantSummary,
)
from services.payments_service.services.payment_service import (
    PaymentService,
    PaymentWithLease,
)

router = APIRouter(prefix="/payments", tags=["payments"])


def _detail_response(result: PaymentWithLease) -> PaymentDetailResponse:
    payment, lease = result.payment, result.lease
    return PaymentDetailResponse(
        **PaymentResponse.model_validate(payment).model_dump(),
        lease=LeaseSummaryResponse(
            id=lease.lease_id,
            status=lease.status,
            monthly_rent=lease.monthly_rent,
            landlord_id=lease.landlord_id,
            property_id=lease.property_id,
            property_title=lease.property_title,
            property_address=lease.property_address,
        ),
        tenant=TenantSummary(
            id=payment.tenant_id,
            name=lease.tenant_name,
            email=lease.tenant_email,
        ),
    )


@router.post("/intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    payload: CreatePaymentIntentRequest,
    current_user: AuthUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """
    Open a processor payment intent for a lease and record it as PENDING.
    Only the lease's tenant may pay against it.
    """
    result = await service.create_payment_intent(
        payload.lease_id,
        payload.amount,
        current_user.user_id,
        payment_type=payload.type,
        due_date=payload.due_date,
        description=payload.description,
    )
    return PaymentIntentResponse(
        payment_id=result.payment_id,
        client_token=result.client_token,
        amount=result.amount,
    )


@router.get("/me", response_model=list[PaymentResponse])
async def list_my_payments(
    current_user: AuthUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Payments owed or made by the authenticated tenant."""
    return await service.list_tenant_payments(current_user)


@router.get("/overdue", response_model=list[PaymentResponse])
async def list_overdue_payments(
    current_user: AuthUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Unpaid payments past their due date: a landlord's own, or all for admins."""
    return await service.list_overdue_payments(current_user)


@router.get("/leases/{lease_id}", response_model=list[PaymentResponse])
async def list_lease_payments(
    lease_id: str,
    current_user: AuthUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Payment history for a lease (its tenant, owning landlord, or admin)."""
    return await service.list_lease_payments(lease_id, current_user)


@router.get("/{payment_id}", response_model=PaymentDetailResponse)
async def get_payment(
    payment_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    result = await service.get_payment_by_id(payment_id, current_user)
    return _detail_response(result)
