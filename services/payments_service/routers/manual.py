"""Landlord-recorded payments (cash, cheque, bank transfer outside the processor)."""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from services.payments_service.dependencies import get_payment_service
from services.payments_service.schemas import (
    CreateManualPaymentRequest,
    PaymentResponse,
)
from services.payments_service.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/manual", response_model=PaymentResponse)
async def create_manual_payment(
    payload: CreateManualPaymentRequest,
    current_user: AuthUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """
    Record a payment the landlord received directly. It is stored as PAID
    with no processor involvement; paid_at defaults to now.
    """
    return await service.create_manual_payment(
        payload.lease_id,
        payload.amount,
        payload.paid_at,
        current_user.user_id,
        payload.description,
    )
