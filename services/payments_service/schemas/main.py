import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from services.payments_service.models import (
    PaymentProvider,
    PaymentStatus,
    PaymentType,
)


# Left untyped so malformed amounts reach the service's own validation
# and come back as 400.
AmountInput = Optional[Any]


class CreatePaymentIntentRequest(BaseModel):
    # lease_id/amount are optional here so the service can answer 400 (not 422)
    # with its own validation messages.
    lease_id: Optional[str] = None
    amount: AmountInput = Field(default=None, examples=["1200.00"])
    type: PaymentType = PaymentType.RENT
    due_date: Optional[date] = None
    description: Optional[str] = Field(default=None, max_length=500)


class PaymentIntentResponse(BaseModel):
    payment_id: uuid.UUID
    client_token: Optional[str] = None
    amount: Decimal


class CreateManualPaymentRequest(BaseModel):
    lease_id: Optional[str] = None
    amount: AmountInput = Field(default=None, examples=["1200.00"])
    paid_at: Optional[datetime] = None
    description: Optional[str] = Field(default=None, max_length=500)


class PaymentResponse(BaseModel):
    id: uuid.UUID
    lease_id: str
    tenant_id: str
    landlord_id: str
    amount: Decimal
    currency: str
    type: PaymentType
    status: PaymentStatus
    # PENDING past its due date reads as OVERDUE here; ``status`` stays as stored.
    effective_status: PaymentStatus
    provider: PaymentProvider
    provider_intent_id: Optional[str] = None
    due_date: date
    paid_date: Optional[datetime] = None
    fee_amount: Decimal
    net_amount: Decimal
    description: Optional[str] = None
    failure_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TenantSummary(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


class LeaseSummaryResponse(BaseModel):
    id: str
    status: str
    monthly_rent: Decimal
    landlord_id: str
    property_id: Optional[str] = None
    property_title: Optional[str] = None
    property_address: Optional[str] = None


class PaymentDetailResponse(PaymentResponse):
    lease: LeaseSummaryResponse
    tenant: TenantSummary


class WebhookAck(BaseModel):
    received: bool = True


class SweepResult(BaseModel):
    checked: int
    applied: int
    unchanged: int
    errors: int
