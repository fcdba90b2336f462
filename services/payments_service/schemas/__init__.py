"""Payments Service schemas package."""

from services.payments_service.schemas.main import (
    CreateManualPaymentRequest,
    CreatePaymentIntentRequest,
    LeaseSummaryResponse,
    PaymentDetailResponse,
    PaymentIntentResponse,
    PaymentResponse,
    SweepResult,
    TenantSummary,
    WebhookAck,
)

__all__ = [
    "CreateManualPaymentRequest",
    "CreatePaymentIntentRequest",
    "LeaseSummaryResponse",
    "PaymentDetailResponse",
    "PaymentIntentResponse",
    "PaymentResponse",
    "SweepResult",
    "TenantSummary",
    "WebhookAck",
]
