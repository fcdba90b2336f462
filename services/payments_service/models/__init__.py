"""Payments Service models package."""

from services.payments_service.models.core import Payment
from services.payments_service.models.enums import (
    TERMINAL_STATUSES,
    PaymentProvider,
    PaymentStatus,
    PaymentType,
)

__all__ = [
    "Payment",
    "PaymentProvider",
    "PaymentStatus",
    "PaymentType",
    "TERMINAL_STATUSES",
]
