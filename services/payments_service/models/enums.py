"""Enum definitions for payments service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    # Derived on read from PENDING + past due date; never written by this service.
    OVERDUE = "overdue"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {
        PaymentStatus.PAID,
        PaymentStatus.FAILED,
        PaymentStatus.REFUNDED,
        PaymentStatus.CANCELLED,
    }
)


class PaymentType(str, enum.Enum):
    RENT = "rent"
    DEPOSIT = "deposit"
    FEE = "fee"
    OTHER = "other"


class PaymentProvider(str, enum.Enum):
    PROCESSOR = "processor"
    MANUAL = "manual"
