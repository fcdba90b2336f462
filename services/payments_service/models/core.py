import uuid
from datetime import date, datetime
from decimal import Decimal

from libs.common.datetime_utils import utc_now, utc_today
from libs.db.base import Base
from services.payments_service.models.enums import (
    PaymentProvider,
    PaymentStatus,
    PaymentType,
    enum_values,
)
from sqlalchemy import CheckConstraint, Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, validates


class Payment(Base):
    """A rent (or deposit/fee) payment recorded against a lease.

    ``lease_id``, ``tenant_id`` and ``landlord_id`` are fixed at creation.
    ``status`` only moves forward, through the conditional update in
    ``PaymentRepository``.
    """

    __tablename__ = "payments"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_payments_amount_positive"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Cross-service references (leases service owns these records)
    lease_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    # Owner of the lease's property when the payment was created.
    landlord_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="usd", nullable=False)
    fee_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00"), nullable=False
    )
    net_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    type: Mapped[PaymentType] = mapped_column(
        SAEnum(
            PaymentType,
            name="payment_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=PaymentType.RENT,
        nullable=False,
    )
    status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(
            PaymentStatus,
            name="payment_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=PaymentStatus.PENDING,
        index=True,
        nullable=False,
    )
    provider: Mapped[PaymentProvider] = mapped_column(
        SAEnum(
            PaymentProvider,
            name="payment_provider_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    # Correlation key for webhook reconciliation; NULL for manual payments.
    provider_intent_id: Mapped[str | None] = mapped_column(
        String(128), unique=True, index=True, nullable=True
    )

    due_date: Mapped[date] = mapped_column(Date, default=utc_today, nullable=False)
    paid_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    @validates("amount")
    def _validate_amount(self, key, value):
        if value is None or Decimal(value) <= 0:
            raise ValueError("Payment amount must be greater than zero")
        return value

    def status_as_of(self, today: date) -> PaymentStatus:
        """Stored status, with PENDING reported as OVERDUE once the due date has passed."""
        if self.status == PaymentStatus.PENDING and self.due_date and today > self.due_date:
            return PaymentStatus.OVERDUE
        return self.status

    @property
    def effective_status(self) -> PaymentStatus:
        return self.status_as_of(utc_today())

    def __repr__(self):
        return f"<Payment {self.id} {self.status.value}>"
