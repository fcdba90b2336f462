"""
Authorization guard for payment operations.

Every check is a synchronous, side-effect-free decision over an actor and the
lease/payment it targets. Callers run these before any repository or
processor call; the ``ensure_*`` variants raise ``AuthorizationError``.
"""

from libs.auth.models import AuthUser, Role
from services.payments_service.errors import AuthorizationError
from services.payments_service.lease_registry import LeaseSummary
from services.payments_service.models import Payment


def can_initiate_intent(tenant_id: str, lease: LeaseSummary) -> bool:
    return lease.tenant_id == tenant_id


def can_record_manual(landlord_id: str, lease: LeaseSummary) -> bool:
    return lease.landlord_id == landlord_id


def can_read(actor: AuthUser, payment: Payment, lease: LeaseSummary) -> bool:
    """Payment's tenant, the landlord owning the lease's property, or an admin."""
    if actor.is_admin:
        return True
    if payment.tenant_id == actor.user_id:
        return True
    return lease.landlord_id == actor.user_id


def can_read_lease_payments(actor: AuthUser, lease: LeaseSummary) -> bool:
    return actor.is_admin or actor.user_id in (lease.tenant_id, lease.landlord_id)


def ensure_can_initiate_intent(tenant_id: str, lease: LeaseSummary) -> None:
    if not can_initiate_intent(tenant_id, lease):
        raise AuthorizationError("Only the lease's tenant can pay against it")


def ensure_can_record_manual(landlord_id: str, lease: LeaseSummary) -> None:
    if not can_record_manual(landlord_id, lease):
        raise AuthorizationError("Property is not owned by this landlord")


def ensure_can_read(actor: AuthUser, payment: Payment, lease: LeaseSummary) -> None:
    if not can_read(actor, payment, lease):
        raise AuthorizationError("Not allowed to view this payment")


def ensure_can_read_lease_payments(actor: AuthUser, lease: LeaseSummary) -> None:
    if not can_read_lease_payments(actor, lease):
        raise AuthorizationError("Not allowed to view payments for this lease")


def can_list_overdue(actor: AuthUser) -> bool:
    return actor.is_admin or actor.role == Role.LANDLORD


def ensure_can_list_overdue(actor: AuthUser) -> None:
    if not can_list_overdue(actor):
        raise AuthorizationError("Only landlords and admins can list overdue payments")
