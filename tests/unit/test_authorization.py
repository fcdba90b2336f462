"""Unit tests for the payment authorization guard."""

import pytest
from libs.auth.models import AuthUser, Role
from services.payments_service.errors import AuthorizationError
from services.payments_service.services import authorization
from tests.factories import LeaseFactory, PaymentFactory


def _lease():
    return LeaseFactory.create(lease_id="L1", tenant_id="T1", landlord_id="LL1")


@pytest.mark.unit
def test_only_lease_tenant_can_initiate_intent():
    lease = _lease()

    assert authorization.can_initiate_intent("T1", lease)
    assert not authorization.can_initiate_intent("T2", lease)
    assert not authorization.can_initiate_intent("LL1", lease)

    with pytest.raises(AuthorizationError) as exc_info:
        authorization.ensure_can_initiate_intent("T2", lease)
    assert exc_info.value.status_code == 403


@pytest.mark.unit
def test_only_owning_landlord_can_record_manual_payment():
    lease = _lease()

    assert authorization.can_record_manual("LL1", lease)
    assert not authorization.can_record_manual("LL2", lease)
    # Tenants cannot self-record payments.
    assert not authorization.can_record_manual("T1", lease)

    with pytest.raises(AuthorizationError):
        authorization.ensure_can_record_manual("LL2", lease)


@pytest.mark.unit
@pytest.mark.parametrize(
    "user_id, role, allowed",
    [
        ("T1", Role.TENANT, True),
        ("LL1", Role.LANDLORD, True),
        ("admin-1", Role.ADMIN, True),
        ("T2", Role.TENANT, False),
        ("LL2", Role.LANDLORD, False),
    ],
)
def test_payment_read_access(user_id, role, allowed):
    lease = _lease()
    payment = PaymentFactory.create(lease_id="L1", tenant_id="T1")
    actor = AuthUser(user_id=user_id, role=role)

    assert authorization.can_read(actor, payment, lease) is allowed
    if not allowed:
        with pytest.raises(AuthorizationError):
            authorization.ensure_can_read(actor, payment, lease)


@pytest.mark.unit
def test_lease_history_access():
    lease = _lease()

    assert authorization.can_read_lease_payments(AuthUser(user_id="T1"), lease)
    assert authorization.can_read_lease_payments(
        AuthUser(user_id="LL1", role=Role.LANDLORD), lease
    )
    assert authorization.can_read_lease_payments(
        AuthUser(user_id="someone", role=Role.ADMIN), lease
    )
    assert not authorization.can_read_lease_payments(AuthUser(user_id="T9"), lease)


@pytest.mark.unit
def test_overdue_listing_is_for_landlords_and_admins():
    assert authorization.can_list_overdue(AuthUser(user_id="LL1", role=Role.LANDLORD))
    assert authorization.can_list_overdue(AuthUser(user_id="admin-1", role=Role.ADMIN))
    assert not authorization.can_list_overdue(AuthUser(user_id="T1"))

    with pytest.raises(AuthorizationError):
        authorization.ensure_can_list_overdue(AuthUser(user_id="T1"))
