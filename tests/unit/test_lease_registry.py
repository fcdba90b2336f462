"""Unit tests for the HTTP lease registry."""

from decimal import Decimal

import httpx
import pytest
from jose import jwt
from libs.common.config import get_settings
from services.payments_service.errors import LeaseLookupError
from services.payments_service.lease_registry import HttpLeaseRegistry, LeaseSummary

LEASE_PAYLOAD = {
    "id": "L1",
    "tenant_id": "T1",
    "monthly_rent": "1200.00",
    "status": "active",
    "property": {
        "id": "P1",
        "landlord_id": "LL1",
        "title": "Sunny 2BR",
        "address_street": "12 Elm Street",
    },
    "tenant": {"first_name": "Ada", "last_name": "Obi", "email": "ada@test.com"},
}


def _registry(handler) -> HttpLeaseRegistry:
    return HttpLeaseRegistry(
        service_url="http://leases.test", transport=httpx.MockTransport(handler)
    )


@pytest.mark.unit
def test_summary_from_payload():
    lease = LeaseSummary.from_payload(LEASE_PAYLOAD)

    assert lease.lease_id == "L1"
    assert lease.tenant_id == "T1"
    assert lease.landlord_id == "LL1"
    assert lease.monthly_rent == Decimal("1200.00")
    assert lease.property_id == "P1"
    assert lease.property_title == "Sunny 2BR"
    assert lease.tenant_name == "Ada Obi"
    assert lease.tenant_email == "ada@test.com"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_get_lease_calls_internal_endpoint_with_service_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        return httpx.Response(200, json=LEASE_PAYLOAD)

    lease = await _registry(handler).get_lease("L1")

    assert lease.landlord_id == "LL1"
    assert seen["url"] == "http://leases.test/internal/leases/L1"
    assert seen["headers"]["X-Caller-Service"] == "payments"

    settings = get_settings()
    token = seen["headers"]["Authorization"].removeprefix("Bearer ")
    claims = jwt.decode(
        token, settings.AUTH_JWT_SECRET, algorithms=[settings.AUTH_JWT_ALGORITHM]
    )
    assert claims["role"] == "service_role"
    assert claims["sub"] == "service:payments"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_missing_lease_returns_none():
    def handler(request):
        return httpx.Response(404, json={"detail": "Not found"})

    assert await _registry(handler).get_lease("L404") is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_server_error_raises():
    def handler(request):
        return httpx.Response(500, text="boom")

    with pytest.raises(LeaseLookupError) as exc_info:
        await _registry(handler).get_lease("L1")

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
@pytest.mark.unit
async def test_malformed_payload_raises():
    def handler(request):
        return httpx.Response(200, json={"id": "L1"})

    with pytest.raises(LeaseLookupError, match="malformed"):
        await _registry(handler).get_lease("L1")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unreachable_service_raises():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(LeaseLookupError, match="unavailable"):
        await _registry(handler).get_lease("L1")
