"""
Read-only access to leases owned by the leases service.

``LeaseRegistry`` is the seam the payments core depends on; production uses
``HttpLeaseRegistry`` over the internal API, tests inject an in-memory fake.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Protocol

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.common.service_client import internal_get
from services.payments_service.errors import LeaseLookupError

logger = get_logger(__name__)


@dataclass(frozen=True)
class LeaseSummary:
    """Fixed view of a lease as the payments core needs it."""

    lease_id: str
    tenant_id: str
    landlord_id: str
    monthly_rent: Decimal
    status: str
    property_id: Optional[str] = None
    property_title: Optional[str] = None
    property_address: Optional[str] = None
    tenant_name: Optional[str] = None
    tenant_email: Optional[str] = None

    @classmethod
    def from_payload(cls, data: dict) -> "LeaseSummary":
        """Build from the leases service's internal lease payload."""
        prop = data.get("property") or {}
        tenant = data.get("tenant") or {}
        name_parts = [tenant.get("first_name"), tenant.get("last_name")]
        tenant_name = " ".join(p for p in name_parts if p) or None
        return cls(
            lease_id=str(data["id"]),
            tenant_id=str(data["tenant_id"]),
            landlord_id=str(data.get("landlord_id") or prop["landlord_id"]),
            monthly_rent=Decimal(str(data.get("monthly_rent") or 0)),
            status=str(data.get("status") or "unknown"),
            property_id=_opt_str(data.get("property_id") or prop.get("id")),
            property_title=prop.get("title"),
            property_address=prop.get("address_street"),
            tenant_name=tenant_name,
            tenant_email=tenant.get("email"),
        )


def _opt_str(value) -> Optional[str]:
    return str(value) if value is not None else None


class LeaseRegistry(Protocol):
    async def get_lease(self, lease_id: str) -> Optional[LeaseSummary]:
        """Return the lease, or None when it does not exist."""
        ...


class HttpLeaseRegistry:
    """Looks leases up through the leases service's internal API."""

    def __init__(
        self,
        service_url: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.service_url = service_url or get_settings().LEASES_SERVICE_URL
        self.timeout = timeout
        self._transport = transport

    async def get_lease(self, lease_id: str) -> Optional[LeaseSummary]:
        try:
            response = await internal_get(
                service_url=self.service_url,
                path=f"/internal/leases/{lease_id}",
                calling_service="payments",
                timeout=self.timeout,
                transport=self._transport,
            )
        except httpx.RequestError as e:
            logger.error("Lease lookup for %s failed: %s", lease_id, e)
            raise LeaseLookupError("Lease service unavailable") from e

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            logger.error(
                "Lease lookup for %s returned %d: %s",
                lease_id,
                response.status_code,
                response.text,
            )
            raise LeaseLookupError("Lease service returned an error")

        try:
            return LeaseSummary.from_payload(response.json())
        except (KeyError, ValueError, InvalidOperation) as e:
            logger.error("Malformed lease payload for %s: %s", lease_id, e)
            raise LeaseLookupError("Lease service returned a malformed lease") from e
