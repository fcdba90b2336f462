"""
Payment processor client (Stripe-compatible REST API).

Provides async methods for:
- Opening payment intents (with an idempotency key)
- Cancelling intents that never got a local payment row
- Retrieving an intent's current status
- Verifying webhook signatures and normalizing webhook events

The payments core depends on the ``ProcessorClient`` protocol only; the
concrete ``StripeClient`` is injected through ``get_processor_client``.
"""

import enum
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Protocol

import httpx
from libs.common.config import get_settings
from libs.common.currency import to_minor_units
from libs.common.logging import get_logger
from services.payments_service.errors import ProcessorError, ReconciliationError

logger = get_logger(__name__)


class ProcessorEventType(str, enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# Processor event names mapped onto the two transitions the reconciler owns.
_EVENT_TYPES = {
    "payment_intent.succeeded": ProcessorEventType.SUCCEEDED,
    "payment_intent.payment_failed": ProcessorEventType.FAILED,
}


@dataclass(frozen=True)
class ProcessorIntent:
    """An intent as reported by the processor."""

    provider_intent_id: str
    client_token: Optional[str] = None
    status: str = "requires_payment_method"
    failure_reason: Optional[str] = None


@dataclass(frozen=True)
class ProcessorEvent:
    """A webhook event reduced to what reconciliation needs."""

    type: ProcessorEventType
    provider_intent_id: str
    event_id: Optional[str] = None
    occurred_at: Optional[datetime] = None
    failure_reason: Optional[str] = None


class ProcessorClient(Protocol):
    async def create_intent(
        self,
        amount: Decimal,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: Optional[str] = None,
    ) -> ProcessorIntent: ...

    async def cancel_intent(self, provider_intent_id: str) -> None: ...

    async def retrieve_intent(self, provider_intent_id: str) -> ProcessorIntent: ...

    def verify_signature(self, payload: bytes, signature: str) -> bool: ...

    def parse_event(self, payload: bytes) -> Optional[ProcessorEvent]: ...


def parse_event(payload: bytes) -> Optional[ProcessorEvent]:
    """
    Normalize a verified webhook body.

    Returns None for event types the reconciler does not act on.

    Raises:
        ReconciliationError: body is not JSON or lacks an intent id.
    """
    try:
        body = json.loads(payload.decode("utf-8") or "{}")
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ReconciliationError("Webhook body is not valid JSON") from e
    if not isinstance(body, dict):
        raise ReconciliationError("Webhook body is not an object")

    event_type = _EVENT_TYPES.get(body.get("type") or "")
    if event_type is None:
        return None

    obj = (body.get("data") or {}).get("object") or {}
    intent_id = obj.get("id")
    if not intent_id:
        raise ReconciliationError("Webhook event carries no payment intent id")

    occurred_at = None
    created = body.get("created")
    if isinstance(created, (int, float)):
        occurred_at = datetime.fromtimestamp(created, tz=timezone.utc)

    failure_reason = None
    if event_type == ProcessorEventType.FAILED:
        error = obj.get("last_payment_error") or {}
        failure_reason = error.get("message")

    return ProcessorEvent(
        type=event_type,
        provider_intent_id=str(intent_id),
        event_id=body.get("id"),
        occurred_at=occurred_at,
        failure_reason=failure_reason,
    )


def compute_signature(secret: str, timestamp: int, payload: bytes) -> str:
    """HMAC-SHA256 over ``"{timestamp}." + payload``, hex encoded."""
    signed = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def verify_signature(
    payload: bytes,
    signature_header: str,
    secret: str,
    tolerance_seconds: int = 300,
    now: Optional[float] = None,
) -> bool:
    """
    Check a ``t=<unix>,v1=<hex>[,v1=<hex>]`` signature header.

    Rejects headers older than ``tolerance_seconds`` to limit replay.
    """
    if not secret or not signature_header:
        return False

    timestamp = None
    candidates = []
    for part in signature_header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                return False
        elif key == "v1" and value:
            candidates.append(value)

    if timestamp is None or not candidates:
        return False

    current = now if now is not None else time.time()
    if abs(current - timestamp) > tolerance_seconds:
        return False

    expected = compute_signature(secret, timestamp, payload)
    return any(hmac.compare_digest(expected, c) for c in candidates)


class StripeClient:
    """Async client for the processor's PaymentIntent API."""

    def __init__(
        self,
        secret_key: str | None = None,
        webhook_secret: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.STRIPE_SECRET_KEY
        if not self.secret_key:
            raise ValueError("STRIPE_SECRET_KEY is required")
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET
        self.base_url = (base_url or settings.STRIPE_API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.PROCESSOR_TIMEOUT_SECONDS
        self.tolerance_seconds = settings.WEBHOOK_SIGNATURE_TOLERANCE_SECONDS
        self._headers = {"Authorization": f"Bearer {self.secret_key}"}
        self._transport = transport

    async def _request(
        self,
        method: str,
        endpoint: str,
        data: dict | None = None,
        idempotency_key: str | None = None,
    ) -> dict:
        """Make a form-encoded request; any failure becomes ProcessorError."""
        headers = dict(self._headers)
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method, endpoint, headers=headers, data=data
                )
        except httpx.TimeoutException as e:
            logger.error("Processor %s %s timed out", method, endpoint)
            raise ProcessorError("Payment processor timed out") from e
        except httpx.RequestError as e:
            logger.error("Processor %s %s failed: %s", method, endpoint, e)
            raise ProcessorError("Payment processor unreachable") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.is_success:
            logger.error(
                "Processor API error: %s - %s", response.status_code, body or response.text
            )
            raise ProcessorError(
                status_code=502,
                response_data=body,
            )
        return body

    async def create_intent(
        self,
        amount: Decimal,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: Optional[str] = None,
    ) -> ProcessorIntent:
        """
        Open a payment intent for ``amount`` (major units).

        The idempotency key makes a retried call return the same intent
        instead of opening a second one.
        """
        form = {
            "amount": str(to_minor_units(amount)),
            "currency": currency.lower(),
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = str(value)

        body = await self._request(
            "POST", "/v1/payment_intents", data=form, idempotency_key=idempotency_key
        )
        if not body.get("id"):
            logger.error("Processor returned an intent without id: %s", body)
            raise ProcessorError(response_data=body)
        return _intent_from_body(body)

    async def cancel_intent(self, provider_intent_id: str) -> None:
        await self._request("POST", f"/v1/payment_intents/{provider_intent_id}/cancel")

    async def retrieve_intent(self, provider_intent_id: str) -> ProcessorIntent:
        body = await self._request("GET", f"/v1/payment_intents/{provider_intent_id}")
        return _intent_from_body(body)

    def verify_signature(self, payload: bytes, signature: str) -> bool:
        return verify_signature(
            payload,
            signature,
            self.webhook_secret,
            tolerance_seconds=self.tolerance_seconds,
        )

    def parse_event(self, payload: bytes) -> Optional[ProcessorEvent]:
        return parse_event(payload)


def _intent_from_body(body: dict) -> ProcessorIntent:
    error = body.get("last_payment_error") or {}
    return ProcessorIntent(
        provider_intent_id=str(body.get("id")),
        client_token=body.get("client_secret"),
        status=body.get("status") or "requires_payment_method",
        failure_reason=error.get("message"),
    )


def get_processor_client() -> ProcessorClient:
    """FastAPI dependency returning the configured processor client."""
    return StripeClient()
