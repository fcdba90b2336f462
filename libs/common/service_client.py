"""Authenticated calls to other platform services' internal APIs.

The payments service never reads another service's tables; lease lookups go
through the leases service's ``/internal`` routes using these helpers.
"""

from __future__ import annotations

from typing import Optional

import httpx
from libs.auth.dependencies import _service_role_jwt
from libs.common.logging import get_logger, get_request_id

logger = get_logger(__name__)

_DEFAULT_TIMEOUT = 10.0


def internal_headers(calling_service: str) -> dict[str, str]:
    """Service token plus caller and request-id headers for an internal call."""
    headers = {
        "Authorization": f"Bearer {_service_role_jwt(calling_service)}",
        "X-Caller-Service": calling_service,
    }
    request_id = get_request_id()
    if request_id:
        headers["X-Request-ID"] = request_id
    return headers


async def internal_get(
    *,
    service_url: str,
    path: str,
    calling_service: str,
    params: Optional[dict] = None,
    timeout: float = _DEFAULT_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.Response:
    """GET ``path`` on an internal service.

    Error statuses are returned as-is for the caller to interpret.

    Raises:
        httpx.RequestError on connection failures and timeouts.
    """
    async with httpx.AsyncClient(
        base_url=service_url.rstrip("/"),
        headers=internal_headers(calling_service),
        timeout=timeout,
        transport=transport,
    ) as client:
        response = await client.get(path, params=params)
    logger.debug("GET %s%s -> %d", service_url, path, response.status_code)
    return response
