"""HTTP store client.

Encodes each StoreRequest as a store command text and POSTs it to
``{url}/snl``:

    set(structure)
    values("n1", {"name": "n1", ...})
    on(user-data.bob_at_x_com.commands)

The caller's bearer token is forwarded; when there is none, the service
token configured for the store instance is used instead.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from ..credentials import CredentialsCache
from ..exceptions import ConfigurationError, StoreError, StoreTimeoutError, StoreUnavailableError
from ..logging import safe_log_value
from .base import Store, StoreRequest

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0  # seconds


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return _quote(value)
    return json.dumps(value, default=str, ensure_ascii=False)


def render_request(request: StoreRequest) -> str:
    """Encode a request as store command text."""
    lines = [f"{request.verb.value}({request.target.value})"]

    values: list[str] = []
    if request.record_id is not None:
        values.append(_quote(request.record_id))
    if request.payload is not None:
        values.append(_format_value(request.payload))
    if values:
        lines.append(f"values({', '.join(values)})")

    lines.append(f"on({request.path})")
    return "\n".join(lines)


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class HttpStore(Store):
    """Store client over HTTP.

    Args:
        base_url: Store URL. When omitted, the URL is looked up in
            ``credentials`` under ``instance`` on every request.
        credentials: Credentials cache supplying URL and service token.
        instance: Store instance name to look up.
        timeout: Per-request timeout in seconds.
        client: Optional shared ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        credentials: Optional[CredentialsCache] = None,
        instance: str = "default",
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not base_url and credentials is None:
            raise ConfigurationError("HttpStore needs a base_url or a credentials cache")
        self._base_url = base_url.rstrip("/") if base_url else None
        self._credentials = credentials
        self._instance = instance
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    async def _endpoint(self) -> tuple[str, Optional[str]]:
        service_token = None
        base_url = self._base_url
        if self._credentials is not None:
            creds = await self._credentials.get(self._instance)
            service_token = creds.token
            base_url = base_url or creds.url
        return f"{base_url}/snl", service_token

    async def execute(self, request: StoreRequest, token: Optional[str] = None) -> Any:
        url, service_token = await self._endpoint()
        bearer = token or service_token
        if not bearer:
            raise ConfigurationError("No token available for store request")

        body = render_request(request)
        headers = {
            "Content-Type": "text/plain",
            "Authorization": f"Bearer {bearer}",
        }
        logger.debug("Store request: %s", request.describe())

        try:
            response = await self._client.post(url, content=body, headers=headers, timeout=self._timeout)
        except httpx.TimeoutException as e:
            raise StoreTimeoutError(f"Store request timed out: {request.describe()}") from e
        except httpx.TransportError as e:
            raise StoreUnavailableError(f"Cannot reach store: {e}") from e

        if response.status_code == 404:
            return None
        if response.is_success:
            return _decode(response)

        detail = safe_log_value(response.text, limit=200)
        if response.status_code in (401, 403):
            message = "Store rejected the request credentials"
        elif response.status_code == 400:
            message = f"Invalid store request: {detail or 'unknown error'}"
        else:
            message = f"Store error: {response.status_code}"
        logger.warning("Store %s failed with %d: %s", request.describe(), response.status_code, detail)
        raise StoreError(message, status=response.status_code)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = [
    "DEFAULT_TIMEOUT",
    "HttpStore",
    "render_request",
]
