"""Identity boundary: bearer token -> Principal."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from .exceptions import AuthenticationError, ConfigurationError, ExternalServiceError
from .principal import Principal

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0  # seconds


def parse_bearer(authorization: Optional[str]) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header value.

    A bare token (no scheme) is accepted as-is.
    """
    if not authorization or not authorization.strip():
        raise AuthenticationError("No token provided")
    parts = authorization.strip().split(None, 1)
    if len(parts) == 2:
        scheme, token = parts
        if scheme.lower() != "bearer":
            raise AuthenticationError("Unsupported authorization scheme")
        return token.strip()
    if parts[0].lower() == "bearer":
        raise AuthenticationError("No token provided")
    return parts[0]


class IdentityService(ABC):
    """Resolves bearer tokens to principals."""

    @abstractmethod
    async def validate_token(self, token: str) -> Principal:
        """Return the principal for ``token`` or raise AuthenticationError."""
        raise NotImplementedError


class HttpIdentityService(IdentityService):
    """Validates tokens with ``POST {base_url}/auth/validate``.

    The service answers 200 with the user object (``email``, ``groups``,
    ``permissions``, optional ``capabilities``), optionally wrapped as
    ``{"user": {...}}``, or 401/403 for a token it does not accept.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not base_url:
            raise ConfigurationError("HttpIdentityService needs a base_url")
        self._url = f"{base_url.rstrip('/')}/auth/validate"
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    async def validate_token(self, token: str) -> Principal:
        if not token:
            raise AuthenticationError("No token provided")

        try:
            response = await self._client.post(
                self._url,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise ExternalServiceError("Identity service timed out") from e
        except httpx.TransportError as e:
            raise ExternalServiceError(f"Cannot reach identity service: {e}") from e

        if response.status_code in (401, 403):
            raise AuthenticationError("Invalid or expired token")
        if not response.is_success:
            logger.warning("Identity service answered %d", response.status_code)
            raise ExternalServiceError(f"Identity service error: {response.status_code}")

        try:
            payload = response.json()
            principal = Principal.from_identity_payload(payload, token=token)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ExternalServiceError(f"Malformed identity response: {e}") from e

        logger.debug("Authenticated %s", principal.email)
        return principal

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = [
    "HttpIdentityService",
    "IdentityService",
    "parse_bearer",
]
