"""Store credentials cache.

Maps a store instance name to the URL and service token used to reach it.
Entries are loaded from a CredentialsSource (a static mapping, or Redis
keys ``{prefix}:{instance}`` holding JSON ``{"url": ..., "token": ...}``)
and cached as one immutable snapshot.

Refresh builds a complete new snapshot and swaps the reference. Readers
holding the previous snapshot keep a consistent view; concurrent readers
that find the snapshot stale share a single reload.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from .exceptions import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "neurongate:credentials"
DEFAULT_TTL = 3600.0  # seconds


@dataclass(frozen=True)
class StoreCredentials:
    """Where a store instance lives and the service token to use there."""

    url: str
    token: Optional[str] = None

    def __repr__(self) -> str:
        return f"StoreCredentials(url={self.url!r}, token={'***' if self.token else None})"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StoreCredentials":
        url = data.get("url")
        if not url or not isinstance(url, str):
            raise KeyError("url")
        return cls(url=url.rstrip("/"), token=data.get("token") or None)


@dataclass(frozen=True)
class CredentialsSnapshot:
    """Immutable view of every known store instance at one point in time."""

    entries: Mapping[str, StoreCredentials]
    loaded_at: float

    def get(self, instance: str) -> Optional[StoreCredentials]:
        return self.entries.get(instance)

    def instances(self) -> list[str]:
        return sorted(self.entries)


# ── Sources ─────────────────────────────────────────────────────────


class CredentialsSource(ABC):
    """Loads the full credentials mapping in one call."""

    @abstractmethod
    async def load(self) -> dict[str, StoreCredentials]:
        raise NotImplementedError


class StaticCredentialsSource(CredentialsSource):
    """Fixed mapping, e.g. a single store URL from configuration."""

    def __init__(self, entries: Mapping[str, StoreCredentials | Mapping[str, Any]]) -> None:
        self._entries = {
            name: value if isinstance(value, StoreCredentials) else StoreCredentials.from_dict(value)
            for name, value in entries.items()
        }

    async def load(self) -> dict[str, StoreCredentials]:
        return dict(self._entries)


class RedisCredentialsSource(CredentialsSource):
    """Reads ``{prefix}:{instance}`` keys from Redis.

    Args:
        redis_url: Redis URL used when no client is given.
        prefix: Key prefix; the instance name is the remainder of the key.
        client: Optional ``redis.asyncio`` client (or compatible) to reuse.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        *,
        prefix: str = DEFAULT_PREFIX,
        client: Any = None,
    ) -> None:
        if client is None and not redis_url:
            raise ConfigurationError("RedisCredentialsSource needs a redis_url or a client")
        self._redis_url = redis_url
        self._prefix = prefix
        self._client = client

    async def load(self) -> dict[str, StoreCredentials]:
        owns_client = self._client is None
        if owns_client:
            import redis.asyncio as aioredis

            r = aioredis.from_url(self._redis_url, decode_responses=True)
        else:
            r = self._client

        entries: dict[str, StoreCredentials] = {}
        try:
            keys = await r.keys(f"{self._prefix}:*")
            for key in keys:
                key = key.decode() if isinstance(key, bytes) else key
                raw = await r.get(key)
                if not raw:
                    continue
                instance = key[len(self._prefix) + 1 :]
                try:
                    entries[instance] = StoreCredentials.from_dict(json.loads(raw))
                except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
                    logger.warning("Invalid credentials entry for %s: %s", key, e)
        except Exception as e:
            raise ExternalServiceError(f"Could not load store credentials from Redis: {e}") from e
        finally:
            if owns_client:
                await r.aclose()

        return entries


# ── Cache ───────────────────────────────────────────────────────────


class CredentialsCache:
    """TTL-bound cache of store credentials with atomic snapshot swaps."""

    def __init__(
        self,
        source: CredentialsSource,
        *,
        ttl_seconds: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._ttl = ttl_seconds
        self._clock = clock
        self._snapshot: Optional[CredentialsSnapshot] = None
        self._lock = asyncio.Lock()

    @property
    def snapshot(self) -> Optional[CredentialsSnapshot]:
        return self._snapshot

    def is_stale(self) -> bool:
        snapshot = self._snapshot
        return snapshot is None or self._clock() - snapshot.loaded_at >= self._ttl

    async def refresh(self) -> CredentialsSnapshot:
        """Load a complete snapshot from the source and publish it."""
        entries = await self._source.load()
        snapshot = CredentialsSnapshot(
            entries=MappingProxyType(dict(entries)),
            loaded_at=self._clock(),
        )
        self._snapshot = snapshot
        logger.info("Loaded credentials for %d store instance(s)", len(entries))
        return snapshot

    async def get_snapshot(self) -> CredentialsSnapshot:
        """Current snapshot, reloading first when it is missing or expired.

        A failed reload keeps serving the previous snapshot when there is one.
        """
        if not self.is_stale():
            return self._snapshot  # type: ignore[return-value]

        async with self._lock:
            if not self.is_stale():
                return self._snapshot  # type: ignore[return-value]
            try:
                return await self.refresh()
            except ExternalServiceError:
                if self._snapshot is None:
                    raise
                logger.warning("Credentials reload failed; keeping previous snapshot", exc_info=True)
                return self._snapshot

    async def get(self, instance: str) -> StoreCredentials:
        snapshot = await self.get_snapshot()
        credentials = snapshot.get(instance)
        if credentials is None:
            raise ConfigurationError(f"No store credentials for instance '{instance}'", instance=instance)
        return credentials


__all__ = [
    "CredentialsCache",
    "CredentialsSnapshot",
    "CredentialsSource",
    "RedisCredentialsSource",
    "StaticCredentialsSource",
    "StoreCredentials",
]
