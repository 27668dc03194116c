"""Gateway facade: token in, typed result out.

Provides:
- ``GatewayResult``: outcome of one operation (data or error shape + status).
- ``Gateway``: authenticates the bearer token, runs the operation on the
  right service and maps every failure to ``{"error": true, "message", "kind"}``.

The HTTP layer in front of the gateway only has to pass the Authorization
header and request fields through, and return ``result.to_dict()`` with
``result.status``. A gRPC servicer calls ``result.raise_for_error()`` inside
a method decorated with ``grpc_error_handler``, which turns the error code
into the matching gRPC status.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional

from .commands import CommandTypeRegistry, build_default_registry
from .config import GatewayConfig
from .credentials import CredentialsCache, RedisCredentialsSource
from .exceptions import ConfigurationError, GatewayError, error_registry, error_response, http_status_for
from .identity import HttpIdentityService, IdentityService, parse_bearer
from .locations import Location, LocationResolver
from .logging import get_request_logger
from .naming import NameGuard
from .permissions import has_capability
from .principal import Principal
from .services import CommandService, DatabaseService, LocatedCommand
from .store import HttpStore, Store

logger = logging.getLogger(__name__)


# ── Result ───────────────────────────────────────────────────────


@dataclass
class GatewayResult:
    """Outcome of one gateway operation."""

    data: Any = None
    error: Optional[dict[str, Any]] = None
    code: Optional[str] = None
    status: int = 200
    request_id: str = ""
    processing_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.error is not None:
            return dict(self.error)
        return {"error": False, "data": self.data}

    def raise_for_error(self) -> None:
        """Raise the failure again as the GatewayError registered for its code."""
        if self.error is None:
            return
        error_cls = error_registry.get(self.code or GatewayError.code) or GatewayError
        raise error_cls(self.error["message"], code=self.code, request_id=self.request_id)


def _location(database: Optional[str], namespace: Optional[str]) -> Optional[Location]:
    if database and namespace:
        return Location(database, namespace)
    return None


def _located(item: LocatedCommand) -> dict[str, Any]:
    return item.to_dict()


# ── Gateway ──────────────────────────────────────────────────────


class Gateway:
    """Entry point for every operation.

    Args:
        identity: Resolves bearer tokens to principals.
        commands: Command service.
        databases: Database/namespace service.
    """

    def __init__(
        self,
        identity: IdentityService,
        commands: CommandService,
        databases: DatabaseService,
    ) -> None:
        self._identity = identity
        self._commands = commands
        self._databases = databases
        self._closers: list[Callable[[], Awaitable[None]]] = []

    @classmethod
    def from_config(
        cls,
        config: GatewayConfig,
        *,
        store: Optional[Store] = None,
        identity: Optional[IdentityService] = None,
        registry: Optional[CommandTypeRegistry] = None,
    ) -> "Gateway":
        """Wire the default HTTP clients and services from configuration.

        Store credentials come from ``store_url`` when set, otherwise from
        the Redis credentials cache under ``store_instance``.
        """
        guard = NameGuard(config.naming)
        closers: list[Callable[[], Awaitable[None]]] = []

        if store is None:
            credentials = None
            if config.redis_url:
                credentials = CredentialsCache(
                    RedisCredentialsSource(config.redis_url, prefix=config.credentials_key_prefix),
                    ttl_seconds=config.credentials_ttl_seconds,
                )
            elif not config.store_url:
                raise ConfigurationError("Either STORE_URL or REDIS_URL must be configured")
            http_store = HttpStore(
                config.store_url,
                credentials=credentials,
                instance=config.store_instance,
                timeout=config.store_timeout_seconds,
            )
            closers.append(http_store.aclose)
            store = http_store

        if identity is None:
            if not config.identity_url:
                raise ConfigurationError("IDENTITY_URL must be configured")
            http_identity = HttpIdentityService(config.identity_url, timeout=config.identity_timeout_seconds)
            closers.append(http_identity.aclose)
            identity = http_identity

        resolver = LocationResolver(config.locations)
        gateway = cls(
            identity,
            CommandService(store, resolver, registry or build_default_registry(guard), guard),
            DatabaseService(store, config.locations, guard),
        )
        gateway._closers.extend(closers)
        return gateway

    async def aclose(self) -> None:
        for close in self._closers:
            await close()

    async def authenticate(self, authorization: Optional[str]) -> Principal:
        """Resolve an Authorization header value to a principal."""
        return await self._identity.validate_token(parse_bearer(authorization))

    async def _run(
        self,
        operation: str,
        authorization: Optional[str],
        action: Callable[[Principal], Awaitable[Any]],
    ) -> GatewayResult:
        start = time.monotonic()
        request_id = uuid.uuid4().hex
        log = get_request_logger(__name__, request_id=request_id)
        result = GatewayResult(request_id=request_id)

        try:
            principal = await self.authenticate(authorization)
            log = get_request_logger(__name__, request_id=request_id, principal=principal.email)
            result.data = await action(principal)
        except GatewayError as e:
            log.info("%s failed: [%s] %s", operation, e.code, e.message)
            result.error = e.to_dict()
            result.code = e.code
            result.status = e.http_status
        except Exception as e:
            log.exception("%s unexpected error: %s", operation, e)
            result.error = error_response(e)
            result.code = GatewayError.code
            result.status = http_status_for(e)

        result.processing_ms = (time.monotonic() - start) * 1000
        return result

    # ── Commands ─────────────────────────────────────────────────

    async def create_command(
        self,
        authorization: Optional[str],
        data: Mapping[str, Any],
        database: Optional[str] = None,
        namespace: Optional[str] = None,
    ) -> GatewayResult:
        async def action(principal: Principal) -> Any:
            return _located(await self._commands.create(principal, data, _location(database, namespace)))

        result = await self._run("create_command", authorization, action)
        if result.ok:
            result.status = 201
        return result

    async def get_command(
        self,
        authorization: Optional[str],
        command_id: str,
        database: Optional[str] = None,
        namespace: Optional[str] = None,
    ) -> GatewayResult:
        async def action(principal: Principal) -> Any:
            return _located(await self._commands.get(principal, command_id, _location(database, namespace)))

        return await self._run("get_command", authorization, action)

    async def update_command(
        self,
        authorization: Optional[str],
        command_id: str,
        changes: Mapping[str, Any],
        database: Optional[str] = None,
        namespace: Optional[str] = None,
    ) -> GatewayResult:
        async def action(principal: Principal) -> Any:
            return _located(
                await self._commands.update(principal, command_id, changes, _location(database, namespace))
            )

        return await self._run("update_command", authorization, action)

    async def delete_command(
        self,
        authorization: Optional[str],
        command_id: str,
        database: Optional[str] = None,
        namespace: Optional[str] = None,
    ) -> GatewayResult:
        async def action(principal: Principal) -> Any:
            return _located(await self._commands.delete(principal, command_id, _location(database, namespace)))

        return await self._run("delete_command", authorization, action)

    async def list_commands(
        self,
        authorization: Optional[str],
        database: Optional[str] = None,
        namespace: Optional[str] = None,
        pattern: str = "*",
    ) -> GatewayResult:
        async def action(principal: Principal) -> Any:
            items = await self._commands.list(principal, _location(database, namespace), pattern)
            return [_located(item) for item in items]

        return await self._run("list_commands", authorization, action)

    async def search_commands(
        self,
        authorization: Optional[str],
        term: str,
        database: Optional[str] = None,
        namespace: Optional[str] = None,
    ) -> GatewayResult:
        async def action(principal: Principal) -> Any:
            items = await self._commands.search(principal, term, _location(database, namespace))
            return [_located(item) for item in items]

        return await self._run("search_commands", authorization, action)

    async def tag_command(
        self,
        authorization: Optional[str],
        command_id: str,
        tag: str,
        database: Optional[str] = None,
        namespace: Optional[str] = None,
    ) -> GatewayResult:
        async def action(principal: Principal) -> Any:
            return _located(await self._commands.add_tag(principal, command_id, tag, _location(database, namespace)))

        return await self._run("tag_command", authorization, action)

    async def untag_command(
        self,
        authorization: Optional[str],
        command_id: str,
        tag: str,
        database: Optional[str] = None,
        namespace: Optional[str] = None,
    ) -> GatewayResult:
        async def action(principal: Principal) -> Any:
            return _located(
                await self._commands.remove_tag(principal, command_id, tag, _location(database, namespace))
            )

        return await self._run("untag_command", authorization, action)

    # ── Databases & namespaces ───────────────────────────────────

    async def create_database(self, authorization: Optional[str], name: str) -> GatewayResult:
        async def action(principal: Principal) -> Any:
            return {"database": await self._databases.create_database(principal, name)}

        result = await self._run("create_database", authorization, action)
        if result.ok:
            result.status = 201
        return result

    async def drop_database(self, authorization: Optional[str], name: str) -> GatewayResult:
        async def action(principal: Principal) -> Any:
            return {"database": await self._databases.drop_database(principal, name)}

        return await self._run("drop_database", authorization, action)

    async def list_databases(self, authorization: Optional[str]) -> GatewayResult:
        async def action(principal: Principal) -> Any:
            databases = await self._databases.list_databases(principal)
            return {"databases": databases, "count": len(databases)}

        return await self._run("list_databases", authorization, action)

    async def create_namespace(self, authorization: Optional[str], database: str, namespace: str) -> GatewayResult:
        async def action(principal: Principal) -> Any:
            created = await self._databases.create_namespace(principal, database, namespace)
            return {"database": database, "namespace": created}

        result = await self._run("create_namespace", authorization, action)
        if result.ok:
            result.status = 201
        return result

    async def drop_namespace(self, authorization: Optional[str], database: str, namespace: str) -> GatewayResult:
        async def action(principal: Principal) -> Any:
            dropped = await self._databases.drop_namespace(principal, database, namespace)
            return {"database": database, "namespace": dropped}

        return await self._run("drop_namespace", authorization, action)

    async def list_namespaces(self, authorization: Optional[str], database: str) -> GatewayResult:
        async def action(principal: Principal) -> Any:
            namespaces = await self._databases.list_namespaces(principal, database)
            return {"database": database, "namespaces": namespaces, "count": len(namespaces)}

        return await self._run("list_namespaces", authorization, action)

    # ── Capabilities ─────────────────────────────────────────────

    async def check_capability(self, authorization: Optional[str], capability: str) -> GatewayResult:
        async def action(principal: Principal) -> Any:
            return {"capability": capability, "allowed": has_capability(principal, capability)}

        return await self._run("check_capability", authorization, action)


__all__ = [
    "Gateway",
    "GatewayResult",
]
