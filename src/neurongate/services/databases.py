"""Database and namespace administration."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import LocationConfig
from ..exceptions import AuthorizationError, ValidationError
from ..naming import NameGuard, NameKind
from ..permissions import AccessLevel, can_access, derive_namespace, has_any_grant, is_user_namespace
from ..principal import Principal
from ..store import ROOT_PATH, Store, StorePath, StoreRequest, StoreTarget, StoreVerb
from .records import names_from_response

logger = logging.getLogger(__name__)


class DatabaseService:
    """Create, drop and list databases and namespaces.

    Creating or dropping a database takes admin over the whole admin
    database (``main``). Creating or dropping a namespace takes admin over
    the database that holds it.
    """

    def __init__(
        self,
        store: Store,
        config: Optional[LocationConfig] = None,
        guard: Optional[NameGuard] = None,
    ) -> None:
        self._store = store
        self._config = config or LocationConfig()
        self._guard = guard or NameGuard()
        self._protected = frozenset(self._config.protected_databases)

    def _can(self, principal: Principal, database: str, namespace: Optional[str], level: AccessLevel) -> bool:
        return can_access(
            principal,
            database,
            namespace,
            level,
            user_data_database=self._config.user_data_database,
        )

    def _require_store_admin(self, principal: Principal, action: str) -> None:
        if not self._can(principal, self._config.admin_database, None, AccessLevel.ADMIN):
            logger.info("%s denied %s: no admin on %s", principal.email, action, self._config.admin_database)
            raise AuthorizationError(f"Admin permission on '{self._config.admin_database}' required to {action}")

    # ── Databases ───────────────────────────────────────

    async def create_database(self, principal: Principal, name: str) -> str:
        self._guard.ensure_valid(NameKind.DATABASE, name)
        self._require_store_admin(principal, "create databases")
        await self._store.execute(
            StoreRequest(StoreVerb.SET, ROOT_PATH, target=StoreTarget.DATABASE, payload=name),
            principal.token,
        )
        logger.info("Database %s created by %s", name, principal.email)
        return name

    async def drop_database(self, principal: Principal, name: str) -> str:
        self._guard.ensure_valid(NameKind.DATABASE, name, existing=True)
        if name in self._protected:
            raise ValidationError(f"Cannot drop protected database: {name}")
        self._require_store_admin(principal, "drop databases")
        await self._store.execute(
            StoreRequest(StoreVerb.DROP, ROOT_PATH, target=StoreTarget.DATABASE, payload=name),
            principal.token,
        )
        logger.info("Database %s dropped by %s", name, principal.email)
        return name

    async def list_databases(self, principal: Principal) -> list[str]:
        """Databases the principal holds any grant on, plus the user-data database.

        Admins, and principals allowed to create databases, see every database.
        """
        raw = await self._store.execute(
            StoreRequest(StoreVerb.LIST, ROOT_PATH, target=StoreTarget.DATABASE),
            principal.token,
        )
        names = names_from_response(raw)
        if self._can(principal, self._config.admin_database, None, AccessLevel.ADMIN):
            return names
        return [n for n in names if n == self._config.user_data_database or has_any_grant(principal, n)]

    # ── Namespaces ──────────────────────────────────────

    async def create_namespace(self, principal: Principal, database: str, namespace: str) -> str:
        self._guard.ensure_valid(NameKind.DATABASE, database, existing=True)
        self._guard.ensure_valid(NameKind.NAMESPACE, namespace)
        if not self._can(principal, database, None, AccessLevel.ADMIN):
            raise AuthorizationError(f"Admin permission on database '{database}' required to create namespaces")
        await self._store.execute(
            StoreRequest(StoreVerb.SET, StorePath(database), target=StoreTarget.NAMESPACE, payload=namespace),
            principal.token,
        )
        logger.info("Namespace %s.%s created by %s", database, namespace, principal.email)
        return namespace

    async def drop_namespace(self, principal: Principal, database: str, namespace: str) -> str:
        self._guard.ensure_valid(NameKind.DATABASE, database, existing=True)
        self._guard.ensure_valid(NameKind.NAMESPACE, namespace, existing=True)
        if database == self._config.user_data_database and is_user_namespace(namespace):
            raise ValidationError(f"Cannot drop user namespace: {namespace}")
        if not self._can(principal, database, namespace, AccessLevel.ADMIN):
            raise AuthorizationError(f"Admin permission on '{database}.{namespace}' required to drop it")
        await self._store.execute(
            StoreRequest(StoreVerb.DROP, StorePath(database), target=StoreTarget.NAMESPACE, payload=namespace),
            principal.token,
        )
        logger.info("Namespace %s.%s dropped by %s", database, namespace, principal.email)
        return namespace

    async def list_namespaces(self, principal: Principal, database: str) -> list[str]:
        """Namespaces of ``database`` visible to the principal.

        A database-wide read grant (or admin) shows everything. Namespace
        grants show only their own namespaces. In the user-data database a
        principal without a database-wide grant sees only their own namespace.
        """
        self._guard.ensure_valid(NameKind.DATABASE, database, existing=True)
        sees_all = self._can(principal, database, None, AccessLevel.READ)
        own = derive_namespace(principal.email) if database == self._config.user_data_database else None

        if not sees_all and own is None and not has_any_grant(principal, database):
            raise AuthorizationError(f"Insufficient permissions to list namespaces in {database}")

        raw = await self._store.execute(
            StoreRequest(StoreVerb.LIST, StorePath(database), target=StoreTarget.NAMESPACE),
            principal.token,
        )
        names = names_from_response(raw)
        if sees_all:
            return names
        return [n for n in names if n == own or self._can(principal, database, n, AccessLevel.READ)]


__all__ = ["DatabaseService"]
