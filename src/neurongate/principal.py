"""Authenticated principal and path-scoped permission grants.

A Principal is the immutable result of validating a bearer token against the
identity service. It carries two independent authorization dimensions:

- ``permissions``: PermissionGrant entries scoped to database/namespace paths,
  evaluated by neurongate.permissions.access.can_access
- ``groups`` / ``capabilities``: coarse feature capability names, evaluated by
  neurongate.permissions.profiles.has_capability
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from .permissions.constants import ADMIN_GROUP, AccessLevel

WILDCARD_NAMESPACE = "*"


@dataclass(frozen=True)
class PermissionGrant:
    """Access level over one database, optionally narrowed to a namespace.

    ``namespace`` None or "*" means the grant covers the whole database.
    """

    database: str
    namespace: str | None = None
    level: AccessLevel = AccessLevel.READ

    def __post_init__(self) -> None:
        try:
            level = AccessLevel(int(self.level))
        except (TypeError, ValueError):
            raise ValueError(f"Invalid access level {self.level!r}; expected 1, 2 or 3") from None
        object.__setattr__(self, "level", level)
        if not self.database:
            raise ValueError("PermissionGrant requires a database")

    @property
    def is_database_wide(self) -> bool:
        return self.namespace is None or self.namespace == WILDCARD_NAMESPACE

    def covers(self, database: str, namespace: str | None) -> bool:
        """Check whether this grant's path covers database[.namespace].

        ``namespace`` None asks about the database as a whole, which only a
        database-wide grant covers.
        """
        if self.database != database:
            return False
        if self.is_database_wide:
            return True
        return namespace is not None and self.namespace == namespace

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PermissionGrant":
        return cls(
            database=str(data["database"]),
            namespace=data.get("namespace") or None,
            level=data.get("level", AccessLevel.READ),
        )


@dataclass(frozen=True)
class Principal:
    """An authenticated caller.

    The bearer token is kept so requests to the store run under the caller's
    own identity; it is excluded from repr and equality.
    """

    email: str
    groups: frozenset[str] = frozenset()
    permissions: tuple[PermissionGrant, ...] = ()
    capabilities: frozenset[str] = frozenset()
    token: str | None = field(default=None, repr=False, compare=False)

    @property
    def is_admin(self) -> bool:
        return ADMIN_GROUP in self.groups

    def grants_for(self, database: str) -> tuple[PermissionGrant, ...]:
        return tuple(g for g in self.permissions if g.database == database)

    @classmethod
    def build(
        cls,
        email: str,
        *,
        groups: Iterable[str] = (),
        permissions: Iterable[PermissionGrant | Mapping[str, Any]] = (),
        capabilities: Iterable[str] = (),
        token: str | None = None,
    ) -> "Principal":
        grants = tuple(p if isinstance(p, PermissionGrant) else PermissionGrant.from_dict(p) for p in permissions)
        return cls(
            email=email,
            groups=frozenset(groups),
            permissions=grants,
            capabilities=frozenset(capabilities),
            token=token,
        )

    @classmethod
    def from_identity_payload(cls, payload: Mapping[str, Any], token: str | None = None) -> "Principal":
        """Build a principal from the identity service's validation response.

        Accepts either the user object itself or an envelope with a ``user``
        key. Raises KeyError/ValueError on malformed payloads.
        """
        user = payload.get("user", payload)
        if not isinstance(user, Mapping):
            raise ValueError("Identity payload has no user object")
        email = user.get("email")
        if not email or not isinstance(email, str):
            raise ValueError("Identity payload has no email")
        return cls.build(
            email,
            groups=user.get("groups") or (),
            permissions=user.get("permissions") or (),
            capabilities=user.get("capabilities") or (),
            token=token,
        )


__all__ = [
    "AccessLevel",
    "PermissionGrant",
    "Principal",
    "WILDCARD_NAMESPACE",
]
