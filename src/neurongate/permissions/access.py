"""Path access decisions.

Provides runtime functions deciding whether a principal holds a given
access level at ``database[.namespace]``. Used by the location resolver and
every service before touching the store.

These functions never raise. A ``False`` result is turned into an
AuthorizationError (or a silent fallback) by the caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .constants import OWN_NAMESPACE_MAX_LEVEL, AccessLevel
from .namespace import derive_namespace

if TYPE_CHECKING:
    from ..principal import Principal

logger = logging.getLogger(__name__)

DEFAULT_USER_DATA_DATABASE = "user-data"


def owns_namespace(
    principal: "Principal",
    database: str,
    namespace: str | None,
    *,
    user_data_database: str = DEFAULT_USER_DATA_DATABASE,
) -> bool:
    """Check whether database.namespace is the principal's own private namespace."""
    return (
        database == user_data_database
        and namespace is not None
        and namespace == derive_namespace(principal.email)
    )


def can_access(
    principal: "Principal",
    database: str,
    namespace: str | None,
    required_level: int,
    *,
    user_data_database: str = DEFAULT_USER_DATA_DATABASE,
) -> bool:
    """Check if a principal holds ``required_level`` at database[.namespace].

    Checks in order:
    1. Own namespace: ``user-data.<derive_namespace(email)>`` grants read and
       write, never admin.
    2. ``admin`` group membership (universal override).
    3. Any single grant on the same database whose namespace is database-wide
       (None or ``"*"``) or equal to ``namespace``, with a level at least
       ``required_level``. Grants are matched one by one, never merged.

    Args:
        principal: The authenticated caller.
        database: Target database.
        namespace: Target namespace, or None to ask about the database as a
            whole (only database-wide grants match, no own-namespace override).
        required_level: 1 (read), 2 (write) or 3 (admin).

    Returns:
        True if access is granted.

    Example::

        bob = Principal.build("bob@x.com", permissions=[{"database": "sales", "level": 1}])
        can_access(bob, "user-data", "bob_at_x_com", AccessLevel.WRITE)  # True
        can_access(bob, "user-data", "bob_at_x_com", AccessLevel.ADMIN)  # False
        can_access(bob, "sales", "q3", AccessLevel.READ)                 # True
        can_access(bob, "sales", "q3", AccessLevel.WRITE)                # False
    """
    if required_level <= OWN_NAMESPACE_MAX_LEVEL and owns_namespace(
        principal, database, namespace, user_data_database=user_data_database
    ):
        return True

    if principal.is_admin:
        return True

    return any(
        grant.covers(database, namespace) and grant.level >= required_level for grant in principal.permissions
    )


def highest_level(
    principal: "Principal",
    database: str,
    namespace: str | None,
    *,
    user_data_database: str = DEFAULT_USER_DATA_DATABASE,
) -> AccessLevel | None:
    """Return the governing access level at a path, or None without access."""
    if principal.is_admin:
        return AccessLevel.ADMIN

    levels = [grant.level for grant in principal.permissions if grant.covers(database, namespace)]
    if owns_namespace(principal, database, namespace, user_data_database=user_data_database):
        levels.append(OWN_NAMESPACE_MAX_LEVEL)
    if not levels:
        return None
    return AccessLevel(max(levels))


def has_any_grant(principal: "Principal", database: str) -> bool:
    """Check whether the principal holds any grant, at any level, on a database."""
    return principal.is_admin or any(grant.database == database for grant in principal.permissions)


__all__ = [
    "can_access",
    "has_any_grant",
    "highest_level",
    "owns_namespace",
]
