"""Access levels, system groups and capability names.

Provides:
- ``AccessLevel``: ordered path access levels (read < write < admin).
- ``SystemGroup``: group names with built-in meaning.
- ``Capabilities``: feature capability names (``domain.action`` format).
"""

from __future__ import annotations

from enum import IntEnum


class AccessLevel(IntEnum):
    """Ordered access levels. A higher level implies every lower one."""

    READ = 1
    WRITE = 2
    ADMIN = 3


# The own-namespace override never reaches past this level.
OWN_NAMESPACE_MAX_LEVEL = AccessLevel.WRITE


class SystemGroup:
    """Group names with built-in meaning.

    Membership in ``ADMIN`` bypasses every path check. The other groups only
    contribute capability names via :data:`GROUP_CAPABILITIES`.
    """

    ADMIN = "admin"
    DEFAULT = "default"
    SUBSCRIPTION_ADMIN = "subscription_admin"

    ALL = frozenset({"admin", "default", "subscription_admin"})


ADMIN_GROUP = SystemGroup.ADMIN


class Capabilities:
    """Canonical capability names.

    Format: ``{domain}.{action}``. A trailing ``*`` in a granted capability
    is a prefix wildcard; a bare ``*`` grants everything.
    """

    # ── Features ────────────────────────────────────────
    AI_USE = "ai.use"
    PROFILE_EDIT = "user.profile.edit"
    TIMELINE_VIEW = "timeline.view"
    CONFIG_VIEW = "config.view"

    # ── Subscriptions ───────────────────────────────────
    SUBSCRIPTION_ALL = "subscription.*"

    # ── Wildcard ────────────────────────────────────────
    ALL = "*"

    @staticmethod
    def build(domain: str, action: str) -> str:
        """Build a capability name, e.g. ``build("subscription", "cancel")``."""
        return f"{domain}.{action}"


__all__ = [
    "ADMIN_GROUP",
    "AccessLevel",
    "Capabilities",
    "OWN_NAMESPACE_MAX_LEVEL",
    "SystemGroup",
]
