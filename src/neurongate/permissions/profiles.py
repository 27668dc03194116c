"""Group capability profiles and capability matching.

Provides:
- ``GROUP_CAPABILITIES``: group name -> capability names the group grants.
- ``capabilities_for()``: union of group-derived and direct capabilities.
- ``has_capability()``: wildcard-aware capability check.

Capabilities are a separate dimension from path grants: a principal may
hold ``ai.use`` without any database access and the reverse. Nothing here
consults PermissionGrant entries, and can_access never consults this module.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from .constants import Capabilities, SystemGroup

if TYPE_CHECKING:
    from ..principal import Principal

logger = logging.getLogger(__name__)

# ── Group → Capability Profiles ─────────────────────────

GROUP_CAPABILITIES: dict[str, tuple[str, ...]] = {
    SystemGroup.ADMIN: (Capabilities.ALL,),
    SystemGroup.DEFAULT: (
        Capabilities.AI_USE,
        Capabilities.PROFILE_EDIT,
        Capabilities.TIMELINE_VIEW,
        Capabilities.CONFIG_VIEW,
    ),
    SystemGroup.SUBSCRIPTION_ADMIN: (Capabilities.SUBSCRIPTION_ALL,),
}


def capabilities_for(groups: Iterable[str], direct: Iterable[str] = ()) -> frozenset[str]:
    """Resolve the capability names held through groups plus direct grants.

    Unknown groups contribute nothing.
    """
    resolved: set[str] = set(direct)
    for group in groups:
        resolved.update(GROUP_CAPABILITIES.get(group, ()))
    return frozenset(resolved)


def capability_matches(granted: str, requested: str) -> bool:
    """Check one granted capability pattern against a requested name.

    Example::

        capability_matches("*", "ai.use")                          # True
        capability_matches("subscription.*", "subscription.cancel") # True
        capability_matches("ai.use", "ai.train")                    # False
    """
    if granted == Capabilities.ALL or granted == requested:
        return True
    if granted.endswith("*"):
        return requested.startswith(granted[:-1])
    return False


def has_capability(principal: "Principal", capability: str) -> bool:
    """Check whether a principal holds a feature capability.

    Args:
        principal: The authenticated caller.
        capability: Requested capability name, e.g. ``"ai.use"``.

    Returns:
        True if any group-derived or direct capability matches.
    """
    if not capability:
        return False
    held = capabilities_for(principal.groups, principal.capabilities)
    allowed = any(capability_matches(granted, capability) for granted in held)
    if not allowed:
        logger.debug("Capability %s not held by %s", capability, principal.email)
    return allowed


__all__ = [
    "GROUP_CAPABILITIES",
    "capabilities_for",
    "capability_matches",
    "has_capability",
]
