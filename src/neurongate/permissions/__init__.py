"""Path access evaluation, per-user namespaces and capability profiles.

Defines:
- AccessLevel: read < write < admin
- derive_namespace(): email -> private namespace name
- can_access(): path grant evaluation with own-namespace and admin overrides
- GROUP_CAPABILITIES / has_capability(): feature capability checks
"""

from .access import can_access, has_any_grant, highest_level, owns_namespace
from .constants import ADMIN_GROUP, OWN_NAMESPACE_MAX_LEVEL, AccessLevel, Capabilities, SystemGroup
from .namespace import USER_NAMESPACE_MARKER, derive_namespace, is_user_namespace
from .profiles import GROUP_CAPABILITIES, capabilities_for, capability_matches, has_capability

__all__ = [
    "ADMIN_GROUP",
    "GROUP_CAPABILITIES",
    "OWN_NAMESPACE_MAX_LEVEL",
    "USER_NAMESPACE_MARKER",
    "AccessLevel",
    "Capabilities",
    "SystemGroup",
    "can_access",
    "capabilities_for",
    "capability_matches",
    "derive_namespace",
    "has_any_grant",
    "has_capability",
    "highest_level",
    "is_user_namespace",
    "owns_namespace",
]
