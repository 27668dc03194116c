"""Per-user namespace derivation."""

from __future__ import annotations

import re

USER_NAMESPACE_MARKER = "_at_"

_UNSAFE = re.compile(r"[^A-Za-z0-9_-]")


def derive_namespace(email: str) -> str:
    """Map an email address to the principal's private namespace name.

    ``.`` becomes ``_``, ``@`` becomes ``_at_`` and any other character that
    is not a letter, digit, ``_`` or ``-`` becomes ``_``. Case is preserved.

    Example::

        derive_namespace("bob@x.com")        # "bob_at_x_com"
        derive_namespace("a.b+tag@corp.io")  # "a_b_tag_at_corp_io"
    """
    if not email:
        return ""
    return _UNSAFE.sub("_", email.replace("@", USER_NAMESPACE_MARKER))


def is_user_namespace(namespace: str | None) -> bool:
    """Check whether a namespace name looks like a derived per-user namespace."""
    return bool(namespace and USER_NAMESPACE_MARKER in namespace)


__all__ = [
    "USER_NAMESPACE_MARKER",
    "derive_namespace",
    "is_user_namespace",
]
