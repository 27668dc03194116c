"""Name validation for databases, namespaces and tags.

NameGuard.check() reports the first rule a name breaks and never raises;
ensure_valid() is the raising form services use at their boundary.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

from .config import NamingConfig
from .exceptions import ValidationError

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class NameKind(str, Enum):
    DATABASE = "database"
    NAMESPACE = "namespace"
    TAG = "tag"


class NameRule(str, Enum):
    """Rules a name is checked against, in evaluation order."""

    NON_EMPTY = "non_empty"
    MAX_LENGTH = "max_length"
    SYNTAX = "syntax"
    RESERVED = "reserved"


@dataclass(frozen=True)
class NameViolation:
    kind: NameKind
    name: str
    rule: NameRule
    message: str

    def __str__(self) -> str:
        return self.message


class NameGuard:
    """Checks database, namespace and tag names.

    Reserved names are compared case-insensitively. Syntax is always
    enforced so a name can never smuggle a path separator into a store path.
    """

    def __init__(self, config: NamingConfig | None = None) -> None:
        self._config = config or NamingConfig()
        self._reserved = {
            NameKind.DATABASE: frozenset(self._config.reserved_databases),
            NameKind.NAMESPACE: frozenset(self._config.reserved_namespaces),
            NameKind.TAG: frozenset(self._config.reserved_tags),
        }

    @property
    def max_length(self) -> int:
        return self._config.max_length

    def is_reserved(self, kind: NameKind | str, name: str) -> bool:
        return name.lower() in self._reserved[NameKind(kind)]

    def check(self, kind: NameKind | str, name: str | None, *, existing: bool = False) -> NameViolation | None:
        """Return the first violated rule for ``name``, or None if it is valid.

        ``existing=True`` checks syntax only. Length and reserved names bind
        new resources; locations that address existing ones (a derived user
        namespace may be longer than the limit) skip them.
        """
        kind = NameKind(kind)
        label = kind.value.capitalize()

        if not name or not isinstance(name, str):
            return NameViolation(kind, str(name or ""), NameRule.NON_EMPTY, f"{label} name is required")
        if not existing and len(name) > self._config.max_length:
            return NameViolation(
                kind,
                name,
                NameRule.MAX_LENGTH,
                f"{label} name must be at most {self._config.max_length} characters",
            )
        if not NAME_PATTERN.fullmatch(name):
            return NameViolation(
                kind,
                name,
                NameRule.SYNTAX,
                f"{label} name may only contain letters, digits, '_' and '-'",
            )
        if not existing and self.is_reserved(kind, name):
            return NameViolation(kind, name, NameRule.RESERVED, f"{label} name '{name}' is reserved")
        return None

    def ensure_valid(self, kind: NameKind | str, name: str | None, *, existing: bool = False) -> str:
        """Raise ValidationError naming the violated rule, else return ``name``."""
        violation = self.check(kind, name, existing=existing)
        if violation is not None:
            logger.info("Rejected %s name %r: %s", violation.kind.value, violation.name, violation.rule.value)
            raise ValidationError(violation.message, violations=[violation.message], rule=violation.rule.value)
        return name  # type: ignore[return-value]


__all__ = [
    "NAME_PATTERN",
    "NameGuard",
    "NameKind",
    "NameRule",
    "NameViolation",
]
