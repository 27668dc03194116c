"""Store boundary: the request shape and the abstract client.

The gateway only builds paths, verbs and values. How a request is encoded
and shipped is up to the Store implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class StoreVerb(str, Enum):
    SET = "set"
    VIEW = "view"
    LIST = "list"
    SEARCH = "search"
    MATCH = "match"
    REMOVE = "remove"
    DROP = "drop"
    TAG = "tag"
    UNTAG = "untag"
    AUDIT = "audit"


class StoreTarget(str, Enum):
    """What kind of object a request addresses."""

    STRUCTURE = "structure"
    DATABASE = "database"
    NAMESPACE = "namespace"


@dataclass(frozen=True)
class StorePath:
    """A ``database[.namespace[.entity]]`` path. Empty database is the store root."""

    database: str = ""
    namespace: str = ""
    entity: str = ""

    def __str__(self) -> str:
        return ".".join(part for part in (self.database, self.namespace, self.entity) if part)


ROOT_PATH = StorePath()


@dataclass(frozen=True)
class StoreRequest:
    """One store operation.

    ``record_id`` addresses a record inside ``path``; ``payload`` is the
    value written or the term matched, depending on the verb.
    """

    verb: StoreVerb
    path: StorePath = ROOT_PATH
    target: StoreTarget = StoreTarget.STRUCTURE
    record_id: Optional[str] = None
    payload: Any = None

    def describe(self) -> str:
        suffix = f"#{self.record_id}" if self.record_id else ""
        return f"{self.verb.value}({self.target.value}) on {self.path}{suffix}"


class Store(ABC):
    """Path-addressed document store client."""

    @abstractmethod
    async def execute(self, request: StoreRequest, token: Optional[str] = None) -> Any:
        """Run one request and return the decoded response.

        Returns None when the addressed record or path does not exist.
        Raises StoreError (or a subclass) on any other failure.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


__all__ = [
    "ROOT_PATH",
    "Store",
    "StorePath",
    "StoreRequest",
    "StoreTarget",
    "StoreVerb",
]
