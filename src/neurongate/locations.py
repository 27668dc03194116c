"""Where commands are written and where they are looked for.

LocationResolver answers three questions for a principal:

- default_location(): the private namespace used when nothing else applies
- candidate_locations(): the ordered list of places searched for a command
- resolve_write_location(): the place a new command is written to

Candidate searches run sequentially and stop at the first hit. A failure in
one location (unreachable namespace, store error) never aborts the search.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from .config import LocationConfig
from .exceptions import GatewayError, NotFoundError, StoreError
from .permissions import AccessLevel, can_access, derive_namespace
from .principal import WILDCARD_NAMESPACE, Principal

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Location:
    """A database.namespace pair. Namespace "*" stands for every namespace."""

    database: str
    namespace: str

    @property
    def is_wildcard(self) -> bool:
        return self.namespace == WILDCARD_NAMESPACE

    def path(self, entity: str | None = None) -> str:
        parts = [self.database, self.namespace]
        if entity:
            parts.append(entity)
        return ".".join(parts)

    def to_dict(self) -> dict[str, str]:
        return {"database": self.database, "namespace": self.namespace}

    def __str__(self) -> str:
        return self.path()


class LocationResolver:
    """Resolves default, candidate and write locations for a principal."""

    def __init__(self, config: LocationConfig | None = None) -> None:
        self.config = config or LocationConfig()
        self._excluded = frozenset(self.config.excluded_search_databases)

    # ── Default ─────────────────────────────────────────

    def default_location(self, principal: Principal) -> Location:
        return Location(self.config.user_data_database, derive_namespace(principal.email))

    # ── Candidates ──────────────────────────────────────

    def candidate_locations(self, principal: Principal) -> list[Location]:
        """Ordered, de-duplicated search list for a principal.

        1. The principal's own namespace.
        2. For each grant, in grant order, outside the excluded databases:
           one wildcard entry for a database the principal holds any
           database-wide grant on, otherwise the grant's namespace.
        3. ``global.commands`` when the principal holds any grant on the
           global database. Scoped grants on the global database are
           searched in step 2 like any other.
        """
        candidates: list[Location] = [self.default_location(principal)]

        wide = {g.database for g in principal.permissions if g.is_database_wide}
        for grant in principal.permissions:
            if grant.level < AccessLevel.READ or grant.database in self._excluded:
                continue
            if grant.database in wide:
                candidates.append(Location(grant.database, WILDCARD_NAMESPACE))
            else:
                candidates.append(Location(grant.database, grant.namespace))  # type: ignore[arg-type]

        if any(g.database == self.config.global_database for g in principal.permissions):
            candidates.append(Location(self.config.global_database, self.config.global_namespace))

        return list(dict.fromkeys(candidates))

    async def expand_candidates(
        self,
        candidates: Iterable[Location],
        list_namespaces: Callable[[str], Awaitable[list[str]]],
    ) -> list[Location]:
        """Replace wildcard entries with the database's concrete namespaces.

        A database whose namespaces cannot be listed is skipped.
        """
        expanded: list[Location] = []
        for location in candidates:
            if not location.is_wildcard:
                expanded.append(location)
                continue
            try:
                namespaces = await list_namespaces(location.database)
            except (StoreError, NotFoundError) as e:
                logger.warning("Could not list namespaces of %s: %s", location.database, e.message)
                continue
            expanded.extend(Location(location.database, ns) for ns in namespaces)
        return list(dict.fromkeys(expanded))

    async def search_first(
        self,
        candidates: Iterable[Location],
        fetch: Callable[[Location], Awaitable[Optional[T]]],
    ) -> Optional[tuple[T, Location]]:
        """Return the first (result, location) whose fetch yields a value.

        StoreError and NotFoundError from one location count as "not here".
        Returns None when nothing matched; re-raises the last failure when
        every location failed.
        """
        attempted = 0
        last_error: GatewayError | None = None
        failures = 0
        for location in candidates:
            attempted += 1
            try:
                result = await fetch(location)
            except (StoreError, NotFoundError) as e:
                failures += 1
                last_error = e
                logger.warning("Lookup in %s failed: %s", location, e.message)
                continue
            if result is not None:
                return result, location
            logger.debug("Not found in %s", location)

        if attempted and failures == attempted and last_error is not None:
            raise last_error
        return None

    # ── Write ───────────────────────────────────────────

    def resolve_write_location(
        self,
        principal: Principal,
        database: str | None = None,
        namespace: str | None = None,
    ) -> Location:
        """Explicit location when both parts are given and writable, else the default.

        The fallback is silent: a caller asking to write somewhere they
        cannot gets their own namespace instead of an error.
        """
        if database and namespace:
            if can_access(
                principal,
                database,
                namespace,
                AccessLevel.WRITE,
                user_data_database=self.config.user_data_database,
            ):
                return Location(database, namespace)
            logger.debug(
                "%s cannot write to %s.%s; using own namespace",
                principal.email,
                database,
                namespace,
            )
        return self.default_location(principal)


__all__ = [
    "Location",
    "LocationResolver",
]
