"""Command orchestration: authorize, locate and persist workflow-step records.

Every operation takes the authenticated Principal first. Reads without an
explicit location search the principal's candidate locations; mutations
first discover where the command lives and then authorize against that
location, with authorship as a second way in.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from ..commands import IMMUTABLE_FIELDS, Command, CommandTypeRegistry, command_registry
from ..exceptions import AuthorizationError, NotFoundError, StoreError, ValidationError
from ..locations import Location, LocationResolver
from ..naming import NameGuard, NameKind
from ..permissions import AccessLevel, can_access
from ..principal import Principal
from ..store import Store, StorePath, StoreRequest, StoreTarget, StoreVerb
from .records import names_from_response, records_from_response

logger = logging.getLogger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


_IMMUTABLE_KEYS = frozenset(
    key for name in IMMUTABLE_FIELDS for key in (name, Command.model_fields[name].alias or name)
)


@dataclass(frozen=True)
class LocatedCommand:
    """A command together with the location it was read from or written to."""

    command: Command
    location: Location

    def to_dict(self) -> dict[str, Any]:
        return {"command": self.command.to_record(), "location": self.location.to_dict()}


class CommandService:
    """Create, read, update, delete, list, search and tag commands.

    Args:
        store: Store client.
        resolver: Location resolver (defaults to the standard locations).
        registry: Command type registry.
        guard: Name guard for explicit locations and tags.
        clock: Returns the timestamp string stamped on records.
    """

    def __init__(
        self,
        store: Store,
        resolver: Optional[LocationResolver] = None,
        registry: Optional[CommandTypeRegistry] = None,
        guard: Optional[NameGuard] = None,
        clock: Callable[[], str] = utc_now,
    ) -> None:
        self._store = store
        self._resolver = resolver or LocationResolver()
        self._registry = registry or command_registry
        self._guard = guard or NameGuard()
        self._clock = clock
        self._entity = self._resolver.config.commands_entity
        self._user_data = self._resolver.config.user_data_database

    # ── Helpers ─────────────────────────────────────────

    def _path(self, location: Location) -> StorePath:
        return StorePath(location.database, location.namespace, self._entity)

    def _check_location(self, location: Location) -> None:
        # Existing locations may carry reserved or long names; only the syntax matters here.
        self._guard.ensure_valid(NameKind.DATABASE, location.database, existing=True)
        self._guard.ensure_valid(NameKind.NAMESPACE, location.namespace, existing=True)

    def _can(self, principal: Principal, location: Location, level: AccessLevel) -> bool:
        return can_access(
            principal,
            location.database,
            location.namespace,
            level,
            user_data_database=self._user_data,
        )

    def _require_read(self, principal: Principal, location: Location) -> None:
        self._check_location(location)
        if not self._can(principal, location, AccessLevel.READ):
            logger.info("Read denied for %s at %s", principal.email, location)
            raise AuthorizationError(f"No read permission for {location}")

    def _authorize_mutation(self, principal: Principal, found: LocatedCommand) -> None:
        """Write access at the command's location, or authorship."""
        author = found.command.created_by
        if author and author == principal.email:
            return
        if self._can(principal, found.location, AccessLevel.WRITE):
            return
        logger.info("Write denied for %s on %s at %s", principal.email, found.command.id, found.location)
        raise AuthorizationError(f"No write permission for {found.location}")

    def _load(self, data: Mapping[str, Any]) -> Command:
        try:
            return self._registry.construct(None, data)
        except ValidationError as e:
            raise StoreError(f"Malformed command record: {e.message}") from e

    def _ensure_valid(self, command: Command) -> None:
        violations = self._registry.validate(command)
        if violations:
            raise ValidationError(violations=violations, command_id=command.id)

    async def _fetch(self, principal: Principal, location: Location, command_id: str) -> Optional[Command]:
        raw = await self._store.execute(
            StoreRequest(StoreVerb.VIEW, self._path(location), record_id=command_id),
            principal.token,
        )
        if not raw:
            return None
        if not isinstance(raw, Mapping):
            raise StoreError(f"Unexpected command record shape at {location}")
        data = dict(raw)
        data.setdefault("id", command_id)
        return self._load(data)

    async def _list_namespaces(self, principal: Principal, database: str) -> list[str]:
        raw = await self._store.execute(
            StoreRequest(StoreVerb.LIST, StorePath(database), target=StoreTarget.NAMESPACE),
            principal.token,
        )
        return names_from_response(raw)

    async def reachable_locations(self, principal: Principal) -> list[Location]:
        """Candidate locations with wildcard entries expanded to namespaces."""
        candidates = self._resolver.candidate_locations(principal)
        return await self._resolver.expand_candidates(
            candidates,
            lambda database: self._list_namespaces(principal, database),
        )

    async def _collect(
        self,
        principal: Principal,
        location: Optional[Location],
        verb: StoreVerb,
        payload: Any,
    ) -> list[LocatedCommand]:
        if location is not None:
            self._require_read(principal, location)
            locations = [location]
        else:
            locations = await self.reachable_locations(principal)

        results: list[LocatedCommand] = []
        for loc in locations:
            try:
                raw = await self._store.execute(StoreRequest(verb, self._path(loc), payload=payload), principal.token)
            except StoreError as e:
                if location is not None:
                    raise
                logger.warning("%s failed in %s: %s", verb.value, loc, e.message)
                continue
            for data in records_from_response(raw):
                try:
                    results.append(LocatedCommand(self._load(data), loc))
                except StoreError as e:
                    logger.warning("Skipping record in %s: %s", loc, e.message)
        return results

    # ── Operations ──────────────────────────────────────

    async def create(
        self,
        principal: Principal,
        data: Mapping[str, Any],
        location: Optional[Location] = None,
    ) -> LocatedCommand:
        """Build, stamp, validate and store a new command.

        An explicit location the principal cannot write to silently falls
        back to the principal's own namespace. An id already present at the
        target location is rejected with ValidationError.
        """
        if location is not None:
            self._check_location(location)
        command = self._registry.construct(None, data)
        target = self._resolver.resolve_write_location(
            principal,
            location.database if location else None,
            location.namespace if location else None,
        )

        now = self._clock()
        command = command.model_copy(
            update={
                "id": command.id or command.name.strip() or uuid.uuid4().hex,
                "created_by": principal.email,
                "created_at": now,
                "updated_at": now,
                "updated_by": None,
            }
        )
        self._ensure_valid(command)

        # create never replaces; changing an existing record goes through update/delete.
        if await self._fetch(principal, target, command.id) is not None:
            logger.info("Create rejected for %s: %s already exists at %s", principal.email, command.id, target)
            raise ValidationError(f"Command already exists: {command.id}", command_id=command.id)

        await self._store.execute(
            StoreRequest(StoreVerb.SET, self._path(target), record_id=command.id, payload=command.to_record()),
            principal.token,
        )
        logger.info("Command %s (%s) created at %s by %s", command.id, command.command_type, target, principal.email)
        return LocatedCommand(command, target)

    async def get(
        self,
        principal: Principal,
        command_id: str,
        location: Optional[Location] = None,
    ) -> LocatedCommand:
        """Read a command from an explicit location, or search for it.

        A search that finds nothing raises NotFoundError, never
        AuthorizationError: locations the principal cannot read are simply
        not searched.
        """
        if not command_id:
            raise ValidationError("Command id is required")

        if location is not None:
            self._require_read(principal, location)
            command = await self._fetch(principal, location, command_id)
            if command is None:
                raise NotFoundError(f"Command not found: {command_id}", command_id=command_id)
            return LocatedCommand(command, location)

        candidates = await self.reachable_locations(principal)
        found = await self._resolver.search_first(
            candidates,
            lambda loc: self._fetch(principal, loc, command_id),
        )
        if found is None:
            raise NotFoundError(f"Command not found: {command_id}", command_id=command_id)
        command, where = found
        return LocatedCommand(command, where)

    async def update(
        self,
        principal: Principal,
        command_id: str,
        changes: Mapping[str, Any],
        location: Optional[Location] = None,
    ) -> LocatedCommand:
        """Merge ``changes`` (wire field names) into an existing command."""
        current = await self.get(principal, command_id, location)
        self._authorize_mutation(principal, current)

        merged = current.command.to_record()
        merged.update({k: v for k, v in changes.items() if k not in _IMMUTABLE_KEYS})
        merged["updatedAt"] = self._clock()
        merged["updatedBy"] = principal.email

        command = self._registry.construct(current.command.command_type, merged)
        self._ensure_valid(command)

        await self._store.execute(
            StoreRequest(
                StoreVerb.SET,
                self._path(current.location),
                record_id=command.id,
                payload=command.to_record(),
            ),
            principal.token,
        )
        logger.info("Command %s updated at %s by %s", command.id, current.location, principal.email)
        return LocatedCommand(command, current.location)

    async def delete(
        self,
        principal: Principal,
        command_id: str,
        location: Optional[Location] = None,
    ) -> LocatedCommand:
        """Remove a command. System commands can never be removed."""
        current = await self.get(principal, command_id, location)
        if current.command.is_system:
            raise ValidationError("System commands cannot be deleted", command_id=command_id)
        self._authorize_mutation(principal, current)

        await self._store.execute(
            StoreRequest(StoreVerb.REMOVE, self._path(current.location), record_id=current.command.id),
            principal.token,
        )
        logger.info("Command %s deleted from %s by %s", command_id, current.location, principal.email)
        return current

    async def list(
        self,
        principal: Principal,
        location: Optional[Location] = None,
        pattern: str = "*",
    ) -> list[LocatedCommand]:
        """Commands in one location, or the union across every reachable one."""
        return await self._collect(principal, location, StoreVerb.LIST, pattern or "*")

    async def search(
        self,
        principal: Principal,
        term: str,
        location: Optional[Location] = None,
    ) -> list[LocatedCommand]:
        if not term or not term.strip():
            raise ValidationError("Search term is required")
        return await self._collect(principal, location, StoreVerb.SEARCH, term.strip())

    async def add_tag(
        self,
        principal: Principal,
        command_id: str,
        tag: str,
        location: Optional[Location] = None,
    ) -> LocatedCommand:
        self._guard.ensure_valid(NameKind.TAG, tag)
        current = await self.get(principal, command_id, location)
        self._authorize_mutation(principal, current)

        await self._store.execute(
            StoreRequest(StoreVerb.TAG, self._path(current.location), record_id=current.command.id, payload=tag),
            principal.token,
        )
        return LocatedCommand(current.command.with_tag(tag), current.location)

    async def remove_tag(
        self,
        principal: Principal,
        command_id: str,
        tag: str,
        location: Optional[Location] = None,
    ) -> LocatedCommand:
        self._guard.ensure_valid(NameKind.TAG, tag, existing=True)
        current = await self.get(principal, command_id, location)
        self._authorize_mutation(principal, current)

        await self._store.execute(
            StoreRequest(StoreVerb.UNTAG, self._path(current.location), record_id=current.command.id, payload=tag),
            principal.token,
        )
        return LocatedCommand(current.command.without_tag(tag), current.location)


__all__ = [
    "CommandService",
    "LocatedCommand",
    "utc_now",
]
