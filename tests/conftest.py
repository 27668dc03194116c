"""Shared fixtures: an in-memory store and wired services."""

from __future__ import annotations

import copy
import json
from typing import Any, Optional

import pytest

from neurongate.exceptions import StoreError
from neurongate.locations import LocationResolver
from neurongate.services import CommandService, DatabaseService
from neurongate.store import Store, StoreRequest, StoreTarget, StoreVerb

FIXED_NOW = "2026-01-01T00:00:00+00:00"


class FakeStore(Store):
    """In-memory store keyed by (database, namespace) -> {record_id: record}.

    ``failures`` maps a (database, namespace) pair to an exception raised
    for any request on that pair.
    """

    def __init__(self) -> None:
        self.records: dict[tuple[str, str], dict[str, dict[str, Any]]] = {}
        self.namespaces: dict[str, list[str]] = {}
        self.databases: list[str] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self.calls: list[tuple[StoreRequest, Optional[str]]] = []

    def put(self, database: str, namespace: str, record: dict[str, Any]) -> None:
        self.records.setdefault((database, namespace), {})[record["id"]] = copy.deepcopy(record)
        if namespace not in self.namespaces.setdefault(database, []):
            self.namespaces[database].append(namespace)

    def get(self, database: str, namespace: str, record_id: str) -> Optional[dict[str, Any]]:
        return self.records.get((database, namespace), {}).get(record_id)

    def calls_for(self, verb: StoreVerb) -> list[StoreRequest]:
        return [request for request, _ in self.calls if request.verb == verb]

    async def execute(self, request: StoreRequest, token: Optional[str] = None) -> Any:
        self.calls.append((request, token))
        path = request.path
        key = (path.database, path.namespace)
        if key in self.failures:
            raise self.failures[key]

        if request.target == StoreTarget.DATABASE:
            return self._database(request)
        if request.target == StoreTarget.NAMESPACE:
            return self._namespace(request)

        bucket = self.records.get(key, {})
        if request.verb == StoreVerb.SET:
            self.put(path.database, path.namespace, {**request.payload, "id": request.record_id})
            return {"ok": True}
        if request.verb == StoreVerb.VIEW:
            return copy.deepcopy(bucket.get(request.record_id))
        if request.verb == StoreVerb.LIST:
            return copy.deepcopy(bucket)
        if request.verb == StoreVerb.SEARCH:
            term = str(request.payload).lower()
            return [copy.deepcopy(r) for r in bucket.values() if term in json.dumps(r).lower()]
        if request.verb == StoreVerb.REMOVE:
            bucket.pop(request.record_id, None)
            return {"ok": True}
        if request.verb in (StoreVerb.TAG, StoreVerb.UNTAG):
            record = bucket.get(request.record_id)
            if record is None:
                return None
            tags = [t for t in record.get("tags", []) if t != request.payload]
            if request.verb == StoreVerb.TAG:
                tags.append(request.payload)
            record["tags"] = tags
            return {"ok": True}
        raise StoreError(f"Unsupported verb {request.verb}")

    def _database(self, request: StoreRequest) -> Any:
        if request.verb == StoreVerb.LIST:
            return list(self.databases)
        if request.verb == StoreVerb.SET:
            self.databases.append(request.payload)
        elif request.verb == StoreVerb.DROP:
            self.databases.remove(request.payload)
        return {"ok": True}

    def _namespace(self, request: StoreRequest) -> Any:
        database = request.path.database
        if request.verb == StoreVerb.LIST:
            return list(self.namespaces.get(database, []))
        if request.verb == StoreVerb.SET:
            self.namespaces.setdefault(database, []).append(request.payload)
        elif request.verb == StoreVerb.DROP:
            self.namespaces.get(database, []).remove(request.payload)
        return {"ok": True}


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def resolver() -> LocationResolver:
    return LocationResolver()


@pytest.fixture
def command_service(fake_store: FakeStore, resolver: LocationResolver) -> CommandService:
    return CommandService(fake_store, resolver, clock=lambda: FIXED_NOW)


@pytest.fixture
def database_service(fake_store: FakeStore) -> DatabaseService:
    return DatabaseService(fake_store)
