"""Tests for CommandService."""

from __future__ import annotations

import pytest

from neurongate.commands import ScriptCommand
from neurongate.exceptions import AuthorizationError, NotFoundError, StoreError, ValidationError
from neurongate.locations import Location
from neurongate.permissions import AccessLevel, derive_namespace
from neurongate.principal import PermissionGrant, Principal
from neurongate.services import CommandService
from neurongate.store import StorePath, StoreVerb

from conftest import FIXED_NOW, FakeStore

BOB = Principal.build("bob@x.com", groups=["default"], token="t-bob")
CAROL = Principal.build("carol@y.com", groups=["default"], token="t-carol")
ROOT = Principal.build("root@x.com", groups=["admin"], token="t-root")

SCRIPT = {"name": "n1", "commandType": "script", "code": "print(1)"}


def _record(command_id: str, author: str = "someone@x.com", **fields: object) -> dict:
    return {
        "id": command_id,
        "name": command_id,
        "commandType": "script",
        "code": "print(1)",
        "createdBy": author,
        "createdAt": "2025-12-01T00:00:00+00:00",
        **fields,
    }


class TestCreate:
    """Tests for CommandService.create."""

    @pytest.mark.asyncio
    async def test_create_in_own_namespace(self, command_service: CommandService, fake_store: FakeStore) -> None:
        created = await command_service.create(BOB, SCRIPT)

        assert created.location == Location("user-data", "bob_at_x_com")
        assert isinstance(created.command, ScriptCommand)
        assert created.command.id == "n1"
        assert created.command.created_by == "bob@x.com"
        assert created.command.created_at == FIXED_NOW
        assert created.command.updated_at == FIXED_NOW

        [request] = fake_store.calls_for(StoreVerb.SET)
        assert request.path == StorePath("user-data", "bob_at_x_com", "commands")
        assert request.record_id == "n1"
        assert fake_store.calls[-1][1] == "t-bob"
        assert fake_store.get("user-data", "bob_at_x_com", "n1")["createdBy"] == "bob@x.com"

    @pytest.mark.asyncio
    async def test_create_then_get(self, command_service: CommandService) -> None:
        await command_service.create(BOB, SCRIPT)
        found = await command_service.get(BOB, "n1")
        assert found.command.name == "n1"
        assert found.location == Location("user-data", "bob_at_x_com")

    @pytest.mark.asyncio
    async def test_caller_cannot_forge_author(self, command_service: CommandService) -> None:
        created = await command_service.create(BOB, {**SCRIPT, "createdBy": "carol@y.com", "updatedBy": "x"})
        assert created.command.created_by == "bob@x.com"
        assert created.command.updated_by is None

    @pytest.mark.asyncio
    async def test_explicit_writable_location(self, command_service: CommandService) -> None:
        alice = Principal.build("alice@x.com", permissions=[PermissionGrant("sales", "team1", AccessLevel.WRITE)])
        created = await command_service.create(alice, SCRIPT, Location("sales", "team1"))
        assert created.location == Location("sales", "team1")

    @pytest.mark.asyncio
    async def test_unwritable_location_falls_back(self, command_service: CommandService) -> None:
        created = await command_service.create(BOB, SCRIPT, Location("sales", "team1"))
        assert created.location == Location("user-data", "bob_at_x_com")

    @pytest.mark.asyncio
    async def test_malformed_location_rejected(self, command_service: CommandService, fake_store: FakeStore) -> None:
        with pytest.raises(ValidationError):
            await command_service.create(BOB, SCRIPT, Location("sales.q3", "team1"))
        assert fake_store.calls == []

    @pytest.mark.asyncio
    async def test_invalid_command_not_stored(self, command_service: CommandService, fake_store: FakeStore) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await command_service.create(BOB, {"commandType": "goto"})
        assert "Command name is required" in exc_info.value.violations
        assert "Target step is required" in exc_info.value.violations
        assert fake_store.calls_for(StoreVerb.SET) == []

    @pytest.mark.asyncio
    async def test_unknown_type_stored(self, command_service: CommandService, fake_store: FakeStore) -> None:
        created = await command_service.create(BOB, {"name": "hook", "commandType": "webhook", "url": "https://h"})
        assert fake_store.get("user-data", "bob_at_x_com", "hook")["url"] == "https://h"
        assert created.command.command_type == "webhook"

    @pytest.mark.asyncio
    async def test_existing_id_not_replaced(self, command_service: CommandService, fake_store: FakeStore) -> None:
        fake_store.put("sales", "team1", _record("boot", author="root@x.com", isSystem=True))
        alice = Principal.build("alice@x.com", permissions=[PermissionGrant("sales", "team1", AccessLevel.WRITE)])

        with pytest.raises(ValidationError, match="Command already exists: boot"):
            await command_service.create(
                alice,
                {"name": "boot", "commandType": "goto", "targetStep": "s9"},
                Location("sales", "team1"),
            )

        record = fake_store.get("sales", "team1", "boot")
        assert record["isSystem"] is True
        assert record["createdBy"] == "root@x.com"
        assert fake_store.calls_for(StoreVerb.SET) == []

    @pytest.mark.asyncio
    async def test_second_create_with_same_name(self, command_service: CommandService, fake_store: FakeStore) -> None:
        await command_service.create(BOB, SCRIPT)
        with pytest.raises(ValidationError, match="already exists"):
            await command_service.create(BOB, {**SCRIPT, "code": "print(2)"})
        assert fake_store.get("user-data", "bob_at_x_com", "n1")["code"] == "print(1)"

    @pytest.mark.asyncio
    async def test_long_email_addresses_own_namespace(self, command_service: CommandService) -> None:
        email = "firstname.lastname.department@subsidiary.example-corp.com"
        owner = Principal.build(email)
        own = Location("user-data", derive_namespace(email))
        assert len(own.namespace) > 50

        await command_service.create(owner, SCRIPT, own)

        found = await command_service.get(owner, "n1", own)
        assert found.location == own
        assert [i.command.id for i in await command_service.list(owner, own)] == ["n1"]


class TestGet:
    """Tests for CommandService.get."""

    @pytest.mark.asyncio
    async def test_other_tenant_not_found(self, command_service: CommandService) -> None:
        """Bob never searches Carol's namespace, so her command is simply not found."""
        await command_service.create(CAROL, SCRIPT)
        with pytest.raises(NotFoundError, match="Command not found: n1"):
            await command_service.get(BOB, "n1")

    @pytest.mark.asyncio
    async def test_explicit_location_without_read(self, command_service: CommandService) -> None:
        await command_service.create(CAROL, SCRIPT)
        with pytest.raises(AuthorizationError):
            await command_service.get(BOB, "n1", Location("user-data", "carol_at_y_com"))

    @pytest.mark.asyncio
    async def test_explicit_location_miss(self, command_service: CommandService) -> None:
        with pytest.raises(NotFoundError):
            await command_service.get(BOB, "nope", Location("user-data", "bob_at_x_com"))

    @pytest.mark.asyncio
    async def test_search_through_grants(self, command_service: CommandService, fake_store: FakeStore) -> None:
        fake_store.put("sales", "team1", _record("report"))
        fake_store.put("sales", "team2", _record("report", description="second"))
        alice = Principal.build("alice@x.com", permissions=[PermissionGrant("sales", None, AccessLevel.READ)])

        found = await command_service.get(alice, "report")

        assert found.location == Location("sales", "team1")

    @pytest.mark.asyncio
    async def test_failing_location_skipped(self, command_service: CommandService, fake_store: FakeStore) -> None:
        fake_store.put("sales", "team1", _record("report"))
        fake_store.failures[("user-data", "bob_at_x_com")] = StoreError("namespace unreachable")
        bob = Principal.build("bob@x.com", permissions=[PermissionGrant("sales", "team1")])

        found = await command_service.get(bob, "report")

        assert found.location == Location("sales", "team1")

    @pytest.mark.asyncio
    async def test_every_location_failing(self, command_service: CommandService, fake_store: FakeStore) -> None:
        fake_store.failures[("user-data", "bob_at_x_com")] = StoreError("store down")
        with pytest.raises(StoreError, match="store down"):
            await command_service.get(BOB, "n1")

    @pytest.mark.asyncio
    async def test_empty_id(self, command_service: CommandService) -> None:
        with pytest.raises(ValidationError):
            await command_service.get(BOB, "")


class TestUpdate:
    """Tests for CommandService.update."""

    @pytest.mark.asyncio
    async def test_immutable_fields_preserved(self, command_service: CommandService, fake_store: FakeStore) -> None:
        await command_service.create(BOB, SCRIPT)

        updated = await command_service.update(
            BOB,
            "n1",
            {
                "id": "other",
                "createdBy": "mallory@x.com",
                "created_at": "1999-01-01",
                "commandType": "goto",
                "isSystem": True,
                "description": "renamed",
                "code": "print(2)",
            },
        )

        command = updated.command
        assert command.id == "n1"
        assert command.created_by == "bob@x.com"
        assert command.created_at == FIXED_NOW
        assert command.command_type == "script"
        assert command.is_system is False
        assert command.description == "renamed"
        assert command.updated_by == "bob@x.com"
        assert fake_store.get("user-data", "bob_at_x_com", "n1")["code"] == "print(2)"

    @pytest.mark.asyncio
    async def test_update_validates(self, command_service: CommandService) -> None:
        await command_service.create(BOB, SCRIPT)
        with pytest.raises(ValidationError, match="Script code is required"):
            await command_service.update(BOB, "n1", {"code": ""})

    @pytest.mark.asyncio
    async def test_author_may_update_without_write(self, command_service: CommandService, fake_store: FakeStore) -> None:
        fake_store.put("sales", "team1", _record("report", author="dave@x.com"))
        dave = Principal.build("dave@x.com", permissions=[PermissionGrant("sales", "team1", AccessLevel.READ)])

        updated = await command_service.update(dave, "report", {"description": "mine"})

        assert updated.location == Location("sales", "team1")
        assert fake_store.get("sales", "team1", "report")["description"] == "mine"

    @pytest.mark.asyncio
    async def test_reader_cannot_update(self, command_service: CommandService, fake_store: FakeStore) -> None:
        fake_store.put("sales", "team1", _record("report", author="dave@x.com"))
        erin = Principal.build("erin@x.com", permissions=[PermissionGrant("sales", "team1", AccessLevel.READ)])

        with pytest.raises(AuthorizationError):
            await command_service.update(erin, "report", {"description": "hijack"})
        assert fake_store.get("sales", "team1", "report").get("description") is None


class TestDelete:
    """Tests for CommandService.delete."""

    @pytest.mark.asyncio
    async def test_delete_own(self, command_service: CommandService, fake_store: FakeStore) -> None:
        await command_service.create(BOB, SCRIPT)
        deleted = await command_service.delete(BOB, "n1")
        assert deleted.command.id == "n1"
        assert fake_store.get("user-data", "bob_at_x_com", "n1") is None

    @pytest.mark.asyncio
    async def test_system_command_never_deleted(self, command_service: CommandService, fake_store: FakeStore) -> None:
        fake_store.put("sales", "team1", _record("boot", isSystem=True))

        with pytest.raises(ValidationError, match="System commands cannot be deleted"):
            await command_service.delete(ROOT, "boot", Location("sales", "team1"))
        assert fake_store.get("sales", "team1", "boot") is not None
        assert fake_store.calls_for(StoreVerb.REMOVE) == []

    @pytest.mark.asyncio
    async def test_writer_may_delete(self, command_service: CommandService, fake_store: FakeStore) -> None:
        fake_store.put("sales", "team1", _record("report"))
        alice = Principal.build("alice@x.com", permissions=[PermissionGrant("sales", "team1", AccessLevel.WRITE)])
        await command_service.delete(alice, "report")
        assert fake_store.get("sales", "team1", "report") is None


class TestListAndSearch:
    """Tests for CommandService.list and CommandService.search."""

    @pytest.fixture
    def alice(self, fake_store: FakeStore) -> Principal:
        fake_store.put("user-data", "alice_at_x_com", _record("mine"))
        fake_store.put("sales", "team1", _record("deploy-prod"))
        fake_store.put("sales", "team2", _record("deploy-stage"))
        return Principal.build("alice@x.com", permissions=[PermissionGrant("sales", None, AccessLevel.READ)])

    @pytest.mark.asyncio
    async def test_list_everywhere(self, command_service: CommandService, alice: Principal) -> None:
        items = await command_service.list(alice)
        assert [(i.command.id, str(i.location)) for i in items] == [
            ("mine", "user-data.alice_at_x_com"),
            ("deploy-prod", "sales.team1"),
            ("deploy-stage", "sales.team2"),
        ]

    @pytest.mark.asyncio
    async def test_list_skips_failing_location(
        self, command_service: CommandService, fake_store: FakeStore, alice: Principal
    ) -> None:
        fake_store.failures[("sales", "team2")] = StoreError("boom")
        items = await command_service.list(alice)
        assert [i.command.id for i in items] == ["mine", "deploy-prod"]

    @pytest.mark.asyncio
    async def test_list_explicit_location(self, command_service: CommandService, alice: Principal) -> None:
        items = await command_service.list(alice, Location("sales", "team2"))
        assert [i.command.id for i in items] == ["deploy-stage"]

    @pytest.mark.asyncio
    async def test_list_explicit_location_propagates_errors(
        self, command_service: CommandService, fake_store: FakeStore, alice: Principal
    ) -> None:
        fake_store.failures[("sales", "team2")] = StoreError("boom")
        with pytest.raises(StoreError):
            await command_service.list(alice, Location("sales", "team2"))

    @pytest.mark.asyncio
    async def test_list_unreadable_location(self, command_service: CommandService, alice: Principal) -> None:
        with pytest.raises(AuthorizationError):
            await command_service.list(alice, Location("hr", "team1"))

    @pytest.mark.asyncio
    async def test_search(self, command_service: CommandService, alice: Principal) -> None:
        items = await command_service.search(alice, " deploy ")
        assert sorted(i.command.id for i in items) == ["deploy-prod", "deploy-stage"]

    @pytest.mark.asyncio
    async def test_search_requires_term(self, command_service: CommandService) -> None:
        with pytest.raises(ValidationError):
            await command_service.search(BOB, "   ")


class TestTags:
    """Tests for add_tag and remove_tag."""

    @pytest.mark.asyncio
    async def test_add_and_remove(self, command_service: CommandService, fake_store: FakeStore) -> None:
        await command_service.create(BOB, SCRIPT)

        tagged = await command_service.add_tag(BOB, "n1", "urgent")
        assert tagged.command.tags == ["urgent"]
        assert fake_store.get("user-data", "bob_at_x_com", "n1")["tags"] == ["urgent"]

        untagged = await command_service.remove_tag(BOB, "n1", "urgent")
        assert untagged.command.tags == []
        assert fake_store.get("user-data", "bob_at_x_com", "n1")["tags"] == []

    @pytest.mark.asyncio
    async def test_invalid_tag(self, command_service: CommandService, fake_store: FakeStore) -> None:
        with pytest.raises(ValidationError):
            await command_service.add_tag(BOB, "n1", "not ok")
        assert fake_store.calls == []

    @pytest.mark.asyncio
    async def test_reader_cannot_tag(self, command_service: CommandService, fake_store: FakeStore) -> None:
        fake_store.put("sales", "team1", _record("report"))
        erin = Principal.build("erin@x.com", permissions=[PermissionGrant("sales", "team1", AccessLevel.READ)])
        with pytest.raises(AuthorizationError):
            await command_service.add_tag(erin, "report", "mine")
