"""Tests for path access decisions, namespaces and capabilities."""

from __future__ import annotations

from neurongate.permissions import (
    GROUP_CAPABILITIES,
    AccessLevel,
    Capabilities,
    SystemGroup,
    can_access,
    capabilities_for,
    capability_matches,
    derive_namespace,
    has_any_grant,
    has_capability,
    highest_level,
    is_user_namespace,
)
from neurongate.principal import PermissionGrant, Principal


class TestDeriveNamespace:
    """Tests for per-user namespace derivation."""

    def test_simple_email(self) -> None:
        assert derive_namespace("bob@x.com") == "bob_at_x_com"

    def test_unsafe_characters(self) -> None:
        assert derive_namespace("a.b+tag@corp.io") == "a_b_tag_at_corp_io"

    def test_case_preserved(self) -> None:
        assert derive_namespace("Bob@X.com") == "Bob_at_X_com"

    def test_empty(self) -> None:
        assert derive_namespace("") == ""

    def test_user_namespace_detection(self) -> None:
        assert is_user_namespace("bob_at_x_com")
        assert not is_user_namespace("team1")
        assert not is_user_namespace(None)


class TestCanAccess:
    """Tests for can_access."""

    def test_own_namespace_read_and_write(self) -> None:
        bob = Principal.build("bob@x.com")
        assert can_access(bob, "user-data", "bob_at_x_com", AccessLevel.READ)
        assert can_access(bob, "user-data", "bob_at_x_com", AccessLevel.WRITE)

    def test_own_namespace_never_admin(self) -> None:
        bob = Principal.build("bob@x.com")
        assert not can_access(bob, "user-data", "bob_at_x_com", AccessLevel.ADMIN)

    def test_other_users_namespace_denied(self) -> None:
        bob = Principal.build("bob@x.com")
        assert not can_access(bob, "user-data", "carol_at_y_com", AccessLevel.READ)

    def test_own_namespace_in_other_database_is_not_special(self) -> None:
        bob = Principal.build("bob@x.com")
        assert not can_access(bob, "sales", "bob_at_x_com", AccessLevel.READ)

    def test_custom_user_data_database(self) -> None:
        bob = Principal.build("bob@x.com")
        assert can_access(bob, "private", "bob_at_x_com", AccessLevel.WRITE, user_data_database="private")

    def test_admin_bypasses_everything(self) -> None:
        root = Principal.build("root@x.com", groups=[SystemGroup.ADMIN])
        assert can_access(root, "sales", "team1", AccessLevel.ADMIN)
        assert can_access(root, "main", None, AccessLevel.ADMIN)

    def test_namespace_grant_scoping(self) -> None:
        """A grant on team1 says nothing about team2 or the database as a whole."""
        alice = Principal.build("alice@x.com", permissions=[PermissionGrant("sales", "team1", AccessLevel.WRITE)])
        assert can_access(alice, "sales", "team1", AccessLevel.READ)
        assert can_access(alice, "sales", "team1", AccessLevel.WRITE)
        assert not can_access(alice, "sales", "team1", AccessLevel.ADMIN)
        assert not can_access(alice, "sales", "team2", AccessLevel.READ)
        assert not can_access(alice, "sales", None, AccessLevel.READ)

    def test_database_wide_grant(self) -> None:
        alice = Principal.build("alice@x.com", permissions=[PermissionGrant("sales", "*", AccessLevel.READ)])
        assert can_access(alice, "sales", "team2", AccessLevel.READ)
        assert can_access(alice, "sales", None, AccessLevel.READ)
        assert not can_access(alice, "sales", "team2", AccessLevel.WRITE)

    def test_grants_not_merged(self) -> None:
        alice = Principal.build(
            "alice@x.com",
            permissions=[
                PermissionGrant("sales", None, AccessLevel.READ),
                PermissionGrant("sales", "team1", AccessLevel.ADMIN),
            ],
        )
        assert can_access(alice, "sales", "team1", AccessLevel.ADMIN)
        assert not can_access(alice, "sales", "team2", AccessLevel.WRITE)


class TestHighestLevel:
    def test_highest_of_covering_grants(self) -> None:
        alice = Principal.build(
            "alice@x.com",
            permissions=[
                PermissionGrant("sales", None, AccessLevel.READ),
                PermissionGrant("sales", "team1", AccessLevel.WRITE),
            ],
        )
        assert highest_level(alice, "sales", "team1") is AccessLevel.WRITE
        assert highest_level(alice, "sales", "team2") is AccessLevel.READ
        assert highest_level(alice, "hr", "team1") is None

    def test_own_namespace_and_admin(self) -> None:
        assert highest_level(Principal.build("bob@x.com"), "user-data", "bob_at_x_com") is AccessLevel.WRITE
        root = Principal.build("root@x.com", groups=["admin"])
        assert highest_level(root, "anything", None) is AccessLevel.ADMIN

    def test_has_any_grant(self) -> None:
        alice = Principal.build("alice@x.com", permissions=[PermissionGrant("sales", "team1")])
        assert has_any_grant(alice, "sales")
        assert not has_any_grant(alice, "hr")


class TestCapabilities:
    """Tests for capability profiles and matching."""

    def test_group_profiles(self) -> None:
        assert GROUP_CAPABILITIES[SystemGroup.ADMIN] == (Capabilities.ALL,)
        assert Capabilities.AI_USE in GROUP_CAPABILITIES[SystemGroup.DEFAULT]

    def test_capabilities_for(self) -> None:
        held = capabilities_for(["default", "unknown-group"], ["reports.export"])
        assert Capabilities.AI_USE in held
        assert "reports.export" in held

    def test_matching(self) -> None:
        assert capability_matches("*", "ai.use")
        assert capability_matches("subscription.*", "subscription.cancel")
        assert capability_matches("ai.use", "ai.use")
        assert not capability_matches("ai.use", "ai.train")

    def test_default_user(self) -> None:
        bob = Principal.build("bob@x.com", groups=["default"])
        assert has_capability(bob, "ai.use")
        assert not has_capability(bob, "subscription.cancel")

    def test_capabilities_independent_of_grants(self) -> None:
        """Database grants never imply capabilities, and the reverse."""
        alice = Principal.build("alice@x.com", permissions=[PermissionGrant("sales", None, AccessLevel.ADMIN)])
        assert not has_capability(alice, "ai.use")
        carol = Principal.build("carol@x.com", capabilities=["ai.use"])
        assert has_capability(carol, "ai.use")
        assert not can_access(carol, "sales", "team1", AccessLevel.READ)

    def test_admin_holds_everything(self) -> None:
        root = Principal.build("root@x.com", groups=["admin"])
        assert has_capability(root, "subscription.cancel")

    def test_empty_capability(self) -> None:
        root = Principal.build("root@x.com", groups=["admin"])
        assert not has_capability(root, "")

    def test_builder(self) -> None:
        assert Capabilities.build("subscription", "cancel") == "subscription.cancel"
