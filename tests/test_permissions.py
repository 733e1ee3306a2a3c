"""Tests for the role/tier catalog and permission resolution."""

from __future__ import annotations

import itertools
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from campaign_governance.core.types import Actor
from campaign_governance.permissions.catalog import PermissionCatalog
from campaign_governance.permissions.model import PermissionModel


def _actor(roles=(), tiers=()) -> Actor:
    return Actor(actor_id="u1", role_ids=tuple(roles), tier_ids=tuple(tiers))


class TestPermissionCatalog:
    def test_default_catalog_roles_and_tiers(self, catalog: PermissionCatalog) -> None:
        assert set(catalog.roles) == {
            "role_admin",
            "role_manager",
            "role_planner",
            "role_contributor",
            "role_viewer",
        }
        assert set(catalog.tiers) == {"tier_local", "tier_regional", "tier_global"}

    def test_viewer_permissions(self, catalog: PermissionCatalog) -> None:
        viewer = catalog.get_role("role_viewer")
        assert viewer is not None
        assert viewer.permissions == ("users:read", "stores:read", "planner:read")

    def test_unknown_ids_return_none(self, catalog: PermissionCatalog) -> None:
        assert catalog.get_role("role_ghost") is None
        assert catalog.get_tier("tier_ghost") is None

    def test_all_permissions_sorted_union(self, catalog: PermissionCatalog) -> None:
        perms = catalog.all_permissions()
        assert perms == sorted(perms)
        assert len(perms) == len(set(perms))
        assert perms == [
            "audit:read",
            "export:write",
            "planner:approve",
            "planner:draft",
            "planner:read",
            "planner:write",
            "roles:read",
            "roles:write",
            "rules:write",
            "stores:read",
            "stores:write",
            "tiers:read",
            "tiers:write",
            "users:read",
            "users:write",
        ]

    def test_describe(self, catalog: PermissionCatalog) -> None:
        assert catalog.describe("planner:approve") == "Approve campaign activities"
        assert catalog.describe("nope:nope") is None

    def test_catalog_is_immutable(self, catalog: PermissionCatalog) -> None:
        role = catalog.get_role("role_planner")
        with pytest.raises(ValidationError):
            role.permissions = ("planner:approve",)  # type: ignore[misc]

    def test_from_yaml_alternate_catalog(self, tmp_path: Path) -> None:
        config = {
            "roles": {"role_reviewer": {"name": "Reviewer", "permissions": ["planner:approve"]}},
            "tiers": {"tier_all": {"name": "All", "permissions": ["export:write"]}},
        }
        path = tmp_path / "catalog.yml"
        path.write_text(yaml.dump(config))

        catalog = PermissionCatalog.from_yaml(path)
        assert catalog.all_permissions() == ["export:write", "planner:approve"]
        assert catalog.get_role("role_reviewer").name == "Reviewer"
        assert catalog.descriptions == {}


class TestPermissionModel:
    def test_viewer_resolution(self, permission_model: PermissionModel) -> None:
        perms = permission_model.resolve_permissions(_actor(["role_viewer"]))
        assert perms == {"users:read", "stores:read", "planner:read"}

    def test_role_and_tier_union(self, permission_model: PermissionModel) -> None:
        perms = permission_model.resolve_permissions(
            _actor(["role_planner"], ["tier_global"])
        )
        assert perms == {"planner:write", "roles:read", "tiers:read", "audit:read"}

    def test_multiple_tiers(self, permission_model: PermissionModel) -> None:
        perms = permission_model.resolve_permissions(
            _actor([], ["tier_regional", "tier_global"])
        )
        assert perms == {"export:write", "roles:read", "tiers:read", "audit:read"}

    def test_order_independent(self, permission_model: PermissionModel) -> None:
        roles = ["role_viewer", "role_planner", "role_contributor"]
        results = {
            permission_model.resolve_permissions(_actor(order, ["tier_regional"]))
            for order in itertools.permutations(roles)
        }
        assert len(results) == 1

    def test_unknown_ids_contribute_nothing(self, permission_model: PermissionModel) -> None:
        perms = permission_model.resolve_permissions(
            _actor(["role_ghost", "role_planner"], ["tier_ghost"])
        )
        assert perms == {"planner:write"}

    def test_no_assignment_means_no_permissions(self, permission_model: PermissionModel) -> None:
        assert permission_model.resolve_permissions(_actor()) == frozenset()

    def test_no_implicit_hierarchy(self, permission_model: PermissionModel) -> None:
        # planner:write does not imply planner:read
        actor = _actor(["role_planner"])
        assert permission_model.has_permission(actor, "planner:write")
        assert not permission_model.has_permission(actor, "planner:read")

    def test_has_any_and_all(self, permission_model: PermissionModel) -> None:
        actor = _actor(["role_manager"])
        assert permission_model.has_any_permission(actor, ["roles:write", "planner:approve"])
        assert not permission_model.has_any_permission(actor, ["roles:write", "tiers:write"])
        assert permission_model.has_all_permissions(actor, ["planner:approve", "audit:read"])
        assert not permission_model.has_all_permissions(actor, ["planner:approve", "roles:write"])

    def test_validate_permissions(self, permission_model: PermissionModel) -> None:
        permission_model.validate_permissions(["planner:approve", "audit:read"])
        with pytest.raises(ValueError, match="campaigns:approve"):
            permission_model.validate_permissions(["campaigns:approve"])


class TestActorFromDocument:
    def test_plural_keys(self) -> None:
        actor = Actor.from_document("u1", {"role_ids": ["role_viewer"], "tier_ids": ["tier_local"]})
        assert actor.role_ids == ("role_viewer",)
        assert actor.tier_ids == ("tier_local",)

    def test_singular_keys(self) -> None:
        actor = Actor.from_document("u1", {"role_id": "role_admin", "tier_id": "tier_global"})
        assert actor.role_ids == ("role_admin",)
        assert actor.tier_ids == ("tier_global",)

    def test_missing_document(self) -> None:
        actor = Actor.from_document("u1", None)
        assert actor.role_ids == ()
        assert actor.tier_ids == ()
