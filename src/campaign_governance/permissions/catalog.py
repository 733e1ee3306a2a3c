"""Role and tier catalog.

The catalog is an immutable value built once at process start (from YAML)
and handed to the PermissionModel explicitly, so tests can swap in an
alternate catalog.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

# Packaged seed catalog
_DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "catalog.yml"


class Role(BaseModel):
    """A named set of functional permissions."""

    model_config = ConfigDict(frozen=True)

    role_id: str
    name: str
    permissions: tuple[str, ...] = ()
    description: str = ""


class Tier(BaseModel):
    """A named set of scope-level grants (e.g. cross-program export)."""

    model_config = ConfigDict(frozen=True)

    tier_id: str
    name: str
    permissions: tuple[str, ...] = ()
    description: str = ""


class PermissionCatalog(BaseModel):
    """Immutable role/tier catalog."""

    model_config = ConfigDict(frozen=True)

    roles: dict[str, Role] = Field(default_factory=dict)
    tiers: dict[str, Tier] = Field(default_factory=dict)
    descriptions: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_mapping(cls, config: dict[str, Any]) -> PermissionCatalog:
        """Build a catalog from a parsed ``{roles, tiers, descriptions}`` mapping."""
        roles = {
            role_id: Role(
                role_id=role_id,
                name=data.get("name", role_id),
                permissions=tuple(data.get("permissions") or ()),
                description=data.get("description", ""),
            )
            for role_id, data in (config.get("roles") or {}).items()
        }
        tiers = {
            tier_id: Tier(
                tier_id=tier_id,
                name=data.get("name", tier_id),
                permissions=tuple(data.get("permissions") or ()),
                description=data.get("description", ""),
            )
            for tier_id, data in (config.get("tiers") or {}).items()
        }
        return cls(
            roles=roles,
            tiers=tiers,
            descriptions=dict(config.get("descriptions") or {}),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> PermissionCatalog:
        """Load a catalog from a YAML file."""
        with open(path) as fh:
            config = yaml.safe_load(fh) or {}
        return cls.from_mapping(config)

    @classmethod
    def default(cls) -> PermissionCatalog:
        """The packaged seed catalog."""
        return cls.from_yaml(_DEFAULT_CATALOG_PATH)

    def get_role(self, role_id: str) -> Role | None:
        return self.roles.get(role_id)

    def get_tier(self, tier_id: str) -> Tier | None:
        return self.tiers.get(tier_id)

    def all_permissions(self) -> list[str]:
        """Sorted union of every permission mentioned anywhere in the catalog."""
        perms: set[str] = set()
        for role in self.roles.values():
            perms.update(role.permissions)
        for tier in self.tiers.values():
            perms.update(tier.permissions)
        return sorted(perms)

    def describe(self, permission: str) -> str | None:
        return self.descriptions.get(permission)
