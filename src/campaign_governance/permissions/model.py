"""Effective permission resolution.

An actor's effective permissions are the union of every assigned role's
permissions and every assigned tier's permissions. The model is purely
additive: nothing is ever subtracted and there are no deny rules.
"""

from __future__ import annotations

import logging
from typing import Iterable

from campaign_governance.core.types import Actor
from campaign_governance.permissions.catalog import PermissionCatalog

logger = logging.getLogger(__name__)


class PermissionModel:
    """Resolves actor permissions against a PermissionCatalog."""

    def __init__(self, catalog: PermissionCatalog) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> PermissionCatalog:
        return self._catalog

    def resolve_permissions(self, actor: Actor) -> frozenset[str]:
        """Return the union of all permissions granted to the actor.

        Unknown role or tier identifiers contribute nothing.
        """
        granted: set[str] = set()
        for role_id in actor.role_ids:
            role = self._catalog.get_role(role_id)
            if role is None:
                logger.debug("Actor %s has unknown role %r", actor.actor_id, role_id)
                continue
            granted.update(role.permissions)
        for tier_id in actor.tier_ids:
            tier = self._catalog.get_tier(tier_id)
            if tier is None:
                logger.debug("Actor %s has unknown tier %r", actor.actor_id, tier_id)
                continue
            granted.update(tier.permissions)
        return frozenset(granted)

    def has_permission(self, actor: Actor, permission: str) -> bool:
        return permission in self.resolve_permissions(actor)

    def has_any_permission(self, actor: Actor, permissions: Iterable[str]) -> bool:
        """True if at least one of ``permissions`` is granted."""
        granted = self.resolve_permissions(actor)
        return any(p in granted for p in permissions)

    def has_all_permissions(self, actor: Actor, permissions: Iterable[str]) -> bool:
        """True if every one of ``permissions`` is granted."""
        granted = self.resolve_permissions(actor)
        return all(p in granted for p in permissions)

    def validate_permissions(self, permissions: Iterable[str]) -> None:
        """Ensure every permission is known to the catalog.

        Raises:
            ValueError: If any permission is not granted anywhere in the catalog.
        """
        known = set(self._catalog.all_permissions())
        unknown = sorted(set(permissions) - known)
        if unknown:
            raise ValueError(
                f"Unknown permissions {unknown}. "
                f"Available permissions: {sorted(known)}"
            )
