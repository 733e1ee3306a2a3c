"""Role/tier permission model."""

from campaign_governance.permissions.catalog import PermissionCatalog, Role, Tier
from campaign_governance.permissions.model import PermissionModel

__all__ = ["PermissionCatalog", "PermissionModel", "Role", "Tier"]
