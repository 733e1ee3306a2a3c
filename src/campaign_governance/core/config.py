"""Application configuration loaded from environment and config files."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class GovernanceConfig(BaseSettings):
    """Review workflow configuration."""

    model_config = {"env_prefix": "CAMPAIGN_GOV_GOVERNANCE_"}

    approval_permissions: list[str] = Field(default_factory=lambda: ["planner:approve"])
    submit_permissions: list[str] = Field(default_factory=lambda: ["planner:write"])
    io_timeout_seconds: float = 10.0
    audit_rejected_attempts: bool = True
    reviews_collection: str = "reviews"
    campaigns_collection: str = "campaigns"
    users_collection: str = "users"


class AuditConfig(BaseSettings):
    """Audit logging configuration."""

    model_config = {"env_prefix": "CAMPAIGN_GOV_AUDIT_"}

    collection: str = "audit_log"
    hash_algorithm: str = "sha256"
    max_append_attempts: int = 16


class StorageConfig(BaseSettings):
    """Document store configuration."""

    model_config = {"env_prefix": "CAMPAIGN_GOV_STORAGE_"}

    database_url: str = "sqlite+aiosqlite:///data/governance.db"
    echo: bool = False


class PermissionConfig(BaseSettings):
    """Role/tier catalog configuration."""

    model_config = {"env_prefix": "CAMPAIGN_GOV_PERMISSIONS_"}

    catalog_path: str | None = None


class Settings(BaseSettings):
    """Root application settings."""

    model_config = {"env_prefix": "CAMPAIGN_GOV_"}

    environment: str = "development"
    log_level: str = "INFO"

    governance: GovernanceConfig = Field(default_factory=GovernanceConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    permissions: PermissionConfig = Field(default_factory=PermissionConfig)
