"""Service wiring for campaign governance."""

from __future__ import annotations

from dataclasses import dataclass

from campaign_governance.core.config import Settings
from campaign_governance.db.engine import DatabaseManager
from campaign_governance.governance.audit import AuditLogger
from campaign_governance.governance.engine import GovernanceEngine
from campaign_governance.governance.reconcile import ReviewReconciler
from campaign_governance.permissions.catalog import PermissionCatalog
from campaign_governance.permissions.model import PermissionModel
from campaign_governance.repositories.protocols import DocumentStore
from campaign_governance.repositories.sql import SqlDocumentStore


@dataclass
class GovernanceServices:
    """The wired governance stack."""

    settings: Settings
    store: DocumentStore
    permissions: PermissionModel
    audit_logger: AuditLogger
    engine: GovernanceEngine
    reconciler: ReviewReconciler
    db: DatabaseManager | None = None

    async def close(self) -> None:
        if self.db is not None:
            await self.db.close()


def load_catalog(settings: Settings) -> PermissionCatalog:
    """Load the configured catalog, or the packaged seed catalog."""
    if settings.permissions.catalog_path:
        return PermissionCatalog.from_yaml(settings.permissions.catalog_path)
    return PermissionCatalog.default()


def create_services(
    settings: Settings | None = None,
    store: DocumentStore | None = None,
    catalog: PermissionCatalog | None = None,
) -> GovernanceServices:
    """Build the governance stack.

    Uses the factory pattern so tests can pass an in-memory store and an
    alternate catalog. Without a store, a SqlDocumentStore is created from
    ``settings.storage``; call ``await services.db.create_all()`` before
    first use of a fresh database.

    Args:
        settings: Application settings. Defaults to Settings().
        store: Optional pre-built DocumentStore.
        catalog: Optional role/tier catalog. Defaults to load_catalog(settings).
    """
    if settings is None:
        settings = Settings()

    db = None
    if store is None:
        db = DatabaseManager(settings.storage.database_url, echo=settings.storage.echo)
        store = SqlDocumentStore(db)

    permissions = PermissionModel(catalog or load_catalog(settings))
    audit_logger = AuditLogger(store, config=settings.audit)
    engine = GovernanceEngine(
        store,
        permissions,
        audit_logger,
        config=settings.governance,
    )
    reconciler = ReviewReconciler(store, audit_logger, config=settings.governance)

    return GovernanceServices(
        settings=settings,
        store=store,
        permissions=permissions,
        audit_logger=audit_logger,
        engine=engine,
        reconciler=reconciler,
        db=db,
    )
