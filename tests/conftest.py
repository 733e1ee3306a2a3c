"""Shared test fixtures and helpers."""

from __future__ import annotations

import pytest

from campaign_governance.core.config import AuditConfig, GovernanceConfig
from campaign_governance.db.engine import DatabaseManager
from campaign_governance.governance.audit import AuditLogger
from campaign_governance.governance.engine import GovernanceEngine
from campaign_governance.permissions.catalog import PermissionCatalog
from campaign_governance.permissions.model import PermissionModel
from campaign_governance.repositories.memory import InMemoryDocumentStore
from campaign_governance.repositories.protocols import DocumentStore


USERS = {
    "viewer-1": {"role_ids": ["role_viewer"], "tier_ids": ["tier_local"]},
    "planner-1": {"role_ids": ["role_planner"], "tier_ids": ["tier_local"]},
    "manager-1": {"role_ids": ["role_manager"], "tier_ids": ["tier_regional"]},
    # Older user documents carry a single role/tier id
    "admin-1": {"role_id": "role_admin", "tier_id": "tier_global"},
}


async def seed_governance_data(store: DocumentStore) -> None:
    """Seed users, campaign ``c1`` under review ``r1``, and draft campaign ``c2``."""
    for user_id, data in USERS.items():
        await store.put("users", user_id, data)
    await store.put("campaigns", "c1", {"title": "Spring launch", "status": "in-review"})
    await store.put("campaigns", "c2", {"title": "Summer sale", "status": "draft"})
    await store.put(
        "reviews",
        "r1",
        {
            "resource_id": "c1",
            "status": "pending",
            "submitted_by": "planner-1",
            "review_type": "content",
            "priority": "medium",
            "notes": "",
            "created_at": "2026-01-05T09:00:00+00:00",
        },
    )


def build_engine(
    store: DocumentStore,
    config: GovernanceConfig | None = None,
    **kwargs,
) -> GovernanceEngine:
    permissions = PermissionModel(PermissionCatalog.default())
    audit_logger = AuditLogger(store, config=AuditConfig())
    return GovernanceEngine(
        store,
        permissions,
        audit_logger,
        config=config or GovernanceConfig(),
        **kwargs,
    )


@pytest.fixture()
def catalog() -> PermissionCatalog:
    return PermissionCatalog.default()


@pytest.fixture()
def permission_model(catalog: PermissionCatalog) -> PermissionModel:
    return PermissionModel(catalog)


@pytest.fixture()
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def audit_logger(store: InMemoryDocumentStore) -> AuditLogger:
    return AuditLogger(store, config=AuditConfig())


@pytest.fixture
async def seeded_store(store: InMemoryDocumentStore) -> InMemoryDocumentStore:
    await seed_governance_data(store)
    return store


@pytest.fixture
async def engine(seeded_store: InMemoryDocumentStore) -> GovernanceEngine:
    return build_engine(seeded_store)


@pytest.fixture
async def db():
    """A DatabaseManager over an in-memory SQLite database."""
    manager = DatabaseManager("sqlite+aiosqlite:///:memory:")
    await manager.create_all()
    yield manager
    await manager.close()
